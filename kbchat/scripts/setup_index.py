"""
kbchat - Index Setup & Verification Script
===========================================
CLI entry point that runs the startup indexing outside the web server:
    1. Validate the configuration (fail-fast on missing keys).
    2. Build the Pinecone client, ``KnowledgeBaseIndex`` and embedder.
    3. Optionally drop the index.
    4. Run the ``IndexingPipeline`` (provision → embed → upsert) and read
       back the namespace record count.
    5. Optionally run the retrieval action once and print the matches.
    6. Print a structured execution summary with timing breakdown.

Flags:
    --drop         Drop the index before indexing.
    --drop-only    Drop the index and exit immediately.
    --skip-index   Do not provision or index (useful with --query).
    --query TEXT   Run ``FetchKnowledgebaseArticles`` for TEXT and print results.

Usage:
    python -m kbchat.scripts.setup_index
    python -m kbchat.scripts.setup_index --drop
    python -m kbchat.scripts.setup_index --skip-index --query "How do I reset my password?"
"""

from __future__ import annotations

import argparse
import sys
import time

from pydantic import ValidationError

from kbchat.config.settings import Settings, get_settings
from kbchat.data.posts import POSTS
from kbchat.src.core.embedder import Embedder, PineconeEmbedder
from kbchat.src.core.indexer import IndexingPipeline
from kbchat.src.core.retrieval import KnowledgeBaseError, KnowledgeBaseRetriever
from kbchat.src.database.vector_store import KnowledgeBaseIndex, get_pinecone_client
from kbchat.src.utils.logger import get_logger, mask_secret

logger = get_logger(__name__)


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="setup_index", description="kbchat: provision the Pinecone index and embed the knowledge base.")
    parser.add_argument("--drop", action="store_true", default=False, help="Drop the index before indexing.")
    parser.add_argument("--drop-only", action="store_true", default=False, help="Drop the index and exit (no indexing).")
    parser.add_argument("--skip-index", action="store_true", default=False, help="Skip provisioning and indexing.")
    parser.add_argument("--query", default=None, help="Run the retrieval action for this text and print the matches.")
    return parser.parse_args(argv)


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None, store: KnowledgeBaseIndex | None = None, embedder: Embedder | None = None) -> int:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    # ── 0. Load settings + .env (timed) ────────────────────────────────
    t_settings = time.perf_counter()
    try:
        settings = get_settings()
    except ValidationError as exc:
        print("\n[FATAL] Configuration error; check your .env file:\n")
        print(f"  {exc}")
        print()
        return 1
    settings_ms = (time.perf_counter() - t_settings) * 1000
    logger.info("Settings loaded in %.1fms", settings_ms)

    _print_header(settings)

    # ── 1. Client, store, embedder (timed) ─────────────────────────────
    t_client = time.perf_counter()
    if store is None or embedder is None:
        client = get_pinecone_client(settings)
        store = store or KnowledgeBaseIndex(settings, client)
        embedder = embedder or PineconeEmbedder.from_settings(settings, client)
    client_ms = (time.perf_counter() - t_client) * 1000

    if args.drop or args.drop_only:
        logger.warning("Dropping index '%s' as requested.", settings.PINECONE_INDEX_NAME)
        store.drop_index()
        if args.drop_only:
            logger.info("--drop-only: Index dropped. Exiting.")
            _print_footer(None, time.perf_counter() - t_start, settings_ms, client_ms)
            return 0

    # ── 2. Provision + index ───────────────────────────────────────────
    summary = None
    if not args.skip_index:
        pipeline = IndexingPipeline(store, embedder, POSTS, dimension=settings.PINECONE_DIMENSION)
        try:
            summary = pipeline.run()
        except Exception:
            logger.exception("Indexing failed.")
            return 1
        summary["namespace_records"] = store.count()
        logger.info("Namespace '%s' now holds %d record(s).", store.namespace, summary["namespace_records"])

    # ── 3. Verification query ──────────────────────────────────────────
    if args.query:
        retriever = KnowledgeBaseRetriever(store, embedder, top_k=settings.SEARCH_TOP_K)
        try:
            payload = retriever.fetch_articles(args.query)
        except KnowledgeBaseError as exc:
            print(f"\n[ERROR] {exc}\n")
            return 1
        _print_articles(args.query, payload["articles"])

    _print_footer(summary, time.perf_counter() - t_start, settings_ms, client_ms)
    return 0


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: Settings) -> None:
    print()
    print("=" * 60)
    print("  KBCHAT | Knowledge Base Index Setup")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")
    print(f"  Index        : {settings.PINECONE_INDEX_NAME} ({settings.PINECONE_DIMENSION}d, {settings.PINECONE_METRIC})")
    print(f"  Namespace    : {settings.PINECONE_NAMESPACE}")
    print(f"  Region       : {settings.PINECONE_CLOUD}/{settings.PINECONE_REGION}")
    print(f"  Documents    : {len(POSTS)}")
    print(f"  API Key      : {mask_secret(settings.PINECONE_API_KEY.get_secret_value())}")
    print("=" * 60)
    print()


def _print_articles(query: str, articles: list[dict]) -> None:
    print()
    print(f"Query: {query}")
    print("=" * 60)
    if not articles:
        print("  (no matches)")
    for i, article in enumerate(articles, 1):
        print(f"\n--- Result {i} ---")
        print(f"  Id:     {article.get('id', 'N/A')}")
        print(f"  Score:  {article.get('score', 0.0):.4f}")
        print(f"  Text:   {article.get('metadata', {}).get('text', '')}")


def _print_footer(summary: dict | None, elapsed: float, settings_ms: float, client_ms: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    if summary is not None:
        print(f"  Documents            : {summary['total_documents']}")
        print(f"  Records upserted     : {summary['records_upserted']}")
        print(f"  Degenerate records   : {summary['degenerate_records']}")
        print(f"  Records in namespace : {summary['namespace_records']}")
        print(f"  Indexing time        : {summary['elapsed_seconds']:>8.2f}s")
    else:
        print("  Indexing             : skipped")
    print("-" * 60)
    print("  TIMING BREAKDOWN")
    print("-" * 60)
    print(f"  Settings + .env load : {settings_ms:>8.1f}ms")
    print(f"  Client init          : {client_ms:>8.1f}ms")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    sys.exit(main())
