"""
kbchat - IndexingPipeline
==========================
Startup pipeline that makes the static knowledge base searchable:
provision → embed → shape records → upsert.

Key design decisions:
    • **Dependency Injection** – receives a ``KnowledgeBaseIndex`` and an
      ``Embedder``; nothing here talks to a client directly.
    • **One batch** – all document texts go to the embedding API in a
      single call and are paired with documents by position.
    • **Degenerate records are written** – a document whose embedding is
      missing or empty is upserted with ``values=[]`` and logged, never
      silently dropped.

Usage:
    from kbchat.src.core.indexer import IndexingPipeline
    pipeline = IndexingPipeline(store, embedder, documents)
    summary  = pipeline.run()
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from kbchat.src.core.embedder import Embedder
from kbchat.src.database.vector_store import EmbeddingRecord, KnowledgeBaseIndex
from kbchat.src.utils.logger import get_logger

logger = get_logger(__name__)


class Document(BaseModel):
    """One knowledge base article."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    content: str


def build_records(documents: Sequence[Document], vectors: Sequence[Sequence[float]]) -> list[EmbeddingRecord]:
    """
    Pair *documents* with *vectors* by position and shape upsert records.

    ``vectors[i]`` belongs to ``documents[i]``.  A missing trailing vector
    yields ``values=[]``.  The record id is always ``str(document.id)``.
    """
    records: list[EmbeddingRecord] = []
    for i, doc in enumerate(documents):
        values = list(vectors[i]) if i < len(vectors) and vectors[i] else []
        records.append({"id": str(doc.id), "values": values, "metadata": {"text": doc.content}})
    return records


class IndexingPipeline:
    """
    End-to-end startup indexing: provision → embed → upsert.

    Parameters
    ----------
    store
        An (unprovisioned) ``KnowledgeBaseIndex``.
    embedder
        Any object satisfying the ``Embedder`` protocol.
    documents
        The full static document set.
    dimension
        Expected vector length; records that differ are logged as
        degenerate.  ``None`` disables the check.
    """

    def __init__(self, store: KnowledgeBaseIndex, embedder: Embedder, documents: Sequence[Document], dimension: int | None = None) -> None:
        self._store = store
        self._embedder = embedder
        self._documents = tuple(documents)
        self._dimension = dimension

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC ENTRY POINT
    # ══════════════════════════════════════════════════════════════════

    def run(self) -> dict[str, Any]:
        """
        Provision the index, embed every document and upsert the records.

        Provisioning errors (after its own retries), embedding errors and
        upsert errors all propagate to the caller.

        Returns
        -------
        dict
            Execution summary with keys ``index_name``, ``namespace``,
            ``total_documents``, ``records_upserted``,
            ``degenerate_records``, ``elapsed_seconds``.
        """
        t_start = time.perf_counter()

        self._store.provision()

        if not self._documents:
            logger.warning("Document set is empty; nothing to index.")
            return self._summary(0, 0, 0, time.perf_counter() - t_start)

        logger.info("Embedding %d document(s) in one batch …", len(self._documents))

        t_embed = time.perf_counter()
        vectors = self._embedder.embed_documents([doc.content for doc in self._documents])
        embed_ms = (time.perf_counter() - t_embed) * 1000

        records = build_records(self._documents, vectors)
        degenerate = self._count_degenerate(records)

        t_upsert = time.perf_counter()
        upserted = self._store.upsert_records(records)
        upsert_ms = (time.perf_counter() - t_upsert) * 1000

        elapsed = time.perf_counter() - t_start
        logger.info("Indexing complete: %d record(s) upserted (%d degenerate); embed: %.1fms, upsert: %.1fms, total: %.2fs.", upserted, degenerate, embed_ms, upsert_ms, elapsed)
        return self._summary(len(self._documents), upserted, degenerate, elapsed)

    # ══════════════════════════════════════════════════════════════════
    #  HELPERS
    # ══════════════════════════════════════════════════════════════════

    def _count_degenerate(self, records: list[EmbeddingRecord]) -> int:
        """Log and count records whose vector is empty or of the wrong size."""
        degenerate = 0
        for record in records:
            size = len(record["values"])
            if size == 0 or (self._dimension is not None and size != self._dimension):
                degenerate += 1
                logger.warning("Record '%s' has a %d-dimensional vector (expected %s).", record["id"], size, self._dimension or "non-empty")
        return degenerate


    def _summary(self, total: int, upserted: int, degenerate: int, elapsed: float) -> dict[str, Any]:
        return {
            "index_name": self._store.index_name,
            "namespace": self._store.namespace,
            "total_documents": total,
            "records_upserted": upserted,
            "degenerate_records": degenerate,
            "elapsed_seconds": round(elapsed, 2),
        }
