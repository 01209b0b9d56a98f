"""
kbchat - KnowledgeBaseIndex
============================
OOP wrapper around a Pinecone serverless index providing a clean
interface for:
  • Index provisioning (check-or-create) with a bounded retry policy
  • Bulk upsert of pre-embedded records into one namespace
  • Top-K nearest-neighbour queries returning metadata only

Design decisions:
  • **Singleton client**: ``_get_client()`` caches one ``Pinecone``
    client per API key at module level.
  • **Dependency Injection**: a client can be injected, which keeps
    the store testable with in-process fakes.
  • **Embedding is not done here**: callers pass vectors produced by
    an ``Embedder`` (see ``kbchat.src.core.embedder``).

Usage:
    from kbchat.config.settings import get_settings
    from kbchat.src.database.vector_store import KnowledgeBaseIndex

    store = KnowledgeBaseIndex(get_settings())
    store.provision()
    store.upsert_records([{"id": "1", "values": [...], "metadata": {"text": "..."}}])
    matches = store.query([...], top_k=3)
"""

from __future__ import annotations

import threading
import time
from typing import Protocol, runtime_checkable

from pinecone import Pinecone, ServerlessSpec

from kbchat.config.settings import Settings
from kbchat.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
RecordMetadata = dict[str, str]
EmbeddingRecord = dict[str, str | list[float] | RecordMetadata]
SearchResult = dict[str, str | float | RecordMetadata]


# ── Index Handle Protocol ─────────────────────────────────────────────

@runtime_checkable
class IndexHandle(Protocol):
    """The subset of ``pinecone.Index`` this module relies on."""

    def upsert(self, vectors: list[EmbeddingRecord], namespace: str) -> object: ...

    def query(self, *, vector: list[float], top_k: int, namespace: str, include_values: bool, include_metadata: bool) -> object: ...

    def describe_index_stats(self) -> object: ...


# ── Client cache ──────────────────────────────────────────────────────
_CLIENT_LOCK = threading.Lock()
_client_cache: dict[str, Pinecone] = {}


def _get_client(api_key: str) -> Pinecone:
    """
    Return a **singleton** ``Pinecone`` client for *api_key*.

    Thread-safe via ``_CLIENT_LOCK``; the startup indexing thread and
    request handlers share the same client.
    """
    if api_key not in _client_cache:
        with _CLIENT_LOCK:
            if api_key not in _client_cache:
                logger.info("Creating Pinecone client.")
                _client_cache[api_key] = Pinecone(api_key=api_key)
    return _client_cache[api_key]


def get_pinecone_client(settings: Settings) -> Pinecone:
    """Shared ``Pinecone`` client for the configured API key."""
    return _get_client(settings.PINECONE_API_KEY.get_secret_value())


class KnowledgeBaseIndex:
    """
    High-level abstraction over one Pinecone index and namespace.

    Parameters
    ----------
    settings
        Supplies index name, namespace, shape and the retry policy.
    client
        Override the ``Pinecone`` client.  Defaults to the shared
        client for ``settings.PINECONE_API_KEY``.
    """

    __slots__ = ("_settings", "_client", "_index_name", "_namespace", "index")

    def __init__(self, settings: Settings, client: Pinecone | None = None) -> None:
        self._settings = settings
        self._client = client or get_pinecone_client(settings)
        self._index_name: str = settings.PINECONE_INDEX_NAME
        self._namespace: str = settings.PINECONE_NAMESPACE
        self.index: IndexHandle | None = None


    @property
    def index_name(self) -> str:
        return self._index_name


    @property
    def namespace(self) -> str:
        return self._namespace


    def index_exists(self) -> bool:
        """Return True if the configured index is listed by the service."""
        return self._index_name in self._client.list_indexes().names()


    def provision(self) -> IndexHandle:
        """
        Ensure the index exists and return a handle to it.

        The check-or-create sequence is attempted up to
        ``PINECONE_MAX_RETRIES`` times, sleeping a constant
        ``PINECONE_RETRY_DELAY_SECONDS`` between attempts.  After a fresh
        create the call waits ``PINECONE_PROVISION_WAIT_SECONDS`` so the
        service can finish provisioning before first use.

        Raises
        ------
        Exception
            Whatever the last failed attempt raised, once retries are
            exhausted.
        """
        max_retries = self._settings.PINECONE_MAX_RETRIES

        for attempt in range(1, max_retries + 1):
            try:
                if not self.index_exists():
                    logger.info("Index '%s' not found; creating (dimension=%d, metric=%s, %s/%s).", self._index_name, self._settings.PINECONE_DIMENSION, self._settings.PINECONE_METRIC, self._settings.PINECONE_CLOUD, self._settings.PINECONE_REGION)
                    self._client.create_index(
                        name=self._index_name,
                        dimension=self._settings.PINECONE_DIMENSION,
                        metric=self._settings.PINECONE_METRIC,
                        spec=ServerlessSpec(cloud=self._settings.PINECONE_CLOUD, region=self._settings.PINECONE_REGION),
                    )
                    time.sleep(self._settings.PINECONE_PROVISION_WAIT_SECONDS)
                    logger.info("Created index '%s'.", self._index_name)
                else:
                    logger.info("Using existing index '%s'.", self._index_name)

                self.index = self._client.Index(self._index_name)
                return self.index

            except Exception as exc:
                if attempt == max_retries:
                    logger.error("Index provisioning failed after %d attempt(s): %s", attempt, exc)
                    raise
                logger.warning("Retrying Pinecone initialization... (%d/%d): %s", attempt, max_retries, exc)
                time.sleep(self._settings.PINECONE_RETRY_DELAY_SECONDS)

        raise RuntimeError("unreachable: provisioning loop exited without result")


    def _handle(self) -> IndexHandle:
        """Return the cached index handle, opening it without provisioning."""
        if self.index is None:
            self.index = self._client.Index(self._index_name)
        return self.index


    def upsert_records(self, records: list[EmbeddingRecord]) -> int:
        """
        Write *records* into the configured namespace in a single call.

        Returns
        -------
        int
            Number of records sent.
        """
        if not records:
            logger.warning("No records to upsert into '%s/%s'.", self._index_name, self._namespace)
            return 0

        self._handle().upsert(vectors=records, namespace=self._namespace)
        logger.info("Upserted %d record(s) into '%s/%s'.", len(records), self._index_name, self._namespace)
        return len(records)


    def query(self, vector: list[float], top_k: int) -> list[SearchResult]:
        """
        Return the *top_k* nearest records to *vector*.

        Vector values are not requested; each result carries ``id``,
        ``score`` and ``metadata``.
        """
        response = self._handle().query(vector=vector, top_k=top_k, namespace=self._namespace, include_values=False, include_metadata=True)
        matches = getattr(response, "matches", None) or []

        results: list[SearchResult] = [
            {"id": str(match.id), "score": float(match.score or 0.0), "metadata": dict(match.metadata or {})}
            for match in matches
        ]
        logger.info("Query returned %d match(es) (top_k=%d).", len(results), top_k)
        return results


    def count(self) -> int:
        """Return the number of records stored in the configured namespace."""
        stats = self._handle().describe_index_stats()
        summary = (getattr(stats, "namespaces", None) or {}).get(self._namespace)
        return int(getattr(summary, "vector_count", 0) or 0) if summary is not None else 0


    def drop_index(self) -> None:
        """Delete the whole index (used by the setup CLI for re-indexing)."""
        if not self.index_exists():
            logger.warning("Index '%s' does not exist; nothing to drop.", self._index_name)
            return
        self._client.delete_index(self._index_name)
        self.index = None
        logger.info("Dropped index '%s'.", self._index_name)


    def __repr__(self) -> str:
        return f"KnowledgeBaseIndex(index='{self._index_name}', namespace='{self._namespace}')"
