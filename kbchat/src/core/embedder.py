"""
kbchat - Hosted Embeddings
===========================
Thin adapter over Pinecone's hosted inference API that satisfies the
``Embedder`` protocol used throughout kbchat (``embed_documents`` /
``embed_query``, the same shape as LangChain embedding models).

Passages and queries are embedded with different ``input_type`` values;
``multilingual-e5-large`` is asymmetric and scores poorly otherwise.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from pinecone import Pinecone

from kbchat.config.settings import Settings
from kbchat.src.utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Embedder(Protocol):
    """Anything that can produce embedding vectors from text."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


def _values_of(item: object) -> list[float]:
    """Extract the dense vector from one embedding entry, or ``[]``."""
    if item is None:
        return []
    if isinstance(item, Mapping):
        values = item.get("values")
    else:
        values = getattr(item, "values", None)
    return list(values) if values else []


class PineconeEmbedder:
    """
    Embed text with a model hosted by Pinecone inference.

    Parameters
    ----------
    client
        A ``Pinecone`` client (shared with the vector store).
    model
        Hosted model name, e.g. ``multilingual-e5-large``.
    """

    __slots__ = ("_client", "_model")

    def __init__(self, client: Pinecone, model: str) -> None:
        self._client = client
        self._model = model


    @classmethod
    def from_settings(cls, settings: Settings, client: Pinecone) -> PineconeEmbedder:
        return cls(client, settings.EMBEDDING_MODEL)


    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """
        Embed *texts* as passages in a single request.

        The result is positionally aligned with *texts*: entry ``i`` is the
        vector for ``texts[i]``.  Entries the API leaves out or returns
        without values come back as ``[]``.
        """
        if not texts:
            return []

        response = self._client.inference.embed(model=self._model, inputs=texts, parameters={"input_type": "passage", "truncate": "END"})
        data = list(getattr(response, "data", None) or [])

        if len(data) != len(texts):
            logger.warning("Embedding API returned %d vector(s) for %d input(s).", len(data), len(texts))

        vectors = [_values_of(data[i]) if i < len(data) else [] for i in range(len(texts))]
        logger.debug("Embedded %d passage(s) with '%s'.", len(vectors), self._model)
        return vectors


    def embed_query(self, text: str) -> list[float]:
        """Embed a single search query; returns ``[]`` if no vector came back."""
        response = self._client.inference.embed(model=self._model, inputs=[text], parameters={"input_type": "query"})
        data = list(getattr(response, "data", None) or [])
        return _values_of(data[0]) if data else []


    def __repr__(self) -> str:
        return f"PineconeEmbedder(model='{self._model}')"
