"""
kbchat - Knowledge Base Retrieval Action
=========================================
The single action the conversational runtime can call:
``FetchKnowledgebaseArticles(query)``.

Flow:
    1. Embed the query (``input_type="query"``).
    2. Validate the embedding (a non-empty sequence of numbers)
       before any index call is made.
    3. Query the namespace for the ``SEARCH_TOP_K`` nearest records,
       metadata only.
    4. Return ``{"articles": [...]}``.

Any failure is logged with its cause and re-raised as a generic
``KnowledgeBaseError``; the cause is not chained.  ``KnowledgeBaseError``
is a LangChain ``ToolException``, so when the action runs inside the
runtime its message is handed back to the model instead of failing the
request.  Arguments that fail the input schema are reported the same way.
"""

from __future__ import annotations

from numbers import Real

from langchain_core.tools import StructuredTool, ToolException
from pydantic import BaseModel, Field

from kbchat.config.prompt_templates import FETCH_ARTICLES_ACTION_DESCRIPTION, FETCH_ARTICLES_ACTION_NAME, FETCH_ARTICLES_QUERY_DESCRIPTION, INVALID_ARGUMENTS_MESSAGE, RETRIEVAL_FAILURE_MESSAGE
from kbchat.src.core.embedder import Embedder
from kbchat.src.database.vector_store import KnowledgeBaseIndex, SearchResult
from kbchat.src.utils.logger import get_logger

logger = get_logger(__name__)

ArticlesPayload = dict[str, list[SearchResult]]

# Hard ceiling on returned matches regardless of configuration.
MAX_ARTICLES = 3


class KnowledgeBaseError(ToolException):
    """Generic retrieval failure surfaced to the runtime and the model."""


class FetchArticlesInput(BaseModel):
    """Arguments of the retrieval action."""

    query: str = Field(..., description=FETCH_ARTICLES_QUERY_DESCRIPTION)


def _is_valid_embedding(vector: object) -> bool:
    if not isinstance(vector, (list, tuple)) or not vector:
        return False
    return all(isinstance(x, Real) and not isinstance(x, bool) for x in vector)


class KnowledgeBaseRetriever:
    """
    Embeds a free-text query and fetches the nearest articles.

    Parameters
    ----------
    store
        The ``KnowledgeBaseIndex`` the startup pipeline writes to.
    embedder
        The same ``Embedder`` used for indexing.
    top_k
        Number of matches to request; capped at ``MAX_ARTICLES``.
    """

    __slots__ = ("_store", "_embedder", "_top_k")

    def __init__(self, store: KnowledgeBaseIndex, embedder: Embedder, top_k: int = MAX_ARTICLES) -> None:
        self._store = store
        self._embedder = embedder
        self._top_k = max(1, min(top_k, MAX_ARTICLES))


    def fetch_articles(self, query: str) -> ArticlesPayload:
        """
        Return ``{"articles": [...]}`` with at most ``MAX_ARTICLES`` matches.

        Raises
        ------
        KnowledgeBaseError
            On an invalid embedding or any embedding/query failure.
        """
        try:
            query_vector = self._embedder.embed_query(query)
            if not _is_valid_embedding(query_vector):
                raise ValueError("Invalid embedding: Expected a non-empty array of numbers.")

            logger.debug("Query embedded: %d dimension(s) for '%.60s'.", len(query_vector), query)
            matches = self._store.query([float(x) for x in query_vector], top_k=self._top_k)
            return {"articles": matches[: self._top_k]}

        except Exception:
            logger.exception("Error fetching knowledge base articles.")
            raise KnowledgeBaseError(RETRIEVAL_FAILURE_MESSAGE) from None


    def as_tool(self) -> StructuredTool:
        """Expose ``fetch_articles`` as the runtime's retrieval action."""
        return StructuredTool.from_function(
            func=self.fetch_articles,
            name=FETCH_ARTICLES_ACTION_NAME,
            description=FETCH_ARTICLES_ACTION_DESCRIPTION,
            args_schema=FetchArticlesInput,
            handle_tool_error=True,
            handle_validation_error=INVALID_ARGUMENTS_MESSAGE,
        )
