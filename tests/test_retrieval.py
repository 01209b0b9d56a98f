from __future__ import annotations

import pytest
from langchain_core.tools import ToolException

from conftest import FakeEmbedder, make_match
from kbchat.src.core.retrieval import KnowledgeBaseError, KnowledgeBaseRetriever
from kbchat.src.database.vector_store import KnowledgeBaseIndex


def _retriever(settings, client, embedder, top_k: int = 3) -> KnowledgeBaseRetriever:
    return KnowledgeBaseRetriever(KnowledgeBaseIndex(settings, client), embedder, top_k=top_k)


def test_returns_articles_from_namespace(settings, client, embedder) -> None:
    client.index.matches = [make_match(1, 0.9), make_match(2, 0.8)]

    payload = _retriever(settings, client, embedder).fetch_articles("billing")

    assert payload == {
        "articles": [
            {"id": "1", "score": 0.9, "metadata": {"text": "article 1"}},
            {"id": "2", "score": 0.8, "metadata": {"text": "article 2"}},
        ]
    }
    assert embedder.query_calls == ["billing"]
    query = client.index.queries[0]
    assert query["top_k"] == 3
    assert query["namespace"] == settings.PINECONE_NAMESPACE
    assert query["include_values"] is False
    assert query["include_metadata"] is True


def test_never_returns_more_than_three(settings, client, embedder) -> None:
    client.index.matches = [make_match(i) for i in range(6)]

    payload = _retriever(settings, client, embedder, top_k=10).fetch_articles("anything")

    assert len(payload["articles"]) == 3
    assert client.index.queries[0]["top_k"] == 3


def test_no_matches_gives_empty_list(settings, client, embedder) -> None:
    assert _retriever(settings, client, embedder).fetch_articles("nothing") == {"articles": []}


@pytest.mark.parametrize("bad_vector", [[], (), ["a", "b"], [0.1, None], [True, False], "0.1,0.2"])
def test_invalid_embedding_fails_before_query(settings, client, bad_vector) -> None:
    retriever = _retriever(settings, client, FakeEmbedder(query_vector=bad_vector))

    with pytest.raises(KnowledgeBaseError, match="Failed to fetch knowledge base articles."):
        retriever.fetch_articles("reset password")

    assert client.index.queries == []


def test_query_failure_is_wrapped_without_cause(settings, client, embedder) -> None:
    client.index.query_error = TimeoutError("pinecone timeout")

    with pytest.raises(KnowledgeBaseError) as excinfo:
        _retriever(settings, client, embedder).fetch_articles("billing")

    assert str(excinfo.value) == "Failed to fetch knowledge base articles."
    assert excinfo.value.__cause__ is None
    assert excinfo.value.__suppress_context__ is True


def test_error_is_a_tool_exception() -> None:
    assert issubclass(KnowledgeBaseError, ToolException)


def test_tool_metadata(settings, client, embedder) -> None:
    tool = _retriever(settings, client, embedder).as_tool()

    assert tool.name == "FetchKnowledgebaseArticles"
    assert tool.description == "Fetch relevant knowledge base articles based on a user query"
    schema = tool.args_schema.model_json_schema()
    assert schema["required"] == ["query"]
    assert schema["properties"]["query"]["type"] == "string"
    assert schema["properties"]["query"]["description"] == "The User query for the knowledge base index search to perform"


def test_tool_invocation_returns_payload(settings, client, embedder) -> None:
    client.index.matches = [make_match(3)]
    tool = _retriever(settings, client, embedder).as_tool()

    result = tool.invoke({"query": "integrations"})

    assert result == {"articles": [{"id": "3", "score": 0.9, "metadata": {"text": "article 3"}}]}


def test_tool_reports_failure_message(settings, client) -> None:
    tool = _retriever(settings, client, FakeEmbedder(query_vector=[])).as_tool()

    assert tool.invoke({"query": "integrations"}) == "Failed to fetch knowledge base articles."


def test_tool_reports_invalid_arguments(settings, client, embedder) -> None:
    tool = _retriever(settings, client, embedder).as_tool()

    assert tool.invoke({"q": "integrations"}) == "Invalid arguments: a 'query' string is required."
    assert embedder.query_calls == []
