from __future__ import annotations

import pytest

from conftest import DIMENSION, FakeEmbedder
from kbchat.data.posts import POSTS
from kbchat.src.core.indexer import Document, IndexingPipeline, build_records
from kbchat.src.database.vector_store import KnowledgeBaseIndex


def _pipeline(settings, client, embedder, documents=POSTS) -> IndexingPipeline:
    return IndexingPipeline(KnowledgeBaseIndex(settings, client), embedder, documents, dimension=DIMENSION)


def test_every_document_yields_one_record(settings, client, embedder) -> None:
    summary = _pipeline(settings, client, embedder).run()

    assert len(client.index.upserts) == 1
    upsert = client.index.upserts[0]
    assert upsert["namespace"] == settings.PINECONE_NAMESPACE

    records = upsert["vectors"]
    assert [r["id"] for r in records] == [str(doc.id) for doc in POSTS]
    assert [r["metadata"] for r in records] == [{"text": doc.content} for doc in POSTS]
    assert all(len(r["values"]) == DIMENSION for r in records)

    assert summary["total_documents"] == len(POSTS)
    assert summary["records_upserted"] == len(POSTS)
    assert summary["degenerate_records"] == 0


def test_all_texts_embedded_in_a_single_call(settings, client, embedder) -> None:
    _pipeline(settings, client, embedder).run()

    assert embedder.document_calls == [[doc.content for doc in POSTS]]


def test_provisions_before_writing(settings, client, embedder) -> None:
    _pipeline(settings, client, embedder).run()

    assert len(client.created) == 1
    assert client.list_calls == 1


def test_vectors_pair_with_documents_by_position(settings, client) -> None:
    docs = [Document(id=10, content="ten"), Document(id="b", content="bee")]
    _pipeline(settings, client, FakeEmbedder(), docs).run()

    records = client.index.upserts[0]["vectors"]
    assert records[0]["id"] == "10" and records[0]["values"] == [1.0] * DIMENSION
    assert records[1]["id"] == "b" and records[1]["values"] == [2.0] * DIMENSION


def test_missing_vectors_are_written_as_degenerate_records(settings, client) -> None:
    class ShortEmbedder(FakeEmbedder):
        def embed_documents(self, texts):
            return [[0.3] * DIMENSION, []]

    docs = [Document(id=1, content="a"), Document(id=2, content="b"), Document(id=3, content="c")]
    summary = _pipeline(settings, client, ShortEmbedder(), docs).run()

    records = client.index.upserts[0]["vectors"]
    assert [r["id"] for r in records] == ["1", "2", "3"]
    assert records[1]["values"] == []
    assert records[2]["values"] == []
    assert summary["degenerate_records"] == 2


def test_wrong_size_vectors_are_counted(settings, client) -> None:
    summary = _pipeline(settings, client, FakeEmbedder(dimension=3), [Document(id=1, content="a")]).run()

    assert summary["records_upserted"] == 1
    assert summary["degenerate_records"] == 1


def test_embedding_failure_propagates(settings, client, embedder) -> None:
    embedder.document_error = RuntimeError("embedding service down")

    with pytest.raises(RuntimeError, match="embedding service down"):
        _pipeline(settings, client, embedder).run()

    assert client.index.upserts == []


def test_empty_document_set_only_provisions(settings, client, embedder) -> None:
    summary = _pipeline(settings, client, embedder, []).run()

    assert summary["records_upserted"] == 0
    assert embedder.document_calls == []
    assert len(client.created) == 1


def test_build_records_stringifies_ids() -> None:
    records = build_records([Document(id=42, content="answer")], [[1.0, 2.0]])

    assert records == [{"id": "42", "values": [1.0, 2.0], "metadata": {"text": "answer"}}]


def test_static_posts_have_unique_ids() -> None:
    ids = [str(doc.id) for doc in POSTS]
    assert len(ids) == len(set(ids))
    assert all(doc.content.strip() for doc in POSTS)
