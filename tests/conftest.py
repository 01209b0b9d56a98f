from __future__ import annotations

from types import SimpleNamespace

import pytest

from kbchat.config.settings import Settings, get_settings

REQUIRED_ENV = (
    "PINECONE_API_KEY",
    "NEXT_PUBLIC_PINECONE_API_KEY",
    "AZURE_OPENAI_API_KEY",
    "NEXT_PUBLIC_AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_DEPLOYMENT_NAME",
)

DIMENSION = 8


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "PINECONE_API_KEY": "pc-test-key-1234",
        "AZURE_OPENAI_API_KEY": "az-test-key-5678",
        "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
        "AZURE_OPENAI_DEPLOYMENT_NAME": "gpt-test",
        "PINECONE_RETRY_DELAY_SECONDS": 0.0,
        "PINECONE_PROVISION_WAIT_SECONDS": 0.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# Pinecone fakes
# ---------------------------------------------------------------------------


class FakeIndexList:
    def __init__(self, names: list[str]) -> None:
        self._names = names

    def names(self) -> list[str]:
        return list(self._names)


class FakeIndex:
    def __init__(self) -> None:
        self.upserts: list[dict] = []
        self.queries: list[dict] = []
        self.matches: list[SimpleNamespace] = []
        self.query_error: Exception | None = None
        self.vector_counts: dict[str, int] = {}

    def upsert(self, vectors, namespace):
        self.upserts.append({"vectors": list(vectors), "namespace": namespace})
        self.vector_counts[namespace] = self.vector_counts.get(namespace, 0) + len(vectors)
        return SimpleNamespace(upserted_count=len(vectors))

    def query(self, **kwargs):
        self.queries.append(kwargs)
        if self.query_error is not None:
            raise self.query_error
        return SimpleNamespace(matches=list(self.matches))

    def describe_index_stats(self):
        return SimpleNamespace(namespaces={ns: SimpleNamespace(vector_count=n) for ns, n in self.vector_counts.items()})


class FakeInference:
    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.response_data: list | None = None

    def embed(self, model, inputs, parameters=None):
        self.calls.append({"model": model, "inputs": list(inputs), "parameters": parameters})
        if self.response_data is not None:
            return SimpleNamespace(data=self.response_data)
        return SimpleNamespace(data=[SimpleNamespace(values=[0.5] * DIMENSION) for _ in inputs])


class FakePineconeClient:
    """In-process stand-in for ``pinecone.Pinecone``."""

    def __init__(self, existing: list[str] | None = None, list_failures: int = 0) -> None:
        self.existing: list[str] = list(existing or [])
        self.list_failures = list_failures
        self.list_calls = 0
        self.created: list[dict] = []
        self.deleted: list[str] = []
        self.index = FakeIndex()
        self.inference = FakeInference()

    def list_indexes(self) -> FakeIndexList:
        self.list_calls += 1
        if self.list_failures > 0:
            self.list_failures -= 1
            raise ConnectionError(f"list_indexes failed (call {self.list_calls})")
        return FakeIndexList(self.existing)

    def create_index(self, name, dimension, metric, spec):
        self.created.append({"name": name, "dimension": dimension, "metric": metric, "spec": spec})
        self.existing.append(name)

    def Index(self, name):  # noqa: N802 - mirrors the SDK
        return self.index

    def delete_index(self, name):
        self.deleted.append(name)
        self.existing.remove(name)


class FakeEmbedder:
    def __init__(self, query_vector: list | None = None, dimension: int = DIMENSION) -> None:
        self.query_vector = [0.1] * dimension if query_vector is None else query_vector
        self.dimension = dimension
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []
        self.document_error: Exception | None = None

    def embed_documents(self, texts):
        self.document_calls.append(list(texts))
        if self.document_error is not None:
            raise self.document_error
        return [[float(i)] * self.dimension for i, _ in enumerate(texts, 1)]

    def embed_query(self, text):
        self.query_calls.append(text)
        return self.query_vector


def make_match(i: int, score: float = 0.9) -> SimpleNamespace:
    return SimpleNamespace(id=str(i), score=score, values=[], metadata={"text": f"article {i}"})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return make_settings(PINECONE_DIMENSION=DIMENSION)


@pytest.fixture
def client() -> FakePineconeClient:
    return FakePineconeClient()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Remove every required variable and any ``.env`` influence."""
    for name in REQUIRED_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setitem(Settings.model_config, "env_file", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
