from __future__ import annotations

import sys
from types import SimpleNamespace

import pytest
from pydantic import SecretStr

from ragbridge.config.settings import Settings
from ragbridge.src.database import backends
from ragbridge.src.database.backends import FallbackBackend, RagieBackend, RetrievalBackend, build_backend, get_backend, select_fallback_entries


class FakeRetrievals:
    def __init__(self, chunks=None, error: Exception | None = None) -> None:
        self.chunks = chunks or []
        self.error = error
        self.requests: list[dict] = []

    async def retrieve_async(self, request: dict):
        self.requests.append(request)
        if self.error:
            raise self.error
        return SimpleNamespace(scored_chunks=self.chunks)


def fake_client(**kwargs) -> SimpleNamespace:
    return SimpleNamespace(retrievals=FakeRetrievals(**kwargs))


# ── fallback corpus selection ──────────────────────────────────────────

def test_weather_queries_get_weather_entries() -> None:
    sources = [e["metadata"]["source"] for e in select_fallback_entries("Weather in Paris tomorrow")]

    assert sources == ["Weather API Integration Guide", "API Documentation"]


@pytest.mark.parametrize("query", ["create a document for me", "open the artifact panel"])
def test_document_queries_get_tool_entries(query: str) -> None:
    sources = [e["metadata"]["source"] for e in select_fallback_entries(query)]

    assert sources == ["Document Tool Documentation", "UI Component Guide"]


def test_generic_queries_get_rag_sourced_entries() -> None:
    entries = select_fallback_entries("what is RAG?")

    assert len(entries) == 3
    assert all("rag" in e["metadata"]["source"].lower() for e in entries)


def test_generic_selection_also_matches_content() -> None:
    sources = [e["metadata"]["source"] for e in select_fallback_entries("prompt engineering is the practice")]

    assert sources == ["RAG Documentation", "AI Best Practices Guide", "RAG Architecture Guide"]


@pytest.mark.asyncio
async def test_fallback_backend_respects_top_k_and_metadata_switch() -> None:
    backend = FallbackBackend()

    one = await backend.retrieve("what is RAG?", 1, {}, True)
    bare = await backend.retrieve("what is RAG?", 3, {}, False)

    assert len(one) == 1 and one[0].origin == "fallback" and one[0].score == 0.92
    assert len(bare) == 3 and all(r.metadata is None for r in bare)


def test_fallback_results_do_not_share_corpus_dicts() -> None:
    result = FallbackBackend().search("weather", 1)[0]

    assert result.metadata is not select_fallback_entries("weather")[0]["metadata"]


# ── Ragie adapter ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_ragie_maps_scored_chunks() -> None:
    chunk = SimpleNamespace(text="Chunk text", score=0.42, document_name="handbook.pdf", document_metadata={"date": "2024-02-02", "team": "ml"}, metadata={"page": 3})
    client = fake_client(chunks=[chunk])

    results = await RagieBackend(client).retrieve("q", 2, {}, True)

    assert client.retrievals.requests == [{"query": "q", "top_k": 2}]
    assert results[0].content == "Chunk text"
    assert results[0].score == 0.42
    assert results[0].metadata == {"date": "2024-02-02", "team": "ml", "page": 3, "source": "handbook.pdf"}


@pytest.mark.asyncio
async def test_ragie_keeps_explicit_source_and_accepts_content_field() -> None:
    chunk = SimpleNamespace(content="legacy field", score=None, document_name="file.txt", document_metadata={"source": "Team Wiki"}, metadata=None)

    results = await RagieBackend(fake_client(chunks=[chunk])).retrieve("q", 1, {}, True)

    assert results[0].content == "legacy field"
    assert results[0].source == "Team Wiki"


@pytest.mark.asyncio
async def test_ragie_sends_filter_and_partition() -> None:
    client = fake_client()

    await RagieBackend(client, partition="tenant-a").retrieve("q", 4, {"scope": "public"}, False)

    assert client.retrievals.requests == [{"query": "q", "top_k": 4, "filter": {"scope": "public"}, "partition": "tenant-a"}]


@pytest.mark.asyncio
async def test_ragie_without_metadata() -> None:
    chunk = SimpleNamespace(text="t", score=0.1, document_name="d", document_metadata={"a": 1}, metadata={})

    results = await RagieBackend(fake_client(chunks=[chunk])).retrieve("q", 1, {}, False)

    assert results[0].metadata is None


@pytest.mark.asyncio
async def test_ragie_errors_propagate_to_caller() -> None:
    with pytest.raises(TimeoutError):
        await RagieBackend(fake_client(error=TimeoutError("slow"))).retrieve("q", 1, {}, True)


# ── factory ────────────────────────────────────────────────────────────

def test_build_fallback_when_configured() -> None:
    assert isinstance(build_backend(Settings(RETRIEVAL_BACKEND="fallback")), FallbackBackend)


def test_build_ragie_without_key_degrades_to_fallback() -> None:
    assert isinstance(build_backend(Settings(RETRIEVAL_BACKEND="ragie", RAGIE_API_KEY=None)), FallbackBackend)


def test_build_ragie_with_key(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[str] = []

    class FakeRagie:
        def __init__(self, auth: str) -> None:
            created.append(auth)
            self.retrievals = FakeRetrievals()

    monkeypatch.setitem(sys.modules, "ragie", SimpleNamespace(Ragie=FakeRagie))

    backend = build_backend(Settings(RETRIEVAL_BACKEND="ragie", RAGIE_API_KEY=SecretStr("secret-key"), RAGIE_PARTITION="p1"))

    assert isinstance(backend, RagieBackend)
    assert created == ["secret-key"]
    assert "secret-key" not in repr(backend)


def test_build_ragie_init_failure_degrades_to_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    def explode(auth: str):
        raise RuntimeError("sdk broken")

    monkeypatch.setitem(sys.modules, "ragie", SimpleNamespace(Ragie=explode))

    assert isinstance(build_backend(Settings(RETRIEVAL_BACKEND="ragie", RAGIE_API_KEY=SecretStr("k"))), FallbackBackend)


def test_build_lancedb_without_google_key_degrades_to_fallback() -> None:
    assert isinstance(build_backend(Settings(RETRIEVAL_BACKEND="lancedb", GOOGLE_API_KEY=None)), FallbackBackend)


def test_get_backend_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(backends.settings, "RETRIEVAL_BACKEND", "fallback")

    first = get_backend()

    assert get_backend() is first
    backends.reset_backend()
    assert get_backend() is not first


def test_adapters_satisfy_protocol() -> None:
    assert isinstance(FallbackBackend(), RetrievalBackend)
    assert isinstance(RagieBackend(fake_client()), RetrievalBackend)
