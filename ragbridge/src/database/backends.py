"""
ragbridge - Retrieval Backends
===============================
Explicit capability interface for the services ``retrieve_context``
can query, plus the factory that picks one from configuration.

Architecture
------------
``RetrievalBackend``
    Protocol every adapter satisfies: a ``name`` and an async
    ``retrieve(query, top_k, filter, include_metadata)`` returning
    normalised ``RetrievalResult`` objects.  Field-name drift between
    SDK versions (``text`` vs ``content``) is absorbed inside each
    adapter, never probed at call time.

``RagieBackend``
    Hosted Ragie retrieval API via the ``ragie`` SDK.

``LanceDBBackend`` (``vector_store.py``)
    Local LanceDB table searched with an injected embedder.

``FallbackBackend``
    Static development corpus from ``config/fallback_corpus.py``.

``build_backend`` / ``get_backend``
    Build the adapter named by ``settings.RETRIEVAL_BACKEND``.  Missing
    credentials or any initialisation failure degrade to
    ``FallbackBackend`` with a warning; ``get_backend`` caches the result
    at module level so the SDK client is reused across requests.

Usage:
    from ragbridge.src.database.backends import get_backend
    backend = get_backend()
    results = await backend.retrieve("what is RAG?", top_k=3, filter={}, include_metadata=True)
"""

from __future__ import annotations

import threading
from typing import Any, Protocol, runtime_checkable

from ragbridge.config.fallback_corpus import GENERAL_ENTRIES, GENERAL_RESULT_LIMIT, GENERAL_SOURCE_MARKER, TOPIC_RULES, FallbackEntry
from ragbridge.config.settings import Settings, settings
from ragbridge.src.core.models import DocumentMetadata, RetrievalFilter, RetrievalResult
from ragbridge.src.utils.logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  BACKEND PROTOCOL
# ══════════════════════════════════════════════════════════════════════


@runtime_checkable
class RetrievalBackend(Protocol):
    """Anything that can answer a retrieval query with normalised results."""

    name: str

    async def retrieve(self, query: str, top_k: int, filter: RetrievalFilter, include_metadata: bool) -> list[RetrievalResult]: ...


# ══════════════════════════════════════════════════════════════════════
#  FALLBACK BACKEND
# ══════════════════════════════════════════════════════════════════════


def select_fallback_entries(query: str) -> list[FallbackEntry]:
    """
    Pick static corpus entries for *query* by keyword containment.

    Topic rules (weather, document/artifact) win outright.  Otherwise a
    generic entry qualifies when its content contains the whole query or
    its source mentions RAG; at most ``GENERAL_RESULT_LIMIT`` are kept.
    """
    normalized = query.lower()

    for keywords, entries in TOPIC_RULES:
        if any(keyword in normalized for keyword in keywords):
            return list(entries)

    matched = [
        entry
        for entry in GENERAL_ENTRIES
        if normalized in entry["content"].lower() or GENERAL_SOURCE_MARKER in entry["metadata"]["source"].lower()
    ]
    return matched[:GENERAL_RESULT_LIMIT]


class FallbackBackend:
    """Serves the static development corpus; never touches the network."""

    name = "fallback"

    async def retrieve(self, query: str, top_k: int, filter: RetrievalFilter | None = None, include_metadata: bool = True) -> list[RetrievalResult]:
        return self.search(query, top_k, include_metadata)


    def search(self, query: str, top_k: int, include_metadata: bool = True) -> list[RetrievalResult]:
        """Synchronous variant used when the async path is unavailable."""
        entries = select_fallback_entries(query)[:top_k]
        logger.debug("[BACKEND] fallback served %d entr%s for '%s'", len(entries), "y" if len(entries) == 1 else "ies", query[:50])
        return [
            RetrievalResult(content=entry["content"], metadata=dict(entry["metadata"]) if include_metadata else None, score=entry["score"], origin="fallback")
            for entry in entries
        ]

    def __repr__(self) -> str:
        return "FallbackBackend()"


# ══════════════════════════════════════════════════════════════════════
#  RAGIE BACKEND
# ══════════════════════════════════════════════════════════════════════


class RagieBackend:
    """
    Adapter over the Ragie retrieval API.

    Parameters
    ----------
    client
        A ``ragie.Ragie`` instance (or anything exposing
        ``retrievals.retrieve_async(request=...)``).
    partition
        Optional Ragie partition every request is scoped to.
    """

    name = "ragie"

    __slots__ = ("_client", "_partition")

    def __init__(self, client: Any, partition: str | None = None) -> None:
        self._client = client
        self._partition = partition


    @classmethod
    def from_settings(cls, config: Settings) -> RagieBackend:
        """Build the SDK client from settings.  Raises if the key is missing."""
        if config.RAGIE_API_KEY is None:
            raise ValueError("RAGIE_API_KEY is not configured.")

        from ragie import Ragie

        client = Ragie(auth=config.RAGIE_API_KEY.get_secret_value())
        logger.info("[BACKEND] Ragie client created (partition=%s).", config.RAGIE_PARTITION or "default")
        return cls(client, partition=config.RAGIE_PARTITION)


    async def retrieve(self, query: str, top_k: int, filter: RetrievalFilter | None = None, include_metadata: bool = True) -> list[RetrievalResult]:
        request: dict[str, Any] = {"query": query, "top_k": top_k}
        if filter:
            request["filter"] = filter
        if self._partition:
            request["partition"] = self._partition

        response = await self._client.retrievals.retrieve_async(request=request)
        chunks = getattr(response, "scored_chunks", None) or []
        return [self._to_result(chunk, include_metadata) for chunk in chunks]


    @staticmethod
    def _to_result(chunk: Any, include_metadata: bool) -> RetrievalResult:
        """Map a Ragie ``ScoredChunk`` to a ``RetrievalResult``."""
        content = getattr(chunk, "text", None) or getattr(chunk, "content", None) or ""
        metadata: DocumentMetadata | None = None
        if include_metadata:
            metadata = dict(getattr(chunk, "document_metadata", None) or {})
            metadata.update(getattr(chunk, "metadata", None) or {})
            metadata.setdefault("source", getattr(chunk, "document_name", None))
        return RetrievalResult(content=content, metadata=metadata, score=getattr(chunk, "score", None))

    def __repr__(self) -> str:
        return f"RagieBackend(partition={self._partition!r})"


# ══════════════════════════════════════════════════════════════════════
#  FACTORY
# ══════════════════════════════════════════════════════════════════════


def _build_lancedb(config: Settings) -> RetrievalBackend:
    if config.GOOGLE_API_KEY is None:
        raise ValueError("GOOGLE_API_KEY is not configured (needed for query embeddings).")

    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    from ragbridge.src.database.vector_store import LanceDBBackend

    embedder = GoogleGenerativeAIEmbeddings(model=config.EMBEDDING_MODEL, google_api_key=config.GOOGLE_API_KEY.get_secret_value())
    store = LanceDBBackend(embedder, db_path=str(config.LANCEDB_PATH), table_name=config.LANCEDB_TABLE_NAME)
    if store.table is None:
        raise RuntimeError(f"LanceDB table '{config.LANCEDB_TABLE_NAME}' does not exist. Run setup_db first.")
    return store


def build_backend(config: Settings | None = None) -> RetrievalBackend:
    """
    Build the retrieval backend selected by ``config.RETRIEVAL_BACKEND``.

    Never raises: any failure to configure the requested backend is
    logged and answered with ``FallbackBackend``.
    """
    config = config or settings
    choice = config.RETRIEVAL_BACKEND

    if choice == "fallback":
        logger.info("[BACKEND] Using static fallback corpus (configured).")
        return FallbackBackend()

    try:
        if choice == "ragie":
            return RagieBackend.from_settings(config)
        return _build_lancedb(config)
    except Exception:
        logger.warning("[BACKEND] '%s' backend unavailable, serving fallback corpus.", choice, exc_info=True)
        return FallbackBackend()


_backend: RetrievalBackend | None = None
_BACKEND_LOCK = threading.Lock()


def get_backend() -> RetrievalBackend:
    """Return (or create) the module-level retrieval backend."""
    global _backend
    with _BACKEND_LOCK:
        if _backend is None:
            _backend = build_backend(settings)
            logger.info("[BACKEND] Active retrieval backend: %s", _backend.name)
        return _backend


def reset_backend() -> None:
    """Drop the cached backend so the next ``get_backend`` rebuilds it."""
    global _backend
    with _BACKEND_LOCK:
        _backend = None
