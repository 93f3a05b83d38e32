from __future__ import annotations

from collections.abc import Callable

import pytest

from ragbridge.src.core.models import RetrievalFilter, RetrievalResult
from ragbridge.src.database import backends


class StaticBackend:
    """Retrieval backend double answering from a callable and recording calls."""

    name = "static"

    def __init__(self, responder: Callable[[str, int], list[RetrievalResult]] | list[RetrievalResult] | None = None) -> None:
        if responder is None:
            responder = []
        if isinstance(responder, list):
            canned = responder
            responder = lambda query, top_k: list(canned)  # noqa: E731
        self._responder = responder
        self.calls: list[tuple[str, int, RetrievalFilter, bool]] = []

    async def retrieve(self, query: str, top_k: int, filter: RetrievalFilter, include_metadata: bool) -> list[RetrievalResult]:
        self.calls.append((query, top_k, filter, include_metadata))
        return self._responder(query, top_k)


class FailingBackend:
    name = "failing"

    def __init__(self, fail_on: Callable[[str], bool] | None = None) -> None:
        self._fail_on = fail_on or (lambda query: True)
        self.calls: list[str] = []

    async def retrieve(self, query: str, top_k: int, filter: RetrievalFilter, include_metadata: bool) -> list[RetrievalResult]:
        self.calls.append(query)
        if self._fail_on(query):
            raise ConnectionError(f"backend unreachable for {query!r}")
        return [RetrievalResult(content=f"live result for {query}", metadata={"source": "Live", "date": "2024-05-01"}, score=0.6)]


def doc(content: str, source: str | None = "Doc", score: float | None = 0.5, date: str | None = "2024-01-01") -> RetrievalResult:
    metadata = None if source is None else {"source": source, "date": date}
    return RetrievalResult(content=content, metadata=metadata, score=score)


@pytest.fixture(autouse=True)
def _reset_backend_cache():
    backends.reset_backend()
    yield
    backends.reset_backend()
