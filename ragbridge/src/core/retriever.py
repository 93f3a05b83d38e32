"""
ragbridge - Retrieval Client
=============================
Fetches supporting documents for a query from the configured backend.

Flow:
    1. Resolve the backend (injected, or the cached ``get_backend()``
       built in a worker thread).
    2. Derive the expansion query.
    3. Run main + expansion queries concurrently; a failure in either
       is replaced by fallback data for that query only.
    4. Tag origins, default and discount scores.
    5. Concatenate → deduplicate → rerank → truncate to ``top_k``.

``retrieve_context`` never raises: any unexpected error answers with the
fallback corpus for the original query.
"""

from __future__ import annotations

import asyncio
import math
import time

from ragbridge.config.settings import settings
from ragbridge.src.core.models import ResultOrigin, RetrievalOptions, RetrievalResult
from ragbridge.src.core.prompt_engineering import generate_expansion_query, rerank_results
from ragbridge.src.database.backends import FallbackBackend, RetrievalBackend, get_backend
from ragbridge.src.utils.logger import get_logger
from ragbridge.src.utils.text_utils import dedup_key

logger = get_logger(__name__)

# Score assumed when a backend omits one
_DEFAULT_MAIN_SCORE = 0.9
_DEFAULT_EXPANSION_SCORE = 0.7

_fallback = FallbackBackend()


async def _safe_retrieve(backend: RetrievalBackend, query: str, top_k: int, options: RetrievalOptions) -> list[RetrievalResult]:
    """Query *backend*, substituting fallback data if the call fails."""
    try:
        return await backend.retrieve(query, top_k, options.filter, options.include_metadata)
    except Exception:
        logger.exception("[RETRIEVE] %s backend failed for query '%s'; using fallback data.", backend.name, query[:50])
        return _fallback.search(query, top_k, options.include_metadata)


def _normalise(results: list[RetrievalResult], origin: ResultOrigin, include_metadata: bool) -> list[RetrievalResult]:
    normalised: list[RetrievalResult] = []
    for result in results:
        if origin == "main":
            score = result.score or _DEFAULT_MAIN_SCORE
        else:
            score = (result.score or _DEFAULT_EXPANSION_SCORE) * settings.EXPANSION_SCORE_WEIGHT
        normalised.append(result.model_copy(update={"score": score, "origin": origin, "metadata": result.metadata if include_metadata else None}))
    return normalised


def remove_duplicate_results(results: list[RetrievalResult], prefix_chars: int | None = None) -> list[RetrievalResult]:
    """
    Drop results whose leading content matches an earlier result.

    Two results are duplicates when the first *prefix_chars* characters
    of their content, trimmed and lower-cased, are equal.  The first
    occurrence is kept and order is preserved.
    """
    prefix_chars = prefix_chars or settings.DEDUP_PREFIX_CHARS
    seen: set[str] = set()
    unique: list[RetrievalResult] = []
    for result in results:
        key = dedup_key(result.content, prefix_chars)
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique


async def retrieve_context(options: RetrievalOptions, backend: RetrievalBackend | None = None) -> list[RetrievalResult]:
    """
    Retrieve up to ``options.top_k`` documents for ``options.query``.

    Args:
        options: Query, result count, filter and metadata switch.
        backend: Override the configured backend (tests, previews).

    Returns:
        Deduplicated, reranked results, at most ``top_k`` of them.
    """
    t_start = time.perf_counter()
    query, top_k = options.query, options.top_k

    try:
        backend = backend or await asyncio.to_thread(get_backend)
        expansion_query = generate_expansion_query(query)
        main_k = math.ceil(top_k * settings.MAIN_QUERY_RATIO)
        expansion_k = math.ceil(top_k * settings.EXPANSION_QUERY_RATIO)

        main_results, expansion_results = await asyncio.gather(
            _safe_retrieve(backend, query, main_k, options),
            _safe_retrieve(backend, expansion_query, expansion_k, options),
        )

        merged = _normalise(main_results, "main", options.include_metadata) + _normalise(expansion_results, "expansion", options.include_metadata)
        unique = remove_duplicate_results(merged)
        final = rerank_results(query, unique)[:top_k]

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[RETRIEVE] backend=%s main=%d expansion=%d unique=%d returned=%d in %.1fms", backend.name, len(main_results), len(expansion_results), len(unique), len(final), elapsed_ms)
        return final
    except Exception:
        logger.exception("[RETRIEVE] Retrieval pipeline failed; serving fallback corpus.")
        return _fallback.search(query, top_k, options.include_metadata)
