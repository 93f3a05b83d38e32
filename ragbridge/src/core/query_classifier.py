"""
ragbridge - Query Classifier
=============================
Maps a raw user query (and the selected chat model) to a ``RAGConfig``.

Rules are an ordered table of ``(name, predicate, delta)``; the first
predicate that matches wins and its delta is applied on top of
``DEFAULT_RAG_CONFIG``.  With no match the default config is returned.

    conversational   → retrieval disabled
    factual          → top_k = 5
    instructional    → top_k = 4, max_chars_per_doc = 2000
    reasoning model  → metadata on, sources visible

Usage:
    from ragbridge.src.core.query_classifier import get_rag_config
    config = get_rag_config("what is RAG?", "chat-model")
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, NamedTuple

from ragbridge.config.settings import settings
from ragbridge.src.core.models import DEFAULT_RAG_CONFIG, RAGConfig
from ragbridge.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Query patterns ─────────────────────────────────────────────────────
_CONVERSATIONAL_RE = re.compile(r"^(hi|hello|hey|what's up|how are you)", re.IGNORECASE)
_FACTUAL_RE = re.compile(r"(what is|who is|when did|where is|why is|how does)", re.IGNORECASE)
_INSTRUCTIONAL_RE = re.compile(r"(write|generate|create|build|implement|code|develop)", re.IGNORECASE)


class ClassificationRule(NamedTuple):
    name: str
    predicate: Callable[[str, str], bool]
    delta: Callable[[RAGConfig], dict[str, Any]]


def _with_format(config: RAGConfig, **changes: Any) -> dict[str, Any]:
    return {"format_options": config.format_options.model_copy(update=changes)}


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("conversational", lambda q, m: bool(_CONVERSATIONAL_RE.search(q)), lambda c: {"enabled": False}),
    ClassificationRule("factual", lambda q, m: bool(_FACTUAL_RE.search(q)), lambda c: {"top_k": 5}),
    ClassificationRule("instructional", lambda q, m: bool(_INSTRUCTIONAL_RE.search(q)), lambda c: {"top_k": 4, **_with_format(c, max_chars_per_doc=2000)}),
    ClassificationRule("reasoning_model", lambda q, m: m in settings.REASONING_MODELS, lambda c: {"include_metadata": True, **_with_format(c, hide_source=False)}),
)


def _match_rule(query: str, selected_model: str) -> ClassificationRule | None:
    for rule in CLASSIFICATION_RULES:
        if rule.predicate(query, selected_model):
            return rule
    return None


def classify_query(query: str, selected_model: str) -> str | None:
    """Return the name of the first matching rule, or ``None``."""
    rule = _match_rule(query, selected_model)
    return rule.name if rule else None


def get_rag_config(query: str, selected_model: str = settings.DEFAULT_CHAT_MODEL) -> RAGConfig:
    """
    Derive the retrieval configuration for *query*.

    Pure function of its inputs; never raises.

    Args:
        query:          The user's query text.
        selected_model: Identifier of the chat model the user picked.

    Returns:
        A fresh ``RAGConfig`` (``DEFAULT_RAG_CONFIG`` when no rule matches).
    """
    rule = _match_rule(query, selected_model)
    if rule is None:
        logger.debug("[CLASSIFY] rule=default top_k=%d", DEFAULT_RAG_CONFIG.top_k)
        return DEFAULT_RAG_CONFIG

    config = DEFAULT_RAG_CONFIG.model_copy(update=rule.delta(DEFAULT_RAG_CONFIG))
    logger.debug("[CLASSIFY] rule=%s enabled=%s top_k=%d", rule.name, config.enabled, config.top_k)
    return config
