"""
ragbridge - RAG Engine
=======================
Entry point used by the chat route before every language-model call:
given the system prompt and the conversation so far, return either the
untouched prompt or one enriched with retrieved context.

Pipeline
--------
    1. Last user message → none: return prompt unchanged.
    2. Extract its text   → empty: return prompt unchanged.
    3. Classify query     → retrieval disabled: return prompt unchanged.
    4. Retrieve context   → no results: return prompt unchanged.
    5. Format context     → empty: return prompt unchanged.
    6. Build the enhanced prompt and return it.

Every short-circuit hands back the caller's prompt verbatim; the engine
never returns a partially built or error-bearing string.  No state is
kept between calls, so one engine module serves concurrent requests.

Usage:
    from ragbridge.src.core.rag_engine import enhance_prompt_with_rag
    prompt = await enhance_prompt_with_rag(system_prompt, messages, hints, "chat-model")
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any

from ragbridge.config.settings import settings
from ragbridge.src.core.models import ChatMessage, RequestHints, RetrievalOptions
from ragbridge.src.core.prompt_engineering import create_enhanced_rag_prompt, format_retrieved_context
from ragbridge.src.core.query_classifier import get_rag_config
from ragbridge.src.core.retriever import retrieve_context
from ragbridge.src.database.backends import RetrievalBackend
from ragbridge.src.utils.logger import get_logger

logger = get_logger(__name__)

MessageLike = ChatMessage | Mapping[str, Any]


def _as_message(message: MessageLike) -> ChatMessage:
    if isinstance(message, ChatMessage):
        return message
    return ChatMessage.model_validate(message)


def find_last_user_message(messages: Sequence[MessageLike]) -> ChatMessage | None:
    """Return the most recent message with role ``"user"``, if any."""
    for message in reversed(messages):
        parsed = _as_message(message)
        if parsed.role == "user":
            return parsed
    return None


def extract_query_from_message(message: MessageLike) -> str:
    """
    Pull the query text out of a chat message.

    Plain string ``content`` wins when non-empty.  Otherwise the ``text``
    of every ``"text"`` part (from ``content`` when it is a part list,
    else from ``parts``) is joined with single spaces.
    """
    message = _as_message(message)
    if isinstance(message.content, str) and message.content:
        return message.content

    parts = message.content if isinstance(message.content, list) else message.parts
    texts = [part.text or "" for part in parts if part.type == "text"]
    return " ".join(texts)


async def enhance_prompt_with_rag(system_prompt: str, messages: Sequence[MessageLike], request_hints: RequestHints | Mapping[str, Any] | None = None, selected_model: str = settings.DEFAULT_CHAT_MODEL, backend: RetrievalBackend | None = None) -> str:
    """
    Return *system_prompt* enriched with context for the latest user query.

    Args:
        system_prompt:  The prompt the chat route would otherwise send.
        messages:       Conversation history, oldest first.  ``ChatMessage``
                        objects or plain dicts of the same shape.
        request_hints:  Geolocation hints from the router; accepted for
                        interface parity, not used for retrieval.
        selected_model: Chat model id; reasoning variants get full metadata.
        backend:        Override the configured retrieval backend.

    Returns:
        The enhanced prompt, or *system_prompt* unchanged on any no-op path.
    """
    t_start = time.perf_counter()

    user_message = find_last_user_message(messages)
    if user_message is None:
        logger.debug("[RAG] No user message in history; prompt unchanged.")
        return system_prompt

    query = extract_query_from_message(user_message)
    if not query:
        logger.debug("[RAG] Empty user query; prompt unchanged.")
        return system_prompt

    config = get_rag_config(query, selected_model)
    if not config.enabled:
        logger.info("[RAG] Retrieval disabled for query '%s'.", query[:50])
        return system_prompt

    options = RetrievalOptions(query=query, top_k=config.top_k, filter=config.filter or {}, include_metadata=config.include_metadata)
    results = await retrieve_context(options, backend=backend)
    if not results:
        logger.info("[RAG] No documents retrieved; prompt unchanged.")
        return system_prompt

    context = format_retrieved_context(results, config.format_options)
    if not context:
        logger.info("[RAG] Formatted context is empty; prompt unchanged.")
        return system_prompt

    enhanced = create_enhanced_rag_prompt(system_prompt, query, context)
    total_ms = (time.perf_counter() - t_start) * 1000
    logger.info("[RAG] Prompt enhanced with %d document(s): %d → %d chars in %.1fms", len(results), len(system_prompt), len(enhanced), total_ms)
    return enhanced
