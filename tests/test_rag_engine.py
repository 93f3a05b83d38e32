from __future__ import annotations

import pytest
from conftest import FailingBackend, StaticBackend, doc

from ragbridge.config.settings import Settings
from ragbridge.src.core.models import ChatMessage, MessagePart, RequestHints
from ragbridge.src.core.rag_engine import enhance_prompt_with_rag, extract_query_from_message, find_last_user_message
from ragbridge.src.database.backends import FallbackBackend, build_backend

SYSTEM_PROMPT = "You are a friendly assistant! Keep your responses concise and helpful."
HINTS = RequestHints(latitude="52.37", longitude="4.89", city="Amsterdam", country="NL")


# ── message helpers ────────────────────────────────────────────────────

def test_extract_prefers_plain_content() -> None:
    message = {"role": "user", "content": "what is RAG?", "parts": [{"type": "text", "text": "ignored"}]}

    assert extract_query_from_message(message) == "what is RAG?"


def test_extract_joins_text_parts() -> None:
    message = {"role": "user", "parts": [{"type": "text", "text": "what is"}, {"type": "image", "url": "https://x/y.png"}, {"type": "text", "text": "RAG?"}]}

    assert extract_query_from_message(message) == "what is RAG?"


def test_extract_accepts_part_list_in_content() -> None:
    message = ChatMessage(role="user", content=[MessagePart(type="text", text="hello"), MessagePart(type="text", text="world")])

    assert extract_query_from_message(message) == "hello world"


def test_extract_empty_content_uses_parts() -> None:
    assert extract_query_from_message({"role": "user", "content": "", "parts": [{"type": "text", "text": "from parts"}]}) == "from parts"


def test_extract_nothing() -> None:
    assert extract_query_from_message({"role": "user"}) == ""


def test_find_last_user_message() -> None:
    history = [{"role": "user", "content": "first"}, {"role": "assistant", "content": "reply"}, {"role": "user", "content": "second"}, {"role": "assistant", "content": "reply 2"}]

    assert find_last_user_message(history).content == "second"
    assert find_last_user_message([{"role": "assistant", "content": "only me"}]) is None


# ── no-op paths ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_empty_history_returns_prompt_unchanged() -> None:
    backend = StaticBackend([doc("anything")])

    assert await enhance_prompt_with_rag(SYSTEM_PROMPT, [], HINTS, backend=backend) == SYSTEM_PROMPT
    assert backend.calls == []


@pytest.mark.asyncio
async def test_no_user_message_returns_prompt_unchanged() -> None:
    assert await enhance_prompt_with_rag(SYSTEM_PROMPT, [{"role": "assistant", "content": "what is RAG?"}], HINTS, backend=StaticBackend([doc("x")])) == SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_empty_user_text_returns_prompt_unchanged() -> None:
    messages = [{"role": "user", "parts": [{"type": "image", "url": "https://x/y.png"}]}]

    assert await enhance_prompt_with_rag(SYSTEM_PROMPT, messages, HINTS, backend=StaticBackend([doc("x")])) == SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_greeting_skips_retrieval() -> None:
    backend = StaticBackend([doc("anything")])

    result = await enhance_prompt_with_rag(SYSTEM_PROMPT, [{"role": "user", "content": "hello"}], HINTS, backend=backend)

    assert result == SYSTEM_PROMPT
    assert backend.calls == []


@pytest.mark.asyncio
async def test_no_results_returns_prompt_unchanged() -> None:
    backend = StaticBackend([])

    result = await enhance_prompt_with_rag(SYSTEM_PROMPT, [{"role": "user", "content": "what is RAG?"}], HINTS, backend=backend)

    assert result == SYSTEM_PROMPT
    assert len(backend.calls) == 2


# ── enhancement ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_unavailable_backend_still_enhances_with_fallback_corpus() -> None:
    backend = build_backend(Settings(RETRIEVAL_BACKEND="ragie", RAGIE_API_KEY=None))
    assert isinstance(backend, FallbackBackend)

    result = await enhance_prompt_with_rag(SYSTEM_PROMPT, [{"role": "user", "content": "what is RAG?"}], HINTS, backend=backend)

    assert result.startswith(SYSTEM_PROMPT + "\n\nRETRIEVED CONTEXT:\n[Document 1]:\n")
    assert "RETRIEVED CONTEXT" in result
    assert "Source: RAG Documentation (2023-10-15)\nRelevance: 92%" in result
    assert "[Document 3]:" in result
    assert "[Document 4]:" not in result


@pytest.mark.asyncio
async def test_failing_backend_never_raises() -> None:
    result = await enhance_prompt_with_rag(SYSTEM_PROMPT, [{"role": "user", "content": "what is RAG?"}], HINTS, backend=FailingBackend())

    assert "RETRIEVED CONTEXT" in result


@pytest.mark.asyncio
async def test_uses_latest_user_message() -> None:
    backend = StaticBackend([doc("Vector stores index embeddings.", source="Vectors 101", score=0.8)])
    history = [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "Hi! How can I help?"},
        {"role": "user", "parts": [{"type": "text", "text": "explain vector stores"}]},
    ]

    result = await enhance_prompt_with_rag(SYSTEM_PROMPT, history, HINTS, backend=backend)

    assert {q for q, _, _, _ in backend.calls} == {"explain vector stores", "what is explain vector stores"}
    assert "[Document 1]:\nVector stores index embeddings.\nSource: Vectors 101 (2024-01-01)\nRelevance: 80%" in result


@pytest.mark.asyncio
async def test_instructional_query_uses_config_from_classifier() -> None:
    backend = StaticBackend([doc("y" * 3000, score=0.7)])

    result = await enhance_prompt_with_rag(SYSTEM_PROMPT, [ChatMessage(role="user", content="write code to parse logs")], None, backend=backend)

    assert sorted(k for _, k, _, _ in backend.calls) == [2, 3]
    assert "CODE GENERATION GUIDELINES:" in result
    assert "y" * 1999 + "…" in result
    assert "y" * 2000 not in result


@pytest.mark.asyncio
async def test_accepts_plain_dict_hints_and_model() -> None:
    result = await enhance_prompt_with_rag(SYSTEM_PROMPT, [{"role": "user", "content": "tell me about weather"}], {"city": "Oslo"}, "chat-model-reasoning", backend=FallbackBackend())

    assert "Source: Weather API Integration Guide (2024-01-10)" in result
