from __future__ import annotations

import pytest

from ragbridge.src.core.models import DEFAULT_RAG_CONFIG
from ragbridge.src.core.query_classifier import classify_query, get_rag_config


@pytest.mark.parametrize("query", ["hello", "Hi there", "hey, got a minute?", "What's up?", "how are you doing today"])
def test_greetings_disable_retrieval(query: str) -> None:
    config = get_rag_config(query, "chat-model")

    assert config.enabled is False
    assert classify_query(query, "chat-model") == "conversational"


def test_greeting_must_start_the_query() -> None:
    config = get_rag_config("please say hello to the team", "chat-model")

    assert config.enabled is True
    assert config == DEFAULT_RAG_CONFIG


@pytest.mark.parametrize("query", ["what is RAG?", "Who is the author of LanceDB", "tell me when did the release ship", "How does vector search work"])
def test_factual_queries_raise_top_k(query: str) -> None:
    config = get_rag_config(query, "chat-model")

    assert config.enabled is True
    assert config.top_k == 5
    assert config.format_options.max_chars_per_doc == 1500


@pytest.mark.parametrize("query", ["Write a haiku about retrieval", "generate test data", "implement a retry loop", "Build me a dashboard"])
def test_instructional_queries_raise_top_k_and_doc_cap(query: str) -> None:
    config = get_rag_config(query, "chat-model")

    assert config.top_k == 4
    assert config.format_options.max_chars_per_doc == 2000
    assert config.format_options.hide_source is False


def test_first_matching_rule_wins() -> None:
    # greeting + factual → greeting; factual + instructional → factual
    assert get_rag_config("hey, what is RAG?", "chat-model").enabled is False
    assert get_rag_config("what is the best way to write tests", "chat-model").top_k == 5


def test_reasoning_model_forces_metadata_and_sources() -> None:
    config = get_rag_config("tell me about lancedb", "chat-model-reasoning")

    assert classify_query("tell me about lancedb", "chat-model-reasoning") == "reasoning_model"
    assert config.include_metadata is True
    assert config.format_options.hide_source is False
    assert config.top_k == 3


def test_query_rules_take_priority_over_reasoning_model() -> None:
    assert get_rag_config("hello", "chat-model-reasoning").enabled is False
    assert get_rag_config("what is RAG?", "chat-model-reasoning").top_k == 5


def test_unmatched_query_returns_default_config() -> None:
    assert classify_query("tell me about lancedb", "chat-model") is None
    assert get_rag_config("tell me about lancedb", "chat-model") == DEFAULT_RAG_CONFIG


def test_derived_configs_do_not_touch_the_default() -> None:
    get_rag_config("Write something", "chat-model")

    assert DEFAULT_RAG_CONFIG.top_k == 3
    assert DEFAULT_RAG_CONFIG.format_options.max_chars_per_doc == 1500
