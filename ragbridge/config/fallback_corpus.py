"""
ragbridge - Fallback Corpus
============================
Static documents served by ``FallbackBackend`` when the live retrieval
service is unreachable or unconfigured.  This keeps local development
and the test-suite functional without credentials; it is not meant to
be realistic or complete.

Each entry matches the raw hit shape the backends normalise:
``{"content": str, "metadata": {"source": str, "date": str}, "score": float}``.
"""

from typing import Any

FallbackEntry = dict[str, Any]

# ── Topic-specific sets (selected by keyword containment) ─────────────

WEATHER_ENTRIES: list[FallbackEntry] = [
    {
        "content": "The weather system integration allows chatbots to retrieve current weather information for a specific location. This provides real-time, accurate weather data to users.",
        "metadata": {"source": "Weather API Integration Guide", "date": "2024-01-10"},
        "score": 0.95,
    },
    {
        "content": "Weather data can be accessed through various APIs like OpenWeatherMap, WeatherAPI, or government meteorological services. Most provide current conditions, forecasts, and historical data.",
        "metadata": {"source": "API Documentation", "date": "2023-11-20"},
        "score": 0.88,
    },
]

DOCUMENT_TOOL_ENTRIES: list[FallbackEntry] = [
    {
        "content": "The document creation tool allows chatbots to generate and manage various types of documents like text files, code snippets, and structured data. These documents can be edited, saved, and shared.",
        "metadata": {"source": "Document Tool Documentation", "date": "2024-01-05"},
        "score": 0.94,
    },
    {
        "content": "Artifact-based UI components enhance chatbot functionality by providing dedicated interfaces for different content types. This improves user experience by displaying information in the most appropriate format.",
        "metadata": {"source": "UI Component Guide", "date": "2023-12-18"},
        "score": 0.89,
    },
]

# ── Generic knowledge base ─────────────────────────────────────────────

GENERAL_ENTRIES: list[FallbackEntry] = [
    {
        "content": "RAG (Retrieval Augmented Generation) is a technique that enhances LLM outputs by retrieving relevant information from external knowledge sources before generating a response. This helps ground the model's responses in factual, up-to-date information.",
        "metadata": {"source": "RAG Documentation", "date": "2023-10-15"},
        "score": 0.92,
    },
    {
        "content": "Prompt engineering is the practice of designing and optimizing input prompts for language models to elicit desired responses. Effective prompt engineering improves output quality, reduces hallucinations, and helps control model behavior.",
        "metadata": {"source": "AI Best Practices Guide", "date": "2023-09-22"},
        "score": 0.87,
    },
    {
        "content": "A common RAG architecture includes: 1) an embedding model to convert documents and queries into vector representations, 2) a vector database for storing and retrieving document embeddings, 3) a retrieval mechanism to find relevant documents, and 4) an LLM to generate responses based on retrieved context.",
        "metadata": {"source": "RAG Architecture Guide", "date": "2023-11-05"},
        "score": 0.85,
    },
    {
        "content": "Chatbots using RAG show significant improvements in factual accuracy compared to those relying solely on pre-trained knowledge. In a recent study, RAG-enhanced chatbots reduced hallucinations by 45% and improved factual accuracy by 37%.",
        "metadata": {"source": "AI Performance Study", "date": "2024-01-18"},
        "score": 0.81,
    },
    {
        "content": "When implementing RAG, it's important to consider: 1) chunking strategy for breaking documents into manageable pieces, 2) embedding model selection for vector representations, 3) retrieval mechanism for finding relevant context, and 4) prompt design for effectively using the retrieved information.",
        "metadata": {"source": "RAG Implementation Guide", "date": "2023-12-10"},
        "score": 0.78,
    },
    {
        "content": "The ragie SDK provides retrieval capabilities with a simple API. It allows you to retrieve relevant context from your knowledge base using vector search and semantic matching.",
        "metadata": {"source": "Ragie SDK Documentation", "date": "2023-11-30"},
        "score": 0.91,
    },
    {
        "content": "To implement effective RAG systems, focus on the quality of your retrieval mechanism first. Even the best language models will generate incorrect information if the retrieved context is poor or irrelevant.",
        "metadata": {"source": "RAG Best Practices", "date": "2024-02-15"},
        "score": 0.83,
    },
    {
        "content": "When designing prompts for RAG systems, include clear instructions on how the model should use the retrieved information. For example, specify whether the model should prioritize retrieved information over its pre-trained knowledge.",
        "metadata": {"source": "Prompt Engineering for RAG", "date": "2023-12-05"},
        "score": 0.89,
    },
]

# ── Selection rules ────────────────────────────────────────────────────
# Ordered (keywords, entries): the first rule with any keyword contained
# in the lower-cased query wins.
TOPIC_RULES: list[tuple[tuple[str, ...], list[FallbackEntry]]] = [
    (("weather",), WEATHER_ENTRIES),
    (("document", "artifact"), DOCUMENT_TOOL_ENTRIES),
]

GENERAL_SOURCE_MARKER = "rag"
GENERAL_RESULT_LIMIT = 3
