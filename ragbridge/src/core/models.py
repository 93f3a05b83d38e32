"""
ragbridge - Request-Scoped Records
===================================
Pydantic models for everything that flows through one
``enhance_prompt_with_rag`` call.  Nothing here is persisted: each
record is created, consumed and discarded within a single request.

``RetrievalResult``, ``FormatOptions`` and ``RAGConfig`` are frozen so
a config derived for one query can never be mutated by a later stage;
use ``model_copy(update=...)`` to derive variants.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ── Type aliases ───────────────────────────────────────────────────────
DocumentMetadata = dict[str, Any]
RetrievalFilter = dict[str, Any]
ResultOrigin = Literal["main", "expansion", "fallback"]


class RetrievalOptions(BaseModel):
    """Parameters for a single ``retrieve_context`` call."""

    query: str
    top_k: int = Field(default=3, ge=1)
    filter: RetrievalFilter = Field(default_factory=dict)
    include_metadata: bool = True


class RetrievalResult(BaseModel):
    """One retrieved document, normalised across backends."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: DocumentMetadata | None = None
    score: float | None = None
    origin: ResultOrigin | None = None

    @property
    def source(self) -> str | None:
        if not self.metadata:
            return None
        return self.metadata.get("source")


class FormatOptions(BaseModel):
    """How retrieved documents are rendered into the prompt."""

    model_config = ConfigDict(frozen=True)

    template: str | None = None
    max_chars_per_doc: int | None = None
    hide_source: bool = False


class RAGConfig(BaseModel):
    """Per-query retrieval configuration produced by the classifier."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    top_k: int = Field(default=3, ge=1)
    include_metadata: bool = True
    filter: RetrievalFilter | None = None
    format_options: FormatOptions = Field(default_factory=FormatOptions)


DEFAULT_RAG_CONFIG = RAGConfig(enabled=True, top_k=3, include_metadata=True, format_options=FormatOptions(max_chars_per_doc=1500, hide_source=False))


# ── Conversation shapes ────────────────────────────────────────────────

class MessagePart(BaseModel):
    """A typed fragment of a chat message; only ``"text"`` parts matter here."""

    model_config = ConfigDict(extra="ignore")

    type: str
    text: str | None = None


class ChatMessage(BaseModel):
    """
    A chat message as delivered by the UI layer.

    ``content`` carries plain text when the client sends it; multimodal
    clients send ``parts`` instead (or a part list in ``content``).
    """

    model_config = ConfigDict(extra="ignore")

    role: str
    content: str | list[MessagePart] | None = None
    parts: list[MessagePart] = Field(default_factory=list)


class RequestHints(BaseModel):
    """Geolocation hints forwarded by the request router."""

    latitude: float | str | None = None
    longitude: float | str | None = None
    city: str | None = None
    country: str | None = None
