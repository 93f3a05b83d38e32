"""
ragbridge - Centralized Configuration
======================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Credentials
-----------
- ``RAGIE_API_KEY`` and ``GOOGLE_API_KEY`` are typed as ``SecretStr``.
  Unlike most services, neither is required: when the selected backend
  has no credentials the retrieval layer degrades to the static fallback
  corpus instead of refusing to start.  The raw value is never exposed
  in repr, logs, or tracebacks.

Backend Selection
-----------------
``RETRIEVAL_BACKEND`` picks the adapter built by
``ragbridge.src.database.backends.build_backend``:
  • ``"ragie"``    → hosted Ragie retrieval API
  • ``"lancedb"``  → local LanceDB table + Google embeddings
  • ``"fallback"`` → static development corpus (no network)

Retrieval Tuning
----------------
The main / expansion query split, the expansion score discount and the
deduplication prefix length are exposed here so they can be tuned per
deployment without touching the retrieval client.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``) and
    every field has a default, so importing the module never fails.

    Attributes
    ----------
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    LOG_LEVEL : str | None
        Explicit level name that overrides the ``ENV``-derived default.
    RETRIEVAL_BACKEND : Literal["ragie", "lancedb", "fallback"]
        Which retrieval adapter to build.
    RAGIE_API_KEY : SecretStr | None
        API key for the Ragie retrieval service.
        Access the raw value with ``settings.RAGIE_API_KEY.get_secret_value()``.
    RAGIE_PARTITION : str | None
        Optional Ragie partition to scope retrievals to.
    GOOGLE_API_KEY : SecretStr | None
        API key for Google embeddings (LanceDB backend only).
    EMBEDDING_MODEL : str
        Model identifier passed to ``GoogleGenerativeAIEmbeddings``.
    LANCEDB_TABLE_NAME : str
        Table name inside the LanceDB on-disk database.
    REASONING_MODELS : set[str]
        Chat model ids treated as reasoning variants by the classifier.
    DEFAULT_CHAT_MODEL : str
        Model id assumed when the caller does not pass one.
    MAIN_QUERY_RATIO : float
        Fraction of ``top_k`` requested for the original query.
    EXPANSION_QUERY_RATIO : float
        Fraction of ``top_k`` requested for the expansion query.
    EXPANSION_SCORE_WEIGHT : float
        Multiplier applied to expansion-query scores.
    DEDUP_PREFIX_CHARS : int
        Number of leading characters compared when deduplicating.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    LANCEDB_PATH: Path = BASE_DIR / "data" / "lancedb"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None

    # ── Retrieval Backend ──────────────────────────────────────────────
    RETRIEVAL_BACKEND: Literal["ragie", "lancedb", "fallback"] = "ragie"

    # ── API Keys (optional; absent keys fall back to static data) ────────
    RAGIE_API_KEY: SecretStr | None = None
    RAGIE_PARTITION: str | None = None
    GOOGLE_API_KEY: SecretStr | None = None

    # ── LanceDB / Embeddings ───────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    LANCEDB_TABLE_NAME: str = "ragbridge_docs"

    # ── Chat Models ────────────────────────────────────────────────────
    REASONING_MODELS: set[str] = {"chat-model-reasoning"}
    DEFAULT_CHAT_MODEL: str = "chat-model"

    # ── Retrieval Tuning ───────────────────────────────────────────────
    MAIN_QUERY_RATIO: float = 0.7
    EXPANSION_QUERY_RATIO: float = 0.5
    EXPANSION_SCORE_WEIGHT: float = 0.8
    DEDUP_PREFIX_CHARS: int = 100

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("MAIN_QUERY_RATIO", "EXPANSION_QUERY_RATIO", "EXPANSION_SCORE_WEIGHT")
    @classmethod
    def _ratio_range(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"ratio must be in (0, 1], got {v}")
        return v


    @field_validator("DEDUP_PREFIX_CHARS")
    @classmethod
    def _prefix_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"DEDUP_PREFIX_CHARS must be ≥ 1, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from ragbridge.config.settings import settings
settings = Settings()
