"""
ragbridge - LanceDB Setup & Seeding Script
===========================================
CLI entry point that fills the local LanceDB table used by the
``lancedb`` retrieval backend:
    1. Validate that ``GOOGLE_API_KEY`` is set (fail-fast).
    2. Initialise ``LanceDBBackend`` (optionally drop the existing table).
    3. Load documents from a JSONL file, or the built-in fallback corpus.
    4. Embed and insert them; print a summary with timing breakdown.

JSONL format (one document per line)::

    {"content": "...", "metadata": {"source": "Guide", "date": "2024-01-01"}}

Flags:
    --input PATH  JSONL file to load (default: the fallback corpus).
    --drop        Drop the table before seeding.
    --drop-only   Drop the table and exit.

Usage:
    python -m ragbridge.scripts.setup_db
    python -m ragbridge.scripts.setup_db --input data/raw/docs.jsonl --drop
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="setup_db", description="ragbridge — Seed the local LanceDB retrieval table.")
    parser.add_argument("--input", type=Path, default=None, help="JSONL file of {content, metadata} documents (default: built-in fallback corpus).")
    parser.add_argument("--drop", action="store_true", default=False, help="Drop the table before seeding.")
    parser.add_argument("--drop-only", action="store_true", default=False, help="Drop the table and exit (no seeding).")
    return parser.parse_args(argv)


def load_documents(path: Path | None) -> tuple[list[str], list[dict[str, Any]]]:
    """
    Read ``(texts, metadatas)`` from a JSONL file, or the fallback corpus.

    Blank lines are skipped; every text passes through ``clean_text``.
    Raises ``ValueError`` on a line without ``content``.
    """
    from ragbridge.src.utils.text_utils import clean_text

    if path is None:
        from ragbridge.config.fallback_corpus import DOCUMENT_TOOL_ENTRIES, GENERAL_ENTRIES, WEATHER_ENTRIES

        rows: list[dict[str, Any]] = [*GENERAL_ENTRIES, *WEATHER_ENTRIES, *DOCUMENT_TOOL_ENTRIES]
    else:
        rows = []
        with path.open(encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, 1):
                if not line.strip():
                    continue
                row = json.loads(line)
                if not row.get("content"):
                    raise ValueError(f"{path}:{line_no}: missing 'content'")
                rows.append(row)

    texts: list[str] = []
    metadatas: list[dict[str, Any]] = []
    for index, row in enumerate(rows):
        texts.append(clean_text(row["content"]))
        metadatas.append({**row.get("metadata", {}), "chunk_index": index})
    return texts, metadatas


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    # ── 0. Load settings + .env ────────────────────────────────────────
    try:
        from ragbridge.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)

    from ragbridge.src.utils.logger import get_logger
    logger = get_logger(__name__)

    if settings.GOOGLE_API_KEY is None:
        logger.error("GOOGLE_API_KEY is not set; cannot embed documents.")
        sys.exit(1)

    _print_header(settings, args.input)

    # ── 1. Embedder ────────────────────────────────────────────────────
    try:
        from langchain_google_genai import GoogleGenerativeAIEmbeddings

        embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    except Exception:
        logger.exception("Failed to initialise embedding model.")
        sys.exit(1)

    # ── 2. Store ───────────────────────────────────────────────────────
    from ragbridge.src.database.vector_store import LanceDBBackend

    store = LanceDBBackend(embedder=embedder)
    if args.drop or args.drop_only:
        logger.warning("Dropping table '%s' as requested.", settings.LANCEDB_TABLE_NAME)
        store.drop_table()
        if args.drop_only:
            _print_footer(0, store.count(), time.perf_counter() - t_start)
            return

    # ── 3. Load + insert ───────────────────────────────────────────────
    try:
        texts, metadatas = load_documents(args.input)
    except (OSError, ValueError) as exc:
        logger.error("Could not read documents: %s", exc)
        sys.exit(1)

    added = store.add_documents(texts, metadatas)
    _print_footer(added, store.count(), time.perf_counter() - t_start)


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object, input_path: Path | None) -> None:
    print()
    print("=" * 60)
    print("  RAGBRIDGE — LanceDB Seeding")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                   # type: ignore[attr-defined]
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")       # type: ignore[attr-defined]
    print(f"  LanceDB path : {settings.LANCEDB_PATH}")          # type: ignore[attr-defined]
    print(f"  Table        : {settings.LANCEDB_TABLE_NAME}")    # type: ignore[attr-defined]
    print(f"  Input        : {input_path or 'built-in fallback corpus'}")
    print("=" * 60)
    print()


def _print_footer(added: int, total_rows: int, elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Documents added : {added}")
    print(f"  Rows in table   : {total_rows}")
    print(f"  Total elapsed   : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


if __name__ == "__main__":
    main()
