"""
ragbridge - Prompt Preview
===========================
Print what ``enhance_prompt_with_rag`` would hand to the language model
for a single query.  Useful for checking classifier rules, backend
output and formatting without running the chat application.

Usage:
    python -m ragbridge.scripts.preview_prompt "what is RAG?"
    python -m ragbridge.scripts.preview_prompt "compare RAG vs fine-tuning" --model chat-model-reasoning
    python -m ragbridge.scripts.preview_prompt "weather in Paris" --backend fallback --system "You are helpful."
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from ragbridge.config.settings import settings
from ragbridge.src.core.query_classifier import classify_query, get_rag_config
from ragbridge.src.core.rag_engine import enhance_prompt_with_rag
from ragbridge.src.database.backends import FallbackBackend, RetrievalBackend, get_backend

_DEFAULT_SYSTEM_PROMPT = "You are a friendly assistant! Keep your responses concise and helpful."


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="preview_prompt", description="ragbridge — Show the RAG-enhanced system prompt for a query.")
    parser.add_argument("query", help="User message to classify and retrieve for.")
    parser.add_argument("--model", default=settings.DEFAULT_CHAT_MODEL, help="Selected chat model id.")
    parser.add_argument("--system", default=_DEFAULT_SYSTEM_PROMPT, help="Base system prompt.")
    parser.add_argument("--backend", choices=("configured", "fallback"), default="configured", help="Use the configured backend or force the static corpus.")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> str:
    backend: RetrievalBackend = FallbackBackend() if args.backend == "fallback" else get_backend()
    config = get_rag_config(args.query, args.model)

    print("=" * 60)
    print(f"  Query     : {args.query}")
    print(f"  Rule      : {classify_query(args.query, args.model) or 'default'}")
    print(f"  Enabled   : {config.enabled}   top_k: {config.top_k}   metadata: {config.include_metadata}")
    print(f"  Backend   : {backend.name}")
    print("=" * 60)

    return await enhance_prompt_with_rag(args.system, [{"role": "user", "content": args.query}], None, args.model, backend=backend)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    prompt = asyncio.run(_run(args))
    print(prompt)
    return 0


if __name__ == "__main__":
    sys.exit(main())
