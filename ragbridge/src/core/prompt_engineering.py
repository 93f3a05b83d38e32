"""
ragbridge - Prompt Engineering
===============================
Everything that turns retrieved documents into prompt text:

``rerank_results``
    Stable reorder: documents quoting the query verbatim first, then by
    descending score.
``generate_expansion_query``
    Derive the secondary query used to widen retrieval coverage.
``generate_query_specific_instructions``
    Pick one instruction block (comparison, step-by-step, code,
    summarization) by regex, in that priority order.
``format_retrieved_context``
    Render results as numbered ``[Document N]`` blocks with source,
    date and relevance lines.
``create_enhanced_rag_prompt``
    Splice base prompt, context, instructions and the fixed guideline
    blocks into one deterministic string.
"""

from __future__ import annotations

import math
import re

from ragbridge.config.prompt_templates import (
    CODE_INSTRUCTIONS,
    COMPARISON_INSTRUCTIONS,
    CONTEXT_USAGE_GUIDELINES,
    DOCUMENT_HEADER_TEMPLATE,
    ENHANCED_RAG_PROMPT_TEMPLATE,
    RESPONSE_QUALITY_GUIDELINES,
    STEP_BY_STEP_INSTRUCTIONS,
    SUMMARIZATION_INSTRUCTIONS,
    UNKNOWN_SOURCE,
)
from ragbridge.src.core.models import FormatOptions, RetrievalResult
from ragbridge.src.utils.logger import get_logger
from ragbridge.src.utils.text_utils import truncate_text

logger = get_logger(__name__)

# ── Query-type patterns (priority order) ──────────────────────────────
_INSTRUCTION_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"compare|difference|similarities|versus|vs", re.IGNORECASE), COMPARISON_INSTRUCTIONS),
    (re.compile(r"how to|steps|guide|tutorial|instructions", re.IGNORECASE), STEP_BY_STEP_INSTRUCTIONS),
    (re.compile(r"code|function|program|implement|script", re.IGNORECASE), CODE_INSTRUCTIONS),
    (re.compile(r"summarize|summary|overview|brief", re.IGNORECASE), SUMMARIZATION_INSTRUCTIONS),
)

_QUESTION_WORDS: tuple[str, ...] = ("what", "when", "where", "why", "who", "how")


# ══════════════════════════════════════════════════════════════════════
#  RE-RANKING
# ══════════════════════════════════════════════════════════════════════

def rerank_results(query: str, results: list[RetrievalResult]) -> list[RetrievalResult]:
    """
    Reorder *results* so verbatim query matches come first.

    The sort is stable: results that tie on both "contains the query"
    (case-insensitive) and score keep their incoming order.  A missing
    score counts as 0.
    """
    if len(results) <= 1:
        return results

    needle = query.lower()
    return sorted(results, key=lambda r: (needle not in r.content.lower(), -(r.score or 0.0)))


# ══════════════════════════════════════════════════════════════════════
#  QUERY EXPANSION & INSTRUCTIONS
# ══════════════════════════════════════════════════════════════════════

def generate_expansion_query(original_query: str) -> str:
    """
    Build the supplementary query issued next to the user's query.

    Questions get a ``"background information"`` prefix (one trailing
    ``?`` removed); anything else is turned into a ``"what is"`` question.
    """
    if original_query.lower().startswith(_QUESTION_WORDS):
        return f"background information {original_query.removesuffix('?')}"
    return f"what is {original_query}"


def generate_query_specific_instructions(query: str) -> str:
    """Return the instruction block for the query's type, or ``""``."""
    for pattern, block in _INSTRUCTION_RULES:
        if pattern.search(query):
            return block
    return ""


# ══════════════════════════════════════════════════════════════════════
#  CONTEXT FORMATTING
# ══════════════════════════════════════════════════════════════════════

def _relevance_percent(score: float) -> int:
    # Half-up rounding: 0.865 → 87, never banker's rounding.
    return math.floor(score * 100 + 0.5)


def _render_default(index: int, result: RetrievalResult, content: str, hide_source: bool) -> str:
    block = DOCUMENT_HEADER_TEMPLATE.format(index=index, content=content)
    if result.metadata is None or hide_source:
        return block

    block += f"\nSource: {result.source or UNKNOWN_SOURCE}"
    date = result.metadata.get("date")
    if date:
        block += f" ({date})"
    if result.score is not None:
        block += f"\nRelevance: {_relevance_percent(result.score)}%"
    return block


def _render_template(template: str, index: int, result: RetrievalResult, content: str, hide_source: bool) -> str:
    metadata = result.metadata or {}
    return template.format(
        index=index,
        content=content,
        source="" if hide_source else (result.source or UNKNOWN_SOURCE),
        date="" if hide_source else (metadata.get("date") or ""),
        relevance="" if hide_source or result.score is None else f"{_relevance_percent(result.score)}%",
    )


def format_retrieved_context(results: list[RetrievalResult], format_options: FormatOptions | None = None) -> str:
    """
    Render retrieved documents into the block injected into the prompt.

    Default rendering per document::

        [Document N]:
        <content>
        Source: <source> (<date>)
        Relevance: <score%>

    The source line appears only when metadata is present, the date only
    when set, the relevance line only when there is both metadata and a
    score.  Blocks are separated by a blank line.

    Args:
        results:        Documents in prompt order.
        format_options: Optional truncation (``max_chars_per_doc``),
                        source suppression (``hide_source``) and a custom
                        ``template`` with fields ``index``, ``content``,
                        ``source``, ``date``, ``relevance``.  A template
                        that fails to render falls back to the default
                        layout.

    Returns:
        The formatted context, or ``""`` for an empty list.
    """
    if not results:
        return ""

    options = format_options or FormatOptions()
    blocks: list[str] = []
    for i, result in enumerate(results, 1):
        content = truncate_text(result.content, options.max_chars_per_doc)
        if options.template:
            try:
                blocks.append(_render_template(options.template, i, result, content, options.hide_source))
                continue
            except (KeyError, IndexError, ValueError) as exc:
                logger.warning("[FORMAT] invalid template %r (%s); using default layout", options.template, exc)
        blocks.append(_render_default(i, result, content, options.hide_source))

    return "\n\n".join(blocks)


# ══════════════════════════════════════════════════════════════════════
#  PROMPT ASSEMBLY
# ══════════════════════════════════════════════════════════════════════

def create_enhanced_rag_prompt(base_prompt: str, user_query: str, retrieved_context: str) -> str:
    """Combine the system prompt, retrieved context and guidance into one prompt."""
    return ENHANCED_RAG_PROMPT_TEMPLATE.format(
        base_prompt=base_prompt,
        context=retrieved_context,
        query_instructions=generate_query_specific_instructions(user_query),
        usage_guidelines=CONTEXT_USAGE_GUIDELINES,
        quality_guidelines=RESPONSE_QUALITY_GUIDELINES,
    )
