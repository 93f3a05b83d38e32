"""
ragbridge - Text Utilities
===========================
Small, stateless string helpers shared by the retrieval client, the
prompt formatter and the corpus loader.
"""

from __future__ import annotations

import re
import unicodedata


# ── Non-printable character pattern ────────────────────────────────────
# Control characters (C0/C1) except \n, \r, \t, plus BOM, zero-width
# characters, soft hyphens and directional marks.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")

_ELLIPSIS = "…"


def clean_text(text: str) -> str:
    """
    Sanitise corpus text before it is embedded and stored.

    Steps:
        1. Unicode NFC normalisation.
        2. Strip non-printable / zero-width characters.
        3. Collapse runs of horizontal whitespace into a single space,
           *preserving* newlines.
        4. Strip every line.
        5. Collapse 3+ consecutive blank lines to 2.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def dedup_key(content: str, prefix_chars: int = 100) -> str:
    """
    Return the identity key used to detect duplicate documents.

    The first *prefix_chars* characters are taken **before** trimming
    and lower-casing, so leading whitespace counts against the prefix.
    """
    return content[:prefix_chars].strip().lower()


def truncate_text(text: str, max_chars: int | None) -> str:
    """
    Cut *text* to at most *max_chars* characters, ellipsis included.

    ``None`` or a non-positive limit leaves the text untouched.
    """
    if not max_chars or max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[: max(max_chars - len(_ELLIPSIS), 0)].rstrip() + _ELLIPSIS
