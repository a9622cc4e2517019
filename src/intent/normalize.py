"""Text normalization for deterministic command parsing."""

from __future__ import annotations

import re

_NON_WORD_RE = re.compile(r"[^\w\s]|_")
_MULTISPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Normalize user text for rules-based parsing.

    Normalization is intentionally conservative:
        - Lowercase.
        - Fold typographic apostrophes to ASCII.
        - Replace punctuation with spaces (so "Leo's" becomes "leo s").
        - Collapse whitespace.

    Letters outside ASCII (accents, CJK) are kept as-is.
    """

    value = (text or "").strip().lower()
    value = value.replace("’", "'").replace("‘", "'")
    value = _NON_WORD_RE.sub(" ", value)
    value = _MULTISPACE_RE.sub(" ", value).strip()
    return value


def lower_text(text: str) -> str:
    """Lowercase and trim without touching punctuation (times, `$`, ISO dates)."""

    value = (text or "").strip().lower()
    return value.replace("’", "'").replace("‘", "'")
