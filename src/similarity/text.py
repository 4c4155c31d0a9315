"""Text normalization and tokenization for lexical similarity."""
from __future__ import annotations

import re
import unicodedata
from typing import Any


STOP_WORDS = frozenset({
    "the", "a", "an", "is", "in", "on", "at", "to", "for", "of",
    "and", "or", "with", "that", "this", "it", "be", "are", "was", "were",
    "by", "as", "from", "have", "has", "not", "but", "so",
})

MIN_TOKEN_LENGTH = 3

_NON_WORD_PATTERN = re.compile(r"[^\w\s]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_text(text: Any) -> str:
    """Lowercase, NFKD-decompose, blank out punctuation and collapse whitespace."""
    if text is None:
        return ""
    normalized = unicodedata.normalize("NFKD", str(text).lower())
    normalized = _NON_WORD_PATTERN.sub(" ", normalized)
    return _WHITESPACE_PATTERN.sub(" ", normalized).strip()


def tokenize(text: Any) -> list[str]:
    """Split normalized text into content tokens.

    Tokens shorter than three characters and stop words are dropped.
    Order and duplicates are preserved; term frequency depends on them.
    """
    normalized = normalize_text(text)
    if not normalized:
        return []
    return [
        token for token in normalized.split(" ")
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    ]
