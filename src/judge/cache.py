"""Judge score cache keyed by a stable hash of the judged text pair."""
from __future__ import annotations

import hashlib
from typing import Optional

KEY_SEPARATOR = "||"


def make_cache_key(feature_text: str, user_input_text: str) -> str:
    """sha256 hex digest of feature text and user input joined by a separator."""
    raw = f"{feature_text}{KEY_SEPARATOR}{user_input_text}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class JudgeCache:
    """Unbounded score cache.

    A verdict is a pure function of its two input texts, so entries are
    never invalidated or evicted for the lifetime of the owning engine.
    """

    def __init__(self) -> None:
        self._scores: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._scores)

    def __contains__(self, key: str) -> bool:
        return key in self._scores

    def get(self, key: str) -> Optional[float]:
        return self._scores.get(key)

    def set(self, key: str, score: float) -> None:
        self._scores[key] = score

    def clear(self) -> None:
        self._scores.clear()
