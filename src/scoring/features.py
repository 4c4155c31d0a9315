"""Factor computation utilities for confidence scoring.

Contains functions for the externally supplied factors that feed the
confidence formula alongside domain consistency.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Optional

from models.traceability import NonFunctionalRequirement


EXPECTED_NFR_CATEGORIES = ("security", "performance", "scalability", "reliability", "usability")


def compute_requirement_completeness(
    nfrs: Iterable[NonFunctionalRequirement],
) -> tuple[float, list[str]]:
    """Share of expected NFR categories covered, as a percentage.

    A category counts as covered when it appears (case-insensitive
    substring) in any supplied NFR category, so "Data Security" covers
    "security".

    Returns (percentage, matched_categories).
    """
    supplied = [nfr.category.lower() for nfr in nfrs if nfr.category]
    matched = [
        expected for expected in EXPECTED_NFR_CATEGORIES
        if any(expected in category for category in supplied)
    ]
    return round(len(matched) / len(EXPECTED_NFR_CATEGORIES) * 100, 2), matched


def clamp_factor(value: Any, default: float) -> float:
    """Coerce an externally supplied 0-100 factor, falling back to default."""
    number = _as_number(value)
    if number is None:
        return default
    return min(100.0, max(0.0, number))


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, dict):
        return _as_number(value.get("score"))
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number
