"""Scoring modules for the traceability engine.

This package contains:
- drift_detector.py: Per-feature trace classification and drift statistics
- confidence_scorer.py: Confidence recomputation formula
- features.py: Externally supplied factor computation
"""
from scoring.confidence_scorer import (
    ConfidenceResult,
    build_confidence_breakdown,
    compute_assumption_penalty,
    recompute_confidence,
)
from scoring.drift_detector import DriftDetector, DriftReport
from scoring.features import (
    EXPECTED_NFR_CATEGORIES,
    clamp_factor,
    compute_requirement_completeness,
)

__all__ = [
    # Confidence
    "ConfidenceResult",
    "build_confidence_breakdown",
    "compute_assumption_penalty",
    "recompute_confidence",
    # Drift
    "DriftDetector",
    "DriftReport",
    # Factors
    "EXPECTED_NFR_CATEGORIES",
    "clamp_factor",
    "compute_requirement_completeness",
]
