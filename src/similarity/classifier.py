"""Threshold classification of similarity scores into trace states."""
from __future__ import annotations

from models.engine_config import Thresholds
from models.traceability import TraceStatus

_DEFAULT_THRESHOLDS = Thresholds()


def classify_similarity(score: float, thresholds: Thresholds | None = None) -> TraceStatus:
    """Map a TF-IDF score to a trace status.

    score >= tfidf_traceable   -> traceable
    score <= tfidf_speculative -> speculative
    otherwise                  -> assumption (gray zone, eligible for the judge)
    """
    t = thresholds or _DEFAULT_THRESHOLDS
    if score >= t.tfidf_traceable:
        return TraceStatus.TRACEABLE
    if score <= t.tfidf_speculative:
        return TraceStatus.SPECULATIVE
    return TraceStatus.ASSUMPTION


def classify_judge_score(score: float, thresholds: Thresholds | None = None) -> TraceStatus:
    """Map a judge score to a trace status using the judge thresholds."""
    t = thresholds or _DEFAULT_THRESHOLDS
    if score >= t.llm_traceable:
        return TraceStatus.TRACEABLE
    if score >= t.llm_assumption:
        return TraceStatus.ASSUMPTION
    return TraceStatus.SPECULATIVE
