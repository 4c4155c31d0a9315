"""Server-side confidence recomputation for a generated specification.

Implements the weighted formula:
- Input clarity (IC):            0.30 weight
- Domain consistency (DC):       0.30 weight
- Requirement completeness (RC): 0.20 weight
- Logical coherence (LC):        0.20 weight
minus an assumption penalty.

LC is coupled to the drift result: it loses consistency_penalty points when
the internal consistency check is not PASS, and dc_penalty points when DC is
below dc_penalty_below. The final score is clamped to [0, 100].
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from models.engine_config import ConfidenceCoefficients
from models.traceability import (
    DEFAULT_CONFIDENCE_IMPACT,
    Assumption,
    ConfidenceBreakdown,
    ConsistencyCheck,
    FactorScore,
    ValidationLogic,
)

WEIGHTS = {
    "input_clarity": 0.30,
    "domain_consistency": 0.30,
    "requirement_completeness": 0.20,
    "logical_coherence": 0.20,
}


@dataclass
class ConfidenceResult:
    """Outcome of one recomputation.

    lc is logical coherence after coupling penalties; penalty is the
    positive number of points subtracted for assumptions.
    """
    final_score: float
    lc: float
    penalty: float
    consistency_penalty: bool = False
    dc_penalty: bool = False
    raw_score: float = 0.0
    flat_penalty: float = 0.0
    custom_penalty: float = 0.0
    factors: dict[str, float] = field(default_factory=dict)


def _impact_magnitude(assumption: Assumption | float | int) -> float:
    if isinstance(assumption, (int, float)) and not isinstance(assumption, bool):
        return abs(float(assumption))
    impact = getattr(assumption, "confidence_impact", None)
    if impact is None:
        impact = DEFAULT_CONFIDENCE_IMPACT
    return abs(float(impact))


def compute_assumption_penalty(
    assumptions: Sequence[Assumption | float | int],
    coefficients: ConfidenceCoefficients,
) -> tuple[float, float, float]:
    """Return (penalty, flat_penalty, custom_penalty).

    flat   = min(n * unit_cost, cap)
    custom = sum(|confidence_impact|), missing impacts count as 2
    penalty = min(cap, max(flat, custom))
    """
    cap = coefficients.assumption_penalty_cap
    flat = min(len(assumptions) * coefficients.assumption_unit_cost, cap)
    custom = sum(_impact_magnitude(a) for a in assumptions)
    return min(cap, max(flat, custom)), flat, custom


def recompute_confidence(
    ic: float,
    dc: float,
    rc: float,
    lc_base: float,
    consistency_check: str,
    assumptions: Sequence[Assumption | float | int] = (),
    coefficients: ConfidenceCoefficients | None = None,
) -> ConfidenceResult:
    """Recompute the final confidence score from its four factors."""
    coefficients = coefficients or ConfidenceCoefficients()

    lc = lc_base
    consistency_penalty = False
    dc_penalty = False

    if consistency_check != ConsistencyCheck.PASS:
        lc = max(0.0, lc - coefficients.consistency_penalty)
        consistency_penalty = True
    if dc < coefficients.dc_penalty_below:
        lc = max(0.0, lc - coefficients.dc_penalty)
        dc_penalty = True

    penalty, flat, custom = compute_assumption_penalty(assumptions, coefficients)

    raw = (
        WEIGHTS["input_clarity"] * ic
        + WEIGHTS["domain_consistency"] * dc
        + WEIGHTS["requirement_completeness"] * rc
        + WEIGHTS["logical_coherence"] * lc
        - penalty
    )
    final_score = min(100.0, max(0.0, round(raw, 2)))

    return ConfidenceResult(
        final_score=final_score,
        lc=lc,
        penalty=penalty,
        consistency_penalty=consistency_penalty,
        dc_penalty=dc_penalty,
        raw_score=raw,
        flat_penalty=flat,
        custom_penalty=custom,
        factors={"input_clarity": ic, "domain_consistency": dc, "requirement_completeness": rc},
    )


def _factor(value: float, justification: str) -> FactorScore:
    return FactorScore(score=int(round(min(100.0, max(0.0, value)))), justification=justification)


def build_confidence_breakdown(
    validation_logic: ValidationLogic,
    ic: float,
    rc: float,
    matched_categories: Iterable[str],
    lc_base: float,
    assumptions: Sequence[Assumption],
    coefficients: ConfidenceCoefficients | None = None,
    version: str = "2.0",
) -> tuple[ConfidenceBreakdown, ConfidenceResult]:
    """Recompute confidence and wrap it with per-factor justifications."""
    coefficients = coefficients or ConfidenceCoefficients()
    dc = validation_logic.domain_consistency_computed
    result = recompute_confidence(
        ic=ic,
        dc=dc,
        rc=rc,
        lc_base=lc_base,
        consistency_check=validation_logic.internal_consistency_check,
        assumptions=assumptions,
        coefficients=coefficients,
    )

    matched = list(matched_categories)
    flagged = len(validation_logic.speculative_features_flagged)

    lc_notes = []
    if result.consistency_penalty:
        lc_notes.append(f"-{coefficients.consistency_penalty:g} for {flagged} speculative feature(s)")
    if result.dc_penalty:
        lc_notes.append(f"-{coefficients.dc_penalty:g} for domain consistency below {coefficients.dc_penalty_below:g}")
    lc_text = f"Baseline {lc_base:g}" + (f" ({'; '.join(lc_notes)})" if lc_notes else ", no coupling penalties")

    breakdown = ConfidenceBreakdown(
        input_clarity=_factor(ic, f"Input clarity {ic:g}/100 as assessed upstream"),
        domain_consistency=_factor(
            dc,
            f"{dc:g}% of features traceable to the user input "
            f"({validation_logic.llm_judge_calls} judge call(s), engine {validation_logic.similarity_engine})",
        ),
        requirement_completeness=_factor(
            rc,
            f"{len(matched)}/5 expected NFR categories covered"
            + (f": {', '.join(matched)}" if matched else ""),
        ),
        logical_coherence=_factor(result.lc, lc_text),
        assumption_penalty=-round(result.penalty, 2) if result.penalty else 0.0,
        final_score=result.final_score,
        server_computed=True,
        version=version,
        penalties_applied={
            "consistency_penalty": result.consistency_penalty,
            "dc_penalty": result.dc_penalty,
        },
    )
    return breakdown, result
