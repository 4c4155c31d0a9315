"""Consistency check over drift detector output."""
from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from models.traceability import ValidationLogic

from eval.models import ConsistencyDiagnostic

logger = structlog.get_logger(__name__)


def check_drift_spec_parity(
    drift_instances: list[str],
    speculative_flagged: list[str],
) -> ConsistencyDiagnostic | None:
    """
    Every drift instance must correspond to exactly one flagged speculative feature.

    Returns a ConsistencyDiagnostic on mismatch, None when the counts agree.
    """
    drift_count = len(drift_instances)
    spec_count = len(speculative_flagged)

    if drift_count == spec_count:
        return None

    logger.warning(
        "consistency_drift_spec_mismatch",
        drift_count=drift_count,
        speculative_count=spec_count,
    )
    return ConsistencyDiagnostic(
        check="drift_spec_parity",
        detail=f"drift({drift_count}) != speculative({spec_count})",
    )


def enforce_consistency(validation_logic: "ValidationLogic") -> ConsistencyDiagnostic | None:
    """Recompute the drift/speculative parity invariant for a validation pass."""
    return check_drift_spec_parity(
        validation_logic.domain_drift_instances,
        validation_logic.speculative_features_flagged,
    )
