"""Consistency enforcement over drift detector output."""
from eval.models import ConsistencyDiagnostic
from eval.checks.consistency import check_drift_spec_parity, enforce_consistency

__all__ = [
    "ConsistencyDiagnostic",
    "check_drift_spec_parity",
    "enforce_consistency",
]
