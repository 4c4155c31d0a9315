"""Check modules for the consistency enforcer."""
from eval.checks.consistency import check_drift_spec_parity, enforce_consistency

__all__ = [
    "check_drift_spec_parity",
    "enforce_consistency",
]
