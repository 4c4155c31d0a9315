"""Pydantic models for consistency check output."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class ConsistencyDiagnostic(BaseModel):
    """Advisory diagnostic raised when drift statistics disagree with each other.

    Callers may reject the overall result (e.g. with HTTP 422) when one is
    returned; the engine itself never raises for it.
    """
    check: Literal["drift_spec_parity"] = "drift_spec_parity"
    detail: str
