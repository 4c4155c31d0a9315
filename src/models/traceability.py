"""Traceability and confidence models for the validation engine."""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from eval.models import ConsistencyDiagnostic


DEFAULT_CONFIDENCE_IMPACT = -2.0


class TraceStatus(str, Enum):
    """How well a generated feature is grounded in the user's input."""
    TRACEABLE = "traceable"
    ASSUMPTION = "assumption"
    SPECULATIVE = "speculative"


class ConsistencyCheck(str, Enum):
    PASS = "PASS"
    PARTIAL = "PARTIAL"


class Feature(BaseModel):
    """A generated feature statement.

    The trace_* fields and similarity_source are written by the drift
    detector; everything else comes from the upstream generator. Unknown
    upstream keys are kept so the enriched feature can be handed back.
    """
    model_config = ConfigDict(extra="allow", use_enum_values=True)

    name: str = ""
    description: str = ""
    trace_to_input: list[str] = Field(default_factory=list)
    is_speculative: bool = False

    trace_score: Optional[float] = None
    trace_status: Optional[TraceStatus] = None
    similarity_source: Optional[str] = None

    @property
    def scoring_text(self) -> str:
        """Text scored against the user input: description, else name."""
        return self.description.strip() or self.name.strip()


class Assumption(BaseModel):
    """An assumption the generator made. Read-only to the engine."""
    model_config = ConfigDict(extra="allow")

    assumption: str = ""
    reason: str = ""
    confidence_impact: float = DEFAULT_CONFIDENCE_IMPACT


class NonFunctionalRequirement(BaseModel):
    model_config = ConfigDict(extra="allow")

    category: str = ""


class ValidationLogic(BaseModel):
    """Aggregate drift statistics for one validation pass."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    domain_drift_instances: list[str] = Field(default_factory=list)
    speculative_features_flagged: list[str] = Field(default_factory=list)
    assumption_count: int = 0
    internal_consistency_check: ConsistencyCheck = ConsistencyCheck.PASS
    domain_consistency_computed: float = 100.0
    similarity_engine: str = ""
    engine_version: str = ""
    llm_judge_calls: int = 0


class FactorScore(BaseModel):
    score: int = Field(ge=0, le=100)
    justification: str = ""


class ConfidenceBreakdown(BaseModel):
    """Server-side recomputed confidence score with per-factor detail."""
    input_clarity: FactorScore
    domain_consistency: FactorScore
    requirement_completeness: FactorScore
    logical_coherence: FactorScore
    assumption_penalty: float = 0.0
    final_score: float = Field(ge=0, le=100)
    server_computed: bool = True
    version: str = ""
    penalties_applied: dict[str, bool] = Field(default_factory=dict)


class JudgeVerdict(BaseModel):
    """Result of one judge lookup. score is None when no verdict was obtained."""
    score: Optional[float] = None
    source: str


class EngineResult(BaseModel):
    """Single external artifact of one engine evaluation."""
    validation_logic: ValidationLogic
    confidence_breakdown: ConfidenceBreakdown
    inconsistencies_found: Optional[ConsistencyDiagnostic] = None
    features: list[Feature] = Field(default_factory=list)
    assumptions_made: list[Assumption] = Field(default_factory=list)
    below_confidence_floor: bool = False
    correlation_id: str = ""
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
