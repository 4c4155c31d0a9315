"""Typed engine configuration.

Built from ``config/engine_config.yaml`` by ``config.loader.build_engine_config``.
Defaults match the shipped YAML so an engine can be constructed without a
config file (tests do this).
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class VersionInfo(BaseModel):
    engine: str = "3.2.0"
    similarity: str = "hybrid-tfidf-llm-v2"
    confidence: str = "2.0"
    build: str = "dev"


class Thresholds(BaseModel):
    """Similarity and confidence thresholds."""
    tfidf_traceable: float = 0.70
    tfidf_speculative: float = 0.25
    llm_traceable: float = 0.60
    llm_assumption: float = 0.40
    confidence_min: float = 10


class Limits(BaseModel):
    max_judge_calls_per_req: int = Field(default=8, ge=0)
    abort_timeout_ms: int = Field(default=4000, gt=0)
    audit_log_max: int = Field(default=500, gt=0)
    metrics_window: int = Field(default=1000, gt=0)
    max_input_chars: int = Field(default=50000, gt=0)


class CircuitBreakerSettings(BaseModel):
    failure_threshold: int = Field(default=5, gt=0)
    reset_time_s: float = Field(default=60.0, gt=0)


class ConfidenceCoefficients(BaseModel):
    """Coupling-penalty coefficients for the confidence formula.

    Two coefficient sets exist in the wild (10/5/2/20 and 15/10/2.5/25);
    all four are configurable rather than hardcoded.
    """
    consistency_penalty: float = 10
    dc_penalty: float = 5
    dc_penalty_below: float = 75
    assumption_unit_cost: float = 2
    assumption_penalty_cap: float = 20
    default_input_clarity: float = 60
    default_logical_coherence: float = 100


class FeatureFlags(BaseModel):
    use_llm_judge: bool = True
    persist_audit: bool = True


class JudgeSettings(BaseModel):
    provider: str = "groq"
    model: str = "llama-3.1-8b-instant"
    anthropic_model: str = "claude-sonnet-4-20250514"
    temperature: float = 0.0
    max_tokens: int = 64


class EngineConfig(BaseModel):
    """Complete configuration consumed by ``TraceabilityEngine``."""
    version: VersionInfo = Field(default_factory=VersionInfo)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    limits: Limits = Field(default_factory=Limits)
    circuit_breaker: CircuitBreakerSettings = Field(default_factory=CircuitBreakerSettings)
    confidence: ConfidenceCoefficients = Field(default_factory=ConfidenceCoefficients)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    judge: JudgeSettings = Field(default_factory=JudgeSettings)
