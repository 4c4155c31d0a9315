"""Traceability engine service.

Owns the state that must outlive a single request (judge cache, circuit
breaker, metrics and audit sinks) and runs the per-request pipeline:

    ingest -> drift detection -> confidence recomputation -> consistency check

One instance serves many concurrent requests on the same event loop; tests
and tenants that need isolation construct their own instance.
"""
from __future__ import annotations

import time
import uuid
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

import structlog

from eval.checks.consistency import enforce_consistency
from judge.cache import JudgeCache
from judge.circuit_breaker import CircuitBreaker
from judge.client import JudgeClient
from judge.transport import JudgeTransport
from models.engine_config import EngineConfig
from models.ingestion import EngineInput, parse_engine_input
from models.traceability import EngineResult, Feature
from scoring.confidence_scorer import build_confidence_breakdown
from scoring.drift_detector import DriftDetector
from scoring.features import clamp_factor, compute_requirement_completeness
from telemetry.audit import AuditEntry, AuditSink, InMemoryAuditSink, hash_prompt
from telemetry.metrics import MetricsRecorder, MetricsSink

logger = structlog.get_logger(__name__)

STATUS_OK = 200
STATUS_INCONSISTENT = 422


def new_correlation_id() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:8]


class TraceabilityEngine:
    """Hybrid TF-IDF / LLM-judge traceability and confidence engine."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        transport: Optional[JudgeTransport] = None,
        metrics: Optional[MetricsSink] = None,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or EngineConfig()
        self._clock = clock

        self.breaker = CircuitBreaker(
            failure_threshold=self.config.circuit_breaker.failure_threshold,
            reset_time_s=self.config.circuit_breaker.reset_time_s,
            clock=clock,
        )
        self.cache = JudgeCache()
        self.transport = transport
        self.judge: Optional[JudgeClient] = None
        if transport is not None:
            self.judge = JudgeClient(
                transport=transport,
                breaker=self.breaker,
                cache=self.cache,
                abort_timeout_ms=self.config.limits.abort_timeout_ms,
            )
        self.drift_detector = DriftDetector(config=self.config, judge=self.judge)

        self.metrics = metrics if metrics is not None else MetricsRecorder(window=self.config.limits.metrics_window)
        if audit is None and self.config.features.persist_audit:
            audit = InMemoryAuditSink(max_entries=self.config.limits.audit_log_max)
        self.audit = audit

    async def evaluate(self, payload: Union[Mapping[str, Any], EngineInput]) -> EngineResult:
        """Validate generated features against the user's input and score the result.

        Features are enriched in place. Judge failures and malformed entries
        never raise; problems are reported through the returned values.
        """
        started = self._clock()
        correlation_id = new_correlation_id()
        log = logger.bind(correlation_id=correlation_id)

        if isinstance(payload, EngineInput):
            request = payload
        else:
            request = parse_engine_input(payload, max_input_chars=self.config.limits.max_input_chars)

        log.info(
            "evaluation_started",
            features=len(request.features),
            assumptions=len(request.assumptions),
            nfrs=len(request.non_functional_requirements),
            judge_enabled=self.drift_detector.judge_enabled,
        )

        drift = await self.drift_detector.detect(
            request.features,
            request.user_input_text,
            assumptions=request.assumptions,
        )
        self._write_back(request)

        assumptions = [*request.assumptions, *drift.assumptions_added]
        coefficients = self.config.confidence
        rc, matched = compute_requirement_completeness(request.non_functional_requirements)

        breakdown, _ = build_confidence_breakdown(
            validation_logic=drift.validation_logic,
            ic=clamp_factor(request.input_clarity, coefficients.default_input_clarity),
            rc=rc,
            matched_categories=matched,
            lc_base=clamp_factor(request.logical_coherence, coefficients.default_logical_coherence),
            assumptions=assumptions,
            coefficients=coefficients,
            version=self.config.version.confidence,
        )

        diagnostic = enforce_consistency(drift.validation_logic)
        below_floor = breakdown.final_score < self.config.thresholds.confidence_min
        duration_ms = int((self._clock() - started) * 1000)

        result = EngineResult(
            validation_logic=drift.validation_logic,
            confidence_breakdown=breakdown,
            inconsistencies_found=diagnostic,
            features=request.features,
            assumptions_made=assumptions,
            below_confidence_floor=below_floor,
            correlation_id=correlation_id,
            duration_ms=duration_ms,
        )

        log.info(
            "evaluation_complete",
            final_score=breakdown.final_score,
            domain_consistency=drift.validation_logic.domain_consistency_computed,
            consistency=drift.validation_logic.internal_consistency_check,
            llm_judge_calls=drift.validation_logic.llm_judge_calls,
            below_confidence_floor=below_floor,
            inconsistent=diagnostic is not None,
            duration_ms=duration_ms,
        )

        self._emit_telemetry(result, request)
        return result

    def _write_back(self, request: EngineInput) -> None:
        """Copy trace fields onto raw upstream dict entries the features came from."""
        for feature, item in zip(request.features, request.source_items):
            if isinstance(item, MutableMapping):
                item.update(_trace_fields(feature))

    def _emit_telemetry(self, result: EngineResult, request: EngineInput) -> None:
        """Fire-and-forget writes to the metrics and audit sinks."""
        vl = result.validation_logic
        counters = [("requests", "total")]
        if vl.llm_judge_calls:
            counters.append(("judge", "verdicts"))
        if result.inconsistencies_found is not None:
            counters.append(("requests", "inconsistent"))
        if result.below_confidence_floor:
            counters.append(("requests", "below_confidence_floor"))

        # One failing write does not skip the rest
        for group, name in counters:
            self._emit_metric(result.correlation_id, "inc_counter", group, name)
        self._emit_metric(result.correlation_id, "record_latency", result.duration_ms)
        self._emit_metric(result.correlation_id, "record_confidence", result.confidence_breakdown.final_score)

        if self.audit is None:
            return

        entry = AuditEntry(
            id=uuid.uuid4().hex,
            correlation_id=result.correlation_id,
            prompt_hash=hash_prompt(request.user_input_text),
            duration_ms=result.duration_ms,
            status=STATUS_INCONSISTENT if result.inconsistencies_found is not None else STATUS_OK,
            engine_version=self.config.version.engine,
            engine_build_hash=self.config.version.build,
            trace_data={
                "features": [{"name": f.name, **_trace_fields(f)} for f in result.features],
                "final_score": result.confidence_breakdown.final_score,
                "llm_judge_calls": vl.llm_judge_calls,
                "circuit_breaker": self.breaker.snapshot(),
            },
        )
        try:
            self.audit.record(entry)
        except Exception as e:
            logger.warning("audit_sink_failed", correlation_id=result.correlation_id, error=str(e))

    def _emit_metric(self, correlation_id: str, method: str, *args: Any) -> None:
        emit = getattr(self.metrics, method, None)
        if emit is None:
            return
        try:
            emit(*args)
        except Exception as e:
            logger.warning("metrics_sink_failed", correlation_id=correlation_id, method=method, error=str(e))

    def snapshot(self) -> dict[str, Any]:
        """Engine-level observability: breaker state, cache size, metrics."""
        report = self.metrics.report() if isinstance(self.metrics, MetricsRecorder) else {}
        return {
            "circuit_breaker": self.breaker.snapshot(),
            "judge_cache_entries": len(self.cache),
            "judge_enabled": self.drift_detector.judge_enabled,
            "metrics": report,
            "version": self.config.version.model_dump(),
        }

    async def aclose(self) -> None:
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()


def _trace_fields(feature: Feature) -> dict[str, Any]:
    status = feature.trace_status
    return {
        "trace_score": feature.trace_score,
        "trace_status": getattr(status, "value", status),
        "similarity_source": feature.similarity_source,
    }
