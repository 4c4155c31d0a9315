"""Tests for confidence recomputation, factor helpers and the drift detector."""
from __future__ import annotations

import pytest

from judge.cache import JudgeCache
from judge.circuit_breaker import CircuitBreaker
from judge.client import JudgeClient
from models.engine_config import ConfidenceCoefficients, EngineConfig, FeatureFlags, Limits
from models.traceability import (
    Assumption,
    ConsistencyCheck,
    Feature,
    NonFunctionalRequirement,
    TraceStatus,
    ValidationLogic,
)
from scoring.confidence_scorer import (
    build_confidence_breakdown,
    compute_assumption_penalty,
    recompute_confidence,
)
from scoring.drift_detector import DriftDetector
from scoring.features import clamp_factor, compute_requirement_completeness

USER_INPUT = "User login with password reset"
TRACEABLE_TEXT = "Password reset for user login"
GRAY_TEXT = "Password reset email"
SPECULATIVE_TEXT = "Blockchain ledger integration"


def make_features() -> list[Feature]:
    return [
        Feature(name="Login", description=TRACEABLE_TEXT),
        Feature(name="Email", description=GRAY_TEXT),
        Feature(name="Ledger", description=SPECULATIVE_TEXT),
    ]


class TestRecomputeConfidence:
    """Tests for the weighted confidence formula."""

    def test_pass_without_penalties(self):
        result = recompute_confidence(ic=80, dc=80, rc=70, lc_base=85, consistency_check="PASS")
        assert result.final_score == pytest.approx(79.0)
        assert not result.consistency_penalty
        assert not result.dc_penalty

    def test_partial_costs_logical_coherence(self):
        result = recompute_confidence(ic=80, dc=80, rc=70, lc_base=85, consistency_check="PARTIAL")
        assert result.final_score == pytest.approx(77.0)
        assert result.lc == 75
        assert result.consistency_penalty

    def test_accepts_consistency_enum(self):
        result = recompute_confidence(80, 80, 70, 85, ConsistencyCheck.PARTIAL)
        assert result.final_score == pytest.approx(77.0)

    def test_low_domain_consistency_costs_logical_coherence(self):
        result = recompute_confidence(ic=80, dc=60, rc=70, lc_base=85, consistency_check="PASS")
        assert result.final_score == pytest.approx(72.0)
        assert result.dc_penalty

    def test_assumption_penalty(self):
        assumptions = [Assumption() for _ in range(8)]
        result = recompute_confidence(80, 80, 70, 85, "PASS", assumptions)
        assert result.penalty == 16
        assert result.final_score == pytest.approx(63.0)

    def test_assumption_penalty_is_capped(self):
        assumptions = [Assumption() for _ in range(15)]
        result = recompute_confidence(80, 80, 70, 85, "PASS", assumptions)
        assert result.penalty == 20
        assert result.final_score == pytest.approx(59.0)

    def test_clamped_at_zero(self):
        result = recompute_confidence(0, 0, 0, 0, "PARTIAL", [Assumption() for _ in range(15)])
        assert result.final_score == 0.0

    def test_clamped_at_hundred(self):
        result = recompute_confidence(100, 100, 100, 100, "PASS")
        assert result.final_score == 100.0

    def test_lc_never_negative(self):
        result = recompute_confidence(50, 10, 50, 3, "PARTIAL")
        assert result.lc == 0.0

    def test_custom_coefficients(self):
        coefficients = ConfidenceCoefficients(consistency_penalty=15, dc_penalty=10, assumption_unit_cost=2.5, assumption_penalty_cap=25)
        result = recompute_confidence(80, 60, 70, 85, "PARTIAL", coefficients=coefficients)
        # lc = 85 - 15 - 10 = 60
        assert result.lc == 60
        assert result.final_score == pytest.approx(68.0)


class TestAssumptionPenalty:
    """Tests for compute_assumption_penalty."""

    def test_empty(self):
        assert compute_assumption_penalty([], ConfidenceCoefficients()) == (0, 0, 0)

    def test_custom_impacts_dominate_flat(self):
        penalty, flat, custom = compute_assumption_penalty([-5, -1], ConfidenceCoefficients())
        assert flat == 4
        assert custom == 6
        assert penalty == 6

    def test_large_single_impact_is_capped(self):
        penalty, _, _ = compute_assumption_penalty([Assumption(confidence_impact=-30)], ConfidenceCoefficients())
        assert penalty == 20


class TestFactors:
    """Tests for requirement completeness and factor clamping."""

    def test_requirement_completeness_substring_match(self):
        nfrs = [
            NonFunctionalRequirement(category="Data Security"),
            NonFunctionalRequirement(category="Performance"),
            NonFunctionalRequirement(category="Compliance"),
        ]
        pct, matched = compute_requirement_completeness(nfrs)
        assert pct == 40.0
        assert matched == ["security", "performance"]

    def test_requirement_completeness_empty(self):
        assert compute_requirement_completeness([]) == (0.0, [])

    @pytest.mark.parametrize(
        "value,expected",
        [(None, 60), (150, 100), (-5, 0), ("abc", 60), ("75", 75), ({"score": 80}, 80), (True, 60), (float("nan"), 60)],
    )
    def test_clamp_factor(self, value, expected):
        assert clamp_factor(value, 60) == expected


class TestConfidenceBreakdown:
    """Tests for build_confidence_breakdown."""

    def test_breakdown_fields(self):
        validation_logic = ValidationLogic(
            domain_drift_instances=["drift"],
            speculative_features_flagged=["Ledger"],
            internal_consistency_check="PARTIAL",
            domain_consistency_computed=60,
        )
        breakdown, result = build_confidence_breakdown(
            validation_logic=validation_logic,
            ic=80,
            rc=40,
            matched_categories=["security", "performance"],
            lc_base=100,
            assumptions=[],
        )
        assert breakdown.final_score == pytest.approx(67.0)
        assert breakdown.logical_coherence.score == 85
        assert breakdown.domain_consistency.score == 60
        assert breakdown.assumption_penalty == 0.0
        assert breakdown.penalties_applied == {"consistency_penalty": True, "dc_penalty": True}
        assert breakdown.server_computed
        assert "2/5" in breakdown.requirement_completeness.justification
        assert result.lc == 85

    def test_assumption_penalty_is_negative(self):
        breakdown, _ = build_confidence_breakdown(
            validation_logic=ValidationLogic(),
            ic=60,
            rc=0,
            matched_categories=[],
            lc_base=100,
            assumptions=[Assumption(), Assumption()],
        )
        assert breakdown.assumption_penalty == -4.0


def make_judge(transport, clock) -> JudgeClient:
    return JudgeClient(
        transport=transport,
        breaker=CircuitBreaker(failure_threshold=5, reset_time_s=60, clock=clock),
        cache=JudgeCache(),
    )


class TestDriftDetectorLexical:
    """Drift detection with TF-IDF only."""

    @pytest.mark.asyncio
    async def test_classifies_each_feature(self):
        features = make_features()
        report = await DriftDetector(EngineConfig()).detect(features, USER_INPUT)

        assert [f.trace_status for f in features] == [
            TraceStatus.TRACEABLE,
            TraceStatus.ASSUMPTION,
            TraceStatus.SPECULATIVE,
        ]
        assert features[0].trace_score == pytest.approx(1.0)
        assert features[1].trace_score == pytest.approx(0.4112, abs=1e-3)
        assert features[2].trace_score == 0.0
        assert all(f.similarity_source == "tfidf" for f in features)
        assert report.traceable_count == 1

    @pytest.mark.asyncio
    async def test_validation_logic(self):
        upstream = [Assumption(assumption="Email provider exists")]
        report = await DriftDetector(EngineConfig()).detect(make_features(), USER_INPUT, upstream)
        vl = report.validation_logic

        assert vl.domain_consistency_computed == 33.33
        assert vl.speculative_features_flagged == ["Ledger"]
        assert len(vl.domain_drift_instances) == 1
        assert "Ledger" in vl.domain_drift_instances[0]
        assert vl.internal_consistency_check == "PARTIAL"
        assert vl.assumption_count == 2
        assert vl.llm_judge_calls == 0
        assert vl.similarity_engine == "hybrid-tfidf-llm-v2"
        assert vl.engine_version == "3.2.0"

    @pytest.mark.asyncio
    async def test_gray_zone_synthesizes_assumption(self):
        report = await DriftDetector(EngineConfig()).detect(make_features(), USER_INPUT)

        assert len(report.assumptions_added) == 1
        added = report.assumptions_added[0]
        assert added.confidence_impact == -2.0
        assert "Email" in added.assumption

    @pytest.mark.asyncio
    async def test_no_features(self):
        report = await DriftDetector(EngineConfig()).detect([], USER_INPUT, [Assumption(), Assumption()])
        vl = report.validation_logic

        assert vl.domain_consistency_computed == 100.0
        assert vl.internal_consistency_check == "PASS"
        assert vl.assumption_count == 2

    @pytest.mark.asyncio
    async def test_name_used_when_description_missing(self):
        features = [Feature(name=TRACEABLE_TEXT)]
        await DriftDetector(EngineConfig()).detect(features, USER_INPUT)
        assert features[0].trace_status == TraceStatus.TRACEABLE

    @pytest.mark.asyncio
    async def test_drift_and_flags_stay_in_parity(self):
        features = [Feature(name=f"Ledger {i}", description=SPECULATIVE_TEXT) for i in range(4)]
        report = await DriftDetector(EngineConfig()).detect(features, USER_INPUT)
        vl = report.validation_logic
        assert len(vl.domain_drift_instances) == len(vl.speculative_features_flagged) == 4
        assert vl.domain_consistency_computed == 0.0


class TestDriftDetectorWithJudge:
    """Drift detection with the LLM judge resolving gray-zone features."""

    @pytest.mark.asyncio
    async def test_judge_promotes_gray_feature(self, make_transport, clock):
        transport = make_transport('{"score": 0.9}')
        features = make_features()
        report = await DriftDetector(EngineConfig(), make_judge(transport, clock)).detect(features, USER_INPUT)

        assert features[1].trace_status == TraceStatus.TRACEABLE
        assert features[1].similarity_source == "llm-judge-fake"
        assert features[1].trace_score == pytest.approx(0.9)
        assert report.validation_logic.llm_judge_calls == 1
        assert report.validation_logic.domain_consistency_computed == 66.67
        assert report.assumptions_added == []
        # Only the gray-zone feature reaches the judge
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_judge_assumption_verdict(self, make_transport, clock):
        features = make_features()
        report = await DriftDetector(EngineConfig(), make_judge(make_transport('{"score": 0.5}'), clock)).detect(features, USER_INPUT)

        assert features[1].trace_status == TraceStatus.ASSUMPTION
        assert features[1].similarity_source == "llm-judge-fake"
        assert len(report.assumptions_added) == 1

    @pytest.mark.asyncio
    async def test_judge_speculative_verdict_adds_drift(self, make_transport, clock):
        features = make_features()
        report = await DriftDetector(EngineConfig(), make_judge(make_transport('{"score": 0.1}'), clock)).detect(features, USER_INPUT)
        vl = report.validation_logic

        assert features[1].trace_status == TraceStatus.SPECULATIVE
        assert vl.speculative_features_flagged == ["Email", "Ledger"]
        assert len(vl.domain_drift_instances) == 2

    @pytest.mark.asyncio
    async def test_judge_failure_keeps_tfidf_verdict(self, make_transport, clock):
        transport = make_transport(error=ConnectionError("connection refused"))
        features = make_features()
        report = await DriftDetector(EngineConfig(), make_judge(transport, clock)).detect(features, USER_INPUT)

        assert features[1].trace_status == TraceStatus.ASSUMPTION
        assert features[1].similarity_source == "tfidf"
        assert report.validation_logic.llm_judge_calls == 0
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_judge_budget_is_respected(self, make_transport, clock):
        transport = make_transport('{"score": 0.9}')
        features = [Feature(name=f"Email {i}", description=f"{GRAY_TEXT}{i}") for i in range(10)]
        report = await DriftDetector(EngineConfig(), make_judge(transport, clock)).detect(features, USER_INPUT)

        assert report.validation_logic.llm_judge_calls == 8
        assert len(transport.calls) == 8
        assert [f.similarity_source for f in features[8:]] == ["tfidf", "tfidf"]

    @pytest.mark.asyncio
    async def test_custom_budget(self, make_transport, clock):
        config = EngineConfig(limits=Limits(max_judge_calls_per_req=2))
        transport = make_transport('{"score": 0.9}')
        features = [Feature(name=f"Email {i}", description=f"{GRAY_TEXT}{i}") for i in range(5)]
        report = await DriftDetector(config, make_judge(transport, clock)).detect(features, USER_INPUT)

        assert report.validation_logic.llm_judge_calls == 2
        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_cached_verdicts_count_against_budget(self, make_transport, clock):
        transport = make_transport('{"score": 0.9}')
        features = [Feature(name=f"Email {i}", description=GRAY_TEXT) for i in range(3)]
        report = await DriftDetector(EngineConfig(), make_judge(transport, clock)).detect(features, USER_INPUT)

        assert len(transport.calls) == 1
        assert [f.similarity_source for f in features] == ["llm-judge-fake", "llm-judge-cache", "llm-judge-cache"]
        assert report.validation_logic.llm_judge_calls == 3

    @pytest.mark.asyncio
    async def test_open_breaker_stops_transport_calls(self, make_transport, clock):
        transport = make_transport(error=ConnectionError("connection refused"))
        features = [Feature(name=f"Email {i}", description=f"{GRAY_TEXT}{i}") for i in range(10)]
        report = await DriftDetector(EngineConfig(), make_judge(transport, clock)).detect(features, USER_INPUT)

        assert len(transport.calls) == 5
        assert report.validation_logic.llm_judge_calls == 0
        assert all(f.similarity_source == "tfidf" for f in features)

    @pytest.mark.asyncio
    async def test_disabled_judge_is_not_called(self, make_transport, clock):
        config = EngineConfig(features=FeatureFlags(use_llm_judge=False))
        transport = make_transport('{"score": 0.9}')
        detector = DriftDetector(config, make_judge(transport, clock))

        assert not detector.judge_enabled
        await detector.detect(make_features(), USER_INPUT)
        assert transport.calls == []
