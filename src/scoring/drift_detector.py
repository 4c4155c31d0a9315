"""Per-feature traceability classification and domain drift statistics.

Every feature is scored with TF-IDF against the user's input. Gray-zone
features (between the speculative and traceable thresholds) are sent to
the LLM judge while the per-request judge budget lasts; a judge verdict
replaces the TF-IDF verdict, a failed judge call leaves it in place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

from judge.client import JudgeClient
from models.engine_config import EngineConfig
from models.traceability import Assumption, ConsistencyCheck, Feature, TraceStatus, ValidationLogic
from similarity.classifier import classify_judge_score, classify_similarity
from similarity.tfidf import score_against_reference

logger = structlog.get_logger(__name__)

SOURCE_TFIDF = "tfidf"
SYNTHESIZED_IMPACT = -2.0


@dataclass
class DriftReport:
    """Drift detector output: the validation logic plus synthesized assumptions."""
    validation_logic: ValidationLogic
    assumptions_added: list[Assumption] = field(default_factory=list)
    traceable_count: int = 0


def format_drift_instance(feature: Feature, score: float, source: str) -> str:
    label = feature.name or feature.scoring_text[:60] or "<unnamed feature>"
    return f"'{label}' has no traceable basis in the user input (similarity {score:.2f} via {source})"


def synthesize_assumption(feature: Feature, score: float, source: str) -> Assumption:
    label = feature.name or feature.scoring_text[:60] or "<unnamed feature>"
    return Assumption(
        assumption=f"Feature '{label}' is implied rather than stated by the user",
        reason=f"Gray-zone similarity {score:.2f} ({source}); plausible but unverified",
        confidence_impact=SYNTHESIZED_IMPACT,
    )


class DriftDetector:
    """Classifies features and aggregates domain drift for one request."""

    def __init__(self, config: Optional[EngineConfig] = None, judge: Optional[JudgeClient] = None):
        self.config = config or EngineConfig()
        self.judge = judge

    @property
    def judge_enabled(self) -> bool:
        return self.judge is not None and self.config.features.use_llm_judge

    async def detect(
        self,
        features: Sequence[Feature],
        user_input_text: str,
        assumptions: Sequence[Assumption] = (),
    ) -> DriftReport:
        """Classify every feature in order, mutating trace fields in place.

        Judge calls are awaited one at a time so the budget is exact.
        """
        thresholds = self.config.thresholds
        max_judge_calls = self.config.limits.max_judge_calls_per_req

        traceable_count = 0
        judge_calls = 0
        drift_instances: list[str] = []
        speculative_flagged: list[str] = []
        additions: list[Assumption] = []

        for feature in features:
            text = feature.scoring_text
            score = score_against_reference(text, user_input_text)
            status = classify_similarity(score, thresholds)
            source = SOURCE_TFIDF

            if status == TraceStatus.ASSUMPTION and self.judge_enabled and judge_calls < max_judge_calls:
                verdict = await self.judge.judge(text, user_input_text)
                if verdict.score is not None:
                    score = verdict.score
                    status = classify_judge_score(score, thresholds)
                    source = f"llm-judge-{verdict.source}"
                    judge_calls += 1

            feature.trace_score = round(score, 4)
            feature.trace_status = status
            feature.similarity_source = source

            if status == TraceStatus.TRACEABLE:
                traceable_count += 1
            elif status == TraceStatus.ASSUMPTION:
                additions.append(synthesize_assumption(feature, score, source))
            else:
                # Both collections grow together; the consistency check relies on it
                speculative_flagged.append(feature.name or text)
                drift_instances.append(format_drift_instance(feature, score, source))

        total = len(features)
        domain_consistency = round(traceable_count / total * 100, 2) if total > 0 else 100.0

        validation_logic = ValidationLogic(
            domain_drift_instances=drift_instances,
            speculative_features_flagged=speculative_flagged,
            assumption_count=len(assumptions) + len(additions),
            internal_consistency_check=ConsistencyCheck.PASS if not drift_instances else ConsistencyCheck.PARTIAL,
            domain_consistency_computed=domain_consistency,
            similarity_engine=self.config.version.similarity,
            engine_version=self.config.version.engine,
            llm_judge_calls=judge_calls,
        )

        logger.info(
            "drift_detection_complete",
            features=total,
            traceable=traceable_count,
            assumptions_added=len(additions),
            speculative=len(speculative_flagged),
            domain_consistency=domain_consistency,
            llm_judge_calls=judge_calls,
        )

        return DriftReport(
            validation_logic=validation_logic,
            assumptions_added=additions,
            traceable_count=traceable_count,
        )
