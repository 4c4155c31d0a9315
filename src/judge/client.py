"""LLM judge fallback for gray-zone similarity scores.

Used only when TF-IDF cannot decide whether a feature is grounded in the
user's input (typically paraphrases that share no surface tokens).
"""
from __future__ import annotations

import asyncio
import json
import math
import re
from typing import Optional

import structlog

from judge.cache import JudgeCache, make_cache_key
from judge.circuit_breaker import CircuitBreaker
from judge.transport import JudgeTransport
from models.traceability import JudgeVerdict
from utils.error_handler import JudgeError, JudgeParseError, handle_transport_error

logger = structlog.get_logger(__name__)

SOURCE_CIRCUIT_BREAKER = "circuit-breaker"
SOURCE_CACHE = "cache"
SOURCE_ERROR = "error"

JUDGE_SYSTEM_PROMPT = (
    "You are a strict requirements traceability judge. Given a user's original "
    "request and one feature from a generated specification, rate how directly "
    "the feature is supported by what the user asked for. 1.0 means explicitly "
    "requested or a direct paraphrase, 0.5 means plausible but not stated, 0.0 "
    "means unrelated or invented. Respond ONLY in JSON: {\"score\": number between 0 and 1}"
)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def build_judge_prompt(feature_text: str, user_input_text: str) -> str:
    return f"User request:\n{user_input_text}\n\nGenerated feature:\n{feature_text}"


def parse_judge_score(content: str) -> float:
    """Extract the numeric score from a judge response.

    Raises JudgeParseError when the response is not JSON text or the score
    is missing, non-numeric or not finite. Out-of-range numbers are clamped
    to [0, 1].
    """
    if not isinstance(content, str):
        raise JudgeParseError("non-text completion")

    cleaned = _FENCE_PATTERN.sub("", content.strip())
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError) as e:
        raise JudgeParseError("not JSON") from e

    if not isinstance(data, dict) or "score" not in data:
        raise JudgeParseError("missing score")

    score = data["score"]
    # bool is an int subclass; "true" is not a score
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise JudgeParseError("non-numeric score")
    try:
        value = float(score)
    except (OverflowError, TypeError, ValueError) as e:
        raise JudgeParseError("score out of float range") from e
    if not math.isfinite(value):
        raise JudgeParseError("non-finite score")

    return min(1.0, max(0.0, value))


class JudgeClient:
    """Cached, breaker-protected, timeout-bounded judge lookups.

    One attempt per call and no retries; a failed call yields a verdict with
    score None and the caller keeps its TF-IDF classification.
    """

    def __init__(
        self,
        transport: JudgeTransport,
        breaker: Optional[CircuitBreaker] = None,
        cache: Optional[JudgeCache] = None,
        abort_timeout_ms: int = 4000,
    ):
        self.transport = transport
        self.breaker = breaker or CircuitBreaker()
        self.cache = cache if cache is not None else JudgeCache()
        self.abort_timeout_ms = abort_timeout_ms

    @property
    def source_name(self) -> str:
        return getattr(self.transport, "name", "llm")

    async def judge(self, feature_text: str, user_input_text: str) -> JudgeVerdict:
        if not self.breaker.allow_request():
            logger.info("judge_circuit_open", failures=self.breaker.failures)
            return JudgeVerdict(score=None, source=SOURCE_CIRCUIT_BREAKER)

        key = make_cache_key(feature_text, user_input_text)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("judge_cache_hit", key=key[:12])
            return JudgeVerdict(score=cached, source=SOURCE_CACHE)

        try:
            score = await self._request_score(feature_text, user_input_text)
        except JudgeError as e:
            self.breaker.record_failure()
            logger.warning(
                "judge_call_failed",
                error_type=e.error_type,
                message=e.get_user_message(),
                failures=self.breaker.failures,
                tripped=self.breaker.tripped,
            )
            return JudgeVerdict(score=None, source=SOURCE_ERROR)

        self.cache.set(key, score)
        logger.debug("judge_call_succeeded", score=round(score, 3), source=self.source_name)
        return JudgeVerdict(score=score, source=self.source_name)

    async def _request_score(self, feature_text: str, user_input_text: str) -> float:
        """One bounded transport call. All failure modes surface as JudgeError."""
        try:
            content = await asyncio.wait_for(
                self.transport.complete(
                    JUDGE_SYSTEM_PROMPT,
                    build_judge_prompt(feature_text, user_input_text),
                ),
                timeout=self.abort_timeout_ms / 1000,
            )
        except Exception as e:
            raise handle_transport_error(e, timeout_ms=self.abort_timeout_ms) from e

        return parse_judge_score(content)
