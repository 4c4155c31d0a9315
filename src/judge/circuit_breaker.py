"""Circuit breaker guarding the judge transport.

States:
  closed  - calls go through; failures are counted
  tripped - calls fail fast until reset_time has elapsed since the breaker tripped

Transitions:
  closed  -> tripped: failure_threshold failures
  tripped -> closed:  first call after reset_time (failures cleared)

Successes do not reset the failure count; it only decays through the
time-based reset.
"""
from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class CircuitBreakerState:
    failures: int = 0
    last_failure: Optional[float] = None
    tripped: bool = False


class CircuitBreaker:
    """Failure-isolation state machine for one external dependency."""

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_time_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.reset_time_s = reset_time_s
        self._clock = clock
        self.state = CircuitBreakerState()

    @property
    def tripped(self) -> bool:
        return self.state.tripped

    @property
    def failures(self) -> int:
        return self.state.failures

    def allow_request(self) -> bool:
        """Return False while tripped inside the reset window.

        Once the window has elapsed the breaker closes again and the
        request is allowed.
        """
        if not self.state.tripped:
            return True

        elapsed = self._clock() - (self.state.last_failure or 0.0)
        if elapsed < self.reset_time_s:
            return False

        logger.info("circuit_breaker_reset", elapsed_s=round(elapsed, 1), failures=self.state.failures)
        self.state.tripped = False
        self.state.failures = 0
        return True

    def record_failure(self) -> None:
        self.state.failures += 1

        # Only the trip stamps the window; later failures do not extend it
        if not self.state.tripped and self.state.failures >= self.failure_threshold:
            self.state.tripped = True
            self.state.last_failure = self._clock()
            logger.warning(
                "circuit_breaker_tripped",
                failures=self.state.failures,
                reset_time_s=self.reset_time_s,
            )

    def reset(self) -> None:
        self.state = CircuitBreakerState()

    def snapshot(self) -> dict[str, Any]:
        return {**asdict(self.state), "reset_time_s": self.reset_time_s}
