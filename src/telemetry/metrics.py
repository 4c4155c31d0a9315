"""In-memory engine metrics: counters plus rolling latency/confidence windows."""
from __future__ import annotations

import math
import time
from collections import deque
from typing import Any, Protocol, Sequence, runtime_checkable

DEFAULT_WINDOW = 1000


@runtime_checkable
class MetricsSink(Protocol):
    def record_latency(self, ms: float) -> None: ...

    def record_confidence(self, score: float) -> None: ...

    def inc_counter(self, group: str, name: str) -> None: ...


def _avg(values: Sequence[float]) -> int:
    return round(sum(values) / len(values)) if values else 0


def _p95(values: Sequence[float]) -> float:
    if not values:
        return 0
    ordered = sorted(values)
    return ordered[min(len(ordered) - 1, math.floor(len(ordered) * 0.95))]


class MetricsRecorder:
    """Default MetricsSink. One instance per engine; windows keep the newest samples."""

    def __init__(self, window: int = DEFAULT_WINDOW, clock=time.monotonic):
        self._clock = clock
        self.start_time = clock()
        self.counters: dict[str, int] = {}
        self.latencies: deque[float] = deque(maxlen=window)
        self.confidences: deque[float] = deque(maxlen=window)

    def inc_counter(self, group: str, name: str) -> None:
        key = f"{group}.{name}"
        self.counters[key] = self.counters.get(key, 0) + 1

    def record_latency(self, ms: float) -> None:
        self.latencies.append(ms)

    def record_confidence(self, score: float) -> None:
        self.confidences.append(score)

    def report(self) -> dict[str, Any]:
        """Snapshot safe to expose on a public metrics endpoint."""
        lats = list(self.latencies)
        confs = list(self.confidences)
        return {
            "uptime_ms": int((self._clock() - self.start_time) * 1000),
            "counters": dict(self.counters),
            "latency": {
                "samples": len(lats),
                "avg_ms": _avg(lats),
                "p95_ms": _p95(lats),
            },
            "confidence": {
                "samples": len(confs),
                "avg": _avg(confs),
                "p95": _p95(confs),
            },
        }
