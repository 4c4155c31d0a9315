"""Metrics and audit sinks written to by the engine."""
from telemetry.audit import AuditEntry, AuditSink, InMemoryAuditSink, hash_prompt
from telemetry.metrics import MetricsRecorder, MetricsSink

__all__ = [
    "AuditEntry",
    "AuditSink",
    "InMemoryAuditSink",
    "hash_prompt",
    "MetricsRecorder",
    "MetricsSink",
]
