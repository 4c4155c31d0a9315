"""Traceability engine entry points."""
from engine.factory import build_transport, configure_logging, create_engine
from engine.service import TraceabilityEngine, new_correlation_id

__all__ = [
    "TraceabilityEngine",
    "new_correlation_id",
    "build_transport",
    "configure_logging",
    "create_engine",
]
