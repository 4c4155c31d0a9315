"""Audit trail sink for engine evaluations.

Persistence lives outside the engine; this module defines the entry shape,
the sink contract and an in-memory rolling-window sink used when no
persistent store is wired in.
"""
from __future__ import annotations

import hashlib
from collections import deque
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

DEFAULT_AUDIT_LOG_MAX = 500


class AuditEntry(BaseModel):
    id: str
    correlation_id: str = ""
    tool: str = "synthesis"
    prompt_hash: str = ""
    duration_ms: int = 0
    status: int = 200
    engine_version: str = ""
    engine_build_hash: str = ""
    trace_data: dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@runtime_checkable
class AuditSink(Protocol):
    def record(self, entry: AuditEntry) -> None: ...


def hash_prompt(text: str) -> str:
    """Short, stable fingerprint of the user input; the text itself is not stored."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


class InMemoryAuditSink:
    """Keeps the newest ``max_entries`` audit entries."""

    def __init__(self, max_entries: int = DEFAULT_AUDIT_LOG_MAX):
        self._entries: deque[AuditEntry] = deque(maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def get(self, entry_id: str) -> Optional[AuditEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def recent(self, limit: int = 20) -> list[dict[str, Any]]:
        """Newest first, summary fields only."""
        newest = list(self._entries)[-limit:][::-1] if limit > 0 else []
        return [
            {"id": e.id, "tool": e.tool, "status": e.status, "created_at": e.created_at}
            for e in newest
        ]
