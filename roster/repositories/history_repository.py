# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Audit history (event log) data access.
Bounded append-only log of schedule and swap events, kept for operators.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from roster.core.config import settings


class HistoryRepository:
    """In-memory event log (bounded ring buffer)."""

    def __init__(self, max_size: Optional[int] = None) -> None:
        self._events: list[dict[str, Any]] = []
        self._max_size = max_size or settings.MAX_HISTORY_SIZE

    # ── Read ──

    def get_all(
        self,
        entity_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        effective_limit = limit or settings.DEFAULT_HISTORY_LIMIT
        result = list(self._events)
        if entity_id:
            result = [e for e in result if e["entity_id"] == entity_id]
        if event_type:
            result = [e for e in result if e["event_type"] == event_type]
        return result[-effective_limit:]

    def count(self) -> int:
        return len(self._events)

    def count_by_type(self) -> dict[str, int]:
        """Return a dict of event_type -> count."""
        event_types: dict[str, int] = {}
        for e in self._events:
            et = e["event_type"]
            event_types[et] = event_types.get(et, 0) + 1
        return event_types

    # ── Write ──

    def record_event(
        self,
        event_type: str,
        entity_id: str,
        details: dict[str, Any],
        actor: Optional[str] = None,
    ) -> dict[str, Any]:
        """Append an event to the audit log, trimming oldest if over max."""
        event: dict[str, Any] = {
            "event_id": str(uuid.uuid4()),
            "event_type": event_type,
            "entity_id": entity_id,
            "actor": actor,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details,
        }
        self._events.append(event)
        if len(self._events) > self._max_size:
            del self._events[: len(self._events) - self._max_size]
        return event

    def clear(self) -> None:
        self._events.clear()
