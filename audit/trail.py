"""
audit/trail.py -- In-memory audit trail with a size cap and time retention.

Records are appended, never edited. Two bounds keep memory flat:
  - size: once the trail exceeds MAX_ENTRIES it is cut back to the most
    recent TRIM_TO entries (order preserved);
  - age: cleanup() (scheduled daily) drops entries older than RETENTION.

Nothing is persisted -- a restart starts an empty trail.

Usage:
    trail = AuditTrail(events)
    trail.add_audit_entry("COMPLIANCE_ASSESSMENT_COMPLETED", {"score": 87.5})
    page = trail.get_audit_trail(limit=50, offset=0)   # newest first
"""

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from core.events import AUDIT_ENTRY, EventEmitter
from core.models import AuditEntry

logger = logging.getLogger("sentinelops.audit")

MAX_ENTRIES = 10000
TRIM_TO = 8000
RETENTION = timedelta(days=90)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditTrail:
    def __init__(
        self,
        events: Optional[EventEmitter] = None,
        clock: Callable[[], datetime] = _utcnow,
        max_entries: int = MAX_ENTRIES,
        trim_to: int = TRIM_TO,
    ) -> None:
        if trim_to > max_entries:
            raise ValueError("trim_to must not exceed max_entries")
        self._entries: list[AuditEntry] = []
        self._events = events
        self._clock = clock
        self._max_entries = max_entries
        self._trim_to = trim_to
        self._lock = threading.RLock()

    def add_audit_entry(
        self,
        action: str,
        detail: Optional[dict[str, Any]] = None,
        actor: Optional[str] = None,
    ) -> AuditEntry:
        """Append one record and notify auditEntry listeners."""
        entry = AuditEntry(
            id=f"audit_{uuid.uuid4().hex[:12]}",
            timestamp=self._clock(),
            action=action,
            actor=actor or "system",
            detail=dict(detail or {}),
        )
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._max_entries:
                self._entries = self._entries[-self._trim_to :]
        if self._events is not None:
            self._events.emit(AUDIT_ENTRY, entry)
        return entry

    def cleanup(self) -> int:
        """Drop entries older than the retention window. Returns how many went."""
        cutoff = self._clock() - RETENTION
        with self._lock:
            before = len(self._entries)
            self._entries = [e for e in self._entries if e.timestamp > cutoff]
            removed = before - len(self._entries)
            remaining = len(self._entries)
        logger.info("Audit trail cleanup completed: %d removed, %d remaining", removed, remaining)
        return removed

    def get_audit_trail(self, limit: int = 100, offset: int = 0) -> list[AuditEntry]:
        """Return one page of entries, most recent first."""
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must be non-negative")
        with self._lock:
            newest_first = self._entries[::-1]
        return newest_first[offset : offset + limit]

    def count(self) -> int:
        with self._lock:
            return len(self._entries)
