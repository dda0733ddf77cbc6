"""Unit tests for audit/trail.py -- append-only audit trail.

Covers:
- Entries default to actor "system" and are paged newest first
- Size cap: the entry that pushes the trail past 10,000 trims it to 8,000
- cleanup() drops entries older than 90 days
- auditEntry events are emitted
"""

import pytest

from audit.trail import AuditTrail
from core.events import AUDIT_ENTRY, EventEmitter


def test_entry_defaults(clock):
    trail = AuditTrail(clock=clock)
    entry = trail.add_audit_entry("LOGIN_SUCCEEDED", {"username": "alice"})

    assert entry.actor == "system"
    assert entry.timestamp == clock()
    assert entry.id.startswith("audit_")
    assert entry.detail == {"username": "alice"}


def test_detail_is_copied(clock):
    trail = AuditTrail(clock=clock)
    detail = {"k": 1}
    entry = trail.add_audit_entry("X", detail)
    detail["k"] = 2
    assert entry.detail == {"k": 1}


def test_paging_is_newest_first(clock):
    trail = AuditTrail(clock=clock)
    for i in range(5):
        trail.add_audit_entry(f"A{i}")

    assert [e.action for e in trail.get_audit_trail(limit=2)] == ["A4", "A3"]
    assert [e.action for e in trail.get_audit_trail(limit=2, offset=2)] == ["A2", "A1"]
    assert trail.get_audit_trail(limit=10, offset=10) == []


def test_negative_paging_is_rejected(clock):
    with pytest.raises(ValueError):
        AuditTrail(clock=clock).get_audit_trail(limit=-1)


def test_size_cap_trims_to_most_recent(clock):
    trail = AuditTrail(clock=clock)
    for i in range(10000):
        trail.add_audit_entry("A", {"n": i})
    assert trail.count() == 10000

    trail.add_audit_entry("A", {"n": 10000})

    assert trail.count() == 8000
    newest, *_, oldest = trail.get_audit_trail(limit=8000)
    assert newest.detail["n"] == 10000
    assert oldest.detail["n"] == 2001


def test_cleanup_drops_entries_older_than_ninety_days(clock):
    trail = AuditTrail(clock=clock)
    trail.add_audit_entry("OLD")
    clock.advance(days=60)
    trail.add_audit_entry("NEW")
    clock.advance(days=31)

    assert trail.cleanup() == 1
    assert [e.action for e in trail.get_audit_trail()] == ["NEW"]


def test_audit_entry_event_is_emitted(clock):
    events = EventEmitter()
    received = []
    events.subscribe(AUDIT_ENTRY, received.append)

    entry = AuditTrail(events, clock=clock).add_audit_entry("X", actor="bob")
    events.drain(timeout=5)
    events.close()

    assert received == [entry]
    assert entry.actor == "bob"


def test_trim_larger_than_cap_is_rejected():
    with pytest.raises(ValueError):
        AuditTrail(max_entries=10, trim_to=20)
