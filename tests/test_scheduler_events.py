"""Unit tests for core/scheduler.py and core/events.py.

Covers:
- PeriodicJob runs sync and async bodies, isolates failures, starts/stops cleanly
- A job keeps ticking after its body raises
- EventEmitter delivers to subscribers, survives failing listeners, stops after close
"""

import asyncio

import pytest

from core.events import EventEmitter
from core.scheduler import PeriodicJob


# ---------------------------------------------------------------------------
# PeriodicJob
# ---------------------------------------------------------------------------


def test_run_once_with_sync_body():
    calls = []
    job = PeriodicJob("sync", 60, lambda: calls.append(1))
    assert asyncio.run(job.run_once()) is True
    assert calls == [1]


def test_run_once_with_async_body():
    calls = []

    async def body():
        calls.append(1)

    assert asyncio.run(PeriodicJob("async", 60, body).run_once()) is True
    assert calls == [1]


def test_run_once_contains_errors():
    def body():
        raise RuntimeError("cleanup failed")

    assert asyncio.run(PeriodicJob("broken", 60, body).run_once()) is False


def test_non_positive_interval_is_rejected():
    with pytest.raises(ValueError):
        PeriodicJob("bad", 0, lambda: None)


def test_loop_keeps_ticking_after_failures():
    ticks = []

    def body():
        ticks.append(1)
        raise RuntimeError("every time")

    async def scenario():
        job = PeriodicJob("flaky", 0.01, body)
        job.start()
        job.start()  # idempotent
        await asyncio.sleep(0.1)
        await job.stop()
        return job.running

    assert asyncio.run(scenario()) is False
    assert len(ticks) >= 2


def test_stop_before_start_is_a_no_op():
    asyncio.run(PeriodicJob("idle", 1, lambda: None).stop())


# ---------------------------------------------------------------------------
# EventEmitter
# ---------------------------------------------------------------------------


def test_emit_delivers_to_every_subscriber():
    events = EventEmitter()
    first, second = [], []
    events.subscribe("threatDetected", first.append)
    events.subscribe("threatDetected", second.append)

    events.emit("threatDetected", "t1")
    events.drain(timeout=5)
    events.close()

    assert first == ["t1"]
    assert second == ["t1"]


def test_failing_listener_does_not_affect_others():
    events = EventEmitter(max_workers=1)
    received = []

    def broken(payload):
        raise RuntimeError("dashboard offline")

    events.subscribe("auditEntry", broken)
    events.subscribe("auditEntry", received.append)
    events.emit("auditEntry", 1)
    events.emit("auditEntry", 2)
    events.drain(timeout=5)
    events.close()

    assert received == [1, 2]


def test_unsubscribe():
    events = EventEmitter()
    received = []
    events.subscribe("x", received.append)
    assert events.unsubscribe("x", received.append) is True
    assert events.unsubscribe("x", received.append) is False
    events.emit("x", 1)
    events.drain(timeout=5)
    events.close()
    assert received == []


def test_emit_after_close_is_dropped():
    events = EventEmitter()
    received = []
    events.subscribe("x", received.append)
    events.close()
    events.emit("x", 1)
    assert received == []
