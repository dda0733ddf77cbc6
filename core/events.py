"""
core/events.py -- Fire-and-forget observer list for engine events.

Engines call emit() after their state mutation is complete. Listeners run on
a small worker pool, so a slow listener never stalls ingestion and a failing
one is logged and forgotten.

Usage:
    events = EventEmitter()
    events.subscribe("threatDetected", push_to_dashboard)
    events.emit("threatDetected", threat)
    events.drain()    # tests / shutdown: wait for queued deliveries
    events.close()
"""

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

logger = logging.getLogger("sentinelops.events")

THREAT_DETECTED = "threatDetected"
AUDIT_ENTRY = "auditEntry"

Listener = Callable[[Any], None]


class EventEmitter:
    def __init__(self, max_workers: int = 2) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sentinelops-events")
        self._closed = False

    def subscribe(self, event: str, listener: Listener) -> None:
        with self._lock:
            self._listeners[event].append(listener)

    def unsubscribe(self, event: str, listener: Listener) -> bool:
        """Remove listener. Returns False if it was not subscribed."""
        with self._lock:
            try:
                self._listeners[event].remove(listener)
            except ValueError:
                return False
        return True

    def emit(self, event: str, payload: Any) -> None:
        """Queue payload for every listener of event. Never raises."""
        with self._lock:
            if self._closed:
                return
            listeners = list(self._listeners.get(event, ()))
            for listener in listeners:
                try:
                    future = self._executor.submit(self._deliver, event, listener, payload)
                except RuntimeError:
                    # Executor shut down between the closed check and submit.
                    logger.debug("Dropped %s event: emitter is shut down", event)
                    return
                self._pending.add(future)
                future.add_done_callback(self._pending.discard)

    def drain(self, timeout: float | None = None) -> None:
        """Block until every queued delivery has run (or timeout elapses)."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    @staticmethod
    def _deliver(event: str, listener: Listener, payload: Any) -> None:
        try:
            listener(payload)
        except Exception:
            logger.exception("Listener %r failed for %s event", listener, event)
