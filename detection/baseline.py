"""
detection/baseline.py -- Sliding-window counters behind the indicator scorers.

Two window shapes are kept, both keyed by a string:

  timestamp windows   key -> deque[datetime]
      Used per source IP (e.g. "brute_force:10.0.0.5"). Each call appends the
      current time (optionally) and drops everything that has aged out.

  tagged windows      key -> deque[(datetime, tag)] + live tag counts
      Used for the global DDoS window, where the question is both "how many
      requests" and "from how many distinct addresses" inside the window.
      Tag counts are maintained incrementally so distinct() is O(1).

Windows are pruned lazily on every record() call. prune() is the periodic
sweep (hourly) that caps timestamp windows at a longer decay horizon and
forgets keys that have gone quiet, so one-off source IPs do not accumulate.
"""

import threading
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Optional

GENERIC_DECAY = timedelta(hours=24)


class AnomalyBaselineStore:
    def __init__(self) -> None:
        self._windows: dict[str, deque[datetime]] = {}
        self._tagged: dict[str, deque[tuple[datetime, Optional[str]]]] = {}
        self._tag_counts: dict[str, Counter] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Timestamp windows
    # ------------------------------------------------------------------

    def record(self, key: str, now: datetime, window: timedelta, add: bool = True) -> int:
        """Optionally add now to key's window, prune, and return the live count.

        An event exactly `window` old has aged out.
        """
        with self._lock:
            events = self._windows.setdefault(key, deque())
            if add:
                events.append(now)
            while events and now - events[0] >= window:
                events.popleft()
            return len(events)

    def count(self, key: str) -> int:
        with self._lock:
            return len(self._windows.get(key, ()))

    # ------------------------------------------------------------------
    # Tagged windows
    # ------------------------------------------------------------------

    def record_tagged(self, key: str, now: datetime, window: timedelta, tag: Optional[str]) -> tuple[int, int]:
        """Add (now, tag), prune, and return (events in window, distinct tags in window).

        A None tag counts as an event but not as a distinct source.
        """
        with self._lock:
            events = self._tagged.setdefault(key, deque())
            tags = self._tag_counts.setdefault(key, Counter())
            events.append((now, tag))
            if tag is not None:
                tags[tag] += 1
            while events and now - events[0][0] >= window:
                _, old_tag = events.popleft()
                if old_tag is not None:
                    tags[old_tag] -= 1
                    if tags[old_tag] <= 0:
                        del tags[old_tag]
            return len(events), len(tags)

    # ------------------------------------------------------------------
    # Periodic maintenance
    # ------------------------------------------------------------------

    def prune(self, now: datetime, max_age: timedelta = GENERIC_DECAY) -> int:
        """Drop timestamps older than max_age from every timestamp window.

        Keys left empty are removed. Returns the number of keys removed.
        """
        removed = 0
        with self._lock:
            for key in list(self._windows):
                events = self._windows[key]
                while events and now - events[0] > max_age:
                    events.popleft()
                if not events:
                    del self._windows[key]
                    removed += 1
        return removed

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._windows) + list(self._tagged)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()
            self._tagged.clear()
            self._tag_counts.clear()
