"""Unit tests for detection/baseline.py -- sliding-window counters.

Covers:
- record() counts within the window and ages out at exactly `window`
- record(add=False) prunes without counting
- record_tagged() tracks events and distinct tags, ignoring None tags for distinct
- prune() drops stale timestamps and forgets empty keys
"""

from datetime import timedelta

from detection.baseline import AnomalyBaselineStore


def test_record_counts_events_inside_window(clock):
    store = AnomalyBaselineStore()
    window = timedelta(minutes=5)
    for _ in range(3):
        count = store.record("brute_force:10.0.0.1", clock(), window)
    assert count == 3
    assert store.count("brute_force:10.0.0.1") == 3


def test_event_exactly_window_old_has_aged_out(clock):
    store = AnomalyBaselineStore()
    window = timedelta(minutes=5)
    store.record("k", clock(), window)
    clock.advance(minutes=5)
    assert store.record("k", clock(), window) == 1


def test_record_without_add_only_prunes(clock):
    store = AnomalyBaselineStore()
    window = timedelta(minutes=1)
    store.record("k", clock(), window)
    store.record("k", clock(), window)
    assert store.record("k", clock(), window, add=False) == 2
    clock.advance(minutes=2)
    assert store.record("k", clock(), window, add=False) == 0


def test_record_tagged_counts_requests_and_distinct_sources(clock):
    store = AnomalyBaselineStore()
    window = timedelta(minutes=1)
    store.record_tagged("ddos", clock(), window, "10.0.0.1")
    store.record_tagged("ddos", clock(), window, "10.0.0.1")
    requests, unique = store.record_tagged("ddos", clock(), window, "10.0.0.2")
    assert (requests, unique) == (3, 2)


def test_record_tagged_none_tag_is_not_a_source(clock):
    store = AnomalyBaselineStore()
    requests, unique = store.record_tagged("ddos", clock(), timedelta(minutes=1), None)
    assert (requests, unique) == (1, 0)


def test_record_tagged_forgets_sources_that_age_out(clock):
    store = AnomalyBaselineStore()
    window = timedelta(minutes=1)
    store.record_tagged("ddos", clock(), window, "10.0.0.1")
    clock.advance(seconds=61)
    requests, unique = store.record_tagged("ddos", clock(), window, "10.0.0.2")
    assert (requests, unique) == (1, 1)


def test_prune_drops_stale_keys(clock):
    store = AnomalyBaselineStore()
    window = timedelta(days=2)
    store.record("old", clock(), window)
    clock.advance(hours=25)
    store.record("fresh", clock(), window)

    removed = store.prune(clock(), timedelta(hours=24))

    assert removed == 1
    assert store.count("old") == 0
    assert store.count("fresh") == 1
    assert "old" not in store.keys()


def test_clear_empties_every_window(clock):
    store = AnomalyBaselineStore()
    store.record("a", clock(), timedelta(minutes=1))
    store.record_tagged("b", clock(), timedelta(minutes=1), "x")
    store.clear()
    assert store.keys() == []
