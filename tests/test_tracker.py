"""Tests for ResolvedEventTracker."""

from mlb_prediction_sync.engine.tracker import ResolvedEventTracker


def test_mark_resolved_reports_new_keys():
    tracker = ResolvedEventTracker()
    assert tracker.mark_resolved(1, 42) is True
    assert tracker.mark_resolved(1, 42) is False
    assert tracker.is_resolved(1, 42)


def test_keys_are_scoped_per_game():
    tracker = ResolvedEventTracker()
    tracker.mark_resolved(1, 42)
    assert not tracker.is_resolved(2, 42)


def test_cold_tracker_answers_not_resolved():
    tracker = ResolvedEventTracker()
    assert not tracker.is_resolved(1, 0)
    assert not tracker.is_initialized(1)


def test_initialize_seeds_from_durable_state():
    tracker = ResolvedEventTracker()
    tracker.initialize(1, {0, 1, 2})
    assert tracker.is_initialized(1)
    assert tracker.resolved_keys(1) == {0, 1, 2}


def test_forget_drops_game():
    tracker = ResolvedEventTracker()
    tracker.initialize(1, {0})
    tracker.forget(1)
    assert not tracker.is_initialized(1)
    assert not tracker.is_resolved(1, 0)


def test_stats():
    tracker = ResolvedEventTracker("pitcher")
    tracker.initialize(1, {10, 11})
    tracker.mark_resolved(2, 5)
    assert tracker.stats() == {
        "name": "pitcher",
        "games": 2,
        "initialized_games": 1,
        "resolved_keys": 3,
    }
