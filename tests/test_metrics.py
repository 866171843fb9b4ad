"""Tests for the cache and scheduler metrics dataclasses."""

from datetime import datetime, timezone

from mlb_prediction_sync.monitoring.metrics import CacheMetrics, SchedulerMetrics


class TestCacheMetrics:
    def test_hit_rate_counts_expired_as_miss(self):
        metrics = CacheMetrics(hits=80, misses=15, expired=5)
        assert metrics.hit_rate == 80.0

    def test_empty(self):
        assert CacheMetrics().hit_rate == 0.0

    def test_to_dict(self):
        assert CacheMetrics(hits=1, misses=1).to_dict() == {
            "hits": 1,
            "misses": 1,
            "expired": 0,
            "hit_rate": 50.0,
        }


class TestSchedulerMetrics:
    def test_to_dict_serializes_timestamp(self):
        started = datetime(2026, 7, 4, 19, 5, tzinfo=timezone.utc)
        metrics = SchedulerMetrics(ticks_started=3, ticks_completed=2, ticks_skipped=1, last_tick_started_at=started)

        data = metrics.to_dict()

        assert data["ticks_started"] == 3
        assert data["ticks_skipped"] == 1
        assert data["last_tick_started_at"] == "2026-07-04T19:05:00+00:00"
        assert data["last_tick_duration_ms"] is None

    def test_defaults(self):
        data = SchedulerMetrics().to_dict()
        assert data["points_awarded"] == 0
        assert data["last_tick_started_at"] is None
