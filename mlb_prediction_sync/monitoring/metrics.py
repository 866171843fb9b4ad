"""Metrics dataclasses for observability endpoints.

Provides dataclasses for tracking:
- Cache performance (hits, misses, expired reads)
- Scheduler activity (ticks, skips, fetch failures, resolution totals)

Usage:
    from mlb_prediction_sync.monitoring.metrics import CacheMetrics

    cm = CacheMetrics(hits=80, misses=15, expired=5)
    print(f"Hit rate: {cm.hit_rate}%")  # 80.0%
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class CacheMetrics:
    """Track cache performance for monitoring.

    Attributes:
        hits: Reads served from a fresh entry
        misses: Reads for keys that were never stored
        expired: Reads for keys whose entry was past its TTL (treated as absent)
    """

    hits: int = 0
    misses: int = 0
    expired: int = 0

    @property
    def hit_rate(self) -> float:
        """Fresh hit rate as a percentage, 0.0 if no reads happened."""
        total = self.hits + self.misses + self.expired
        return round(self.hits / total * 100, 1) if total > 0 else 0.0

    def to_dict(self) -> dict:
        """Export metrics as dictionary for API responses."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expired": self.expired,
            "hit_rate": self.hit_rate,
        }


@dataclass
class SchedulerMetrics:
    """Counters for the polling loop.

    Attributes:
        ticks_started: Ticks that actually ran
        ticks_completed: Ticks that ran to the end (errors inside a tick still complete it)
        ticks_skipped: Timer firings dropped because the previous tick was still running
        fetch_failures: Upstream fetches that failed or timed out
        events_resolved: Events whose predictions were fully resolved
        predictions_resolved: Individual prediction rows written
        points_awarded: Sum of points written
        last_tick_started_at: Wall-clock start of the most recent tick
        last_tick_duration_ms: Duration of the most recent completed tick
    """

    ticks_started: int = 0
    ticks_completed: int = 0
    ticks_skipped: int = 0
    fetch_failures: int = 0
    events_resolved: int = 0
    predictions_resolved: int = 0
    points_awarded: int = 0
    last_tick_started_at: datetime | None = None
    last_tick_duration_ms: int | None = None

    def to_dict(self) -> dict:
        """Export metrics as dictionary for API responses."""
        return {
            "ticks_started": self.ticks_started,
            "ticks_completed": self.ticks_completed,
            "ticks_skipped": self.ticks_skipped,
            "fetch_failures": self.fetch_failures,
            "events_resolved": self.events_resolved,
            "predictions_resolved": self.predictions_resolved,
            "points_awarded": self.points_awarded,
            "last_tick_started_at": (
                self.last_tick_started_at.isoformat() if self.last_tick_started_at else None
            ),
            "last_tick_duration_ms": self.last_tick_duration_ms,
        }
