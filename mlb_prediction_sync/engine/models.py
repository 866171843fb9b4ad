"""Domain value objects passed between the engine and the Store.

Frozen dataclasses, mirroring how the durable store's ORM models are
converted at the repository boundary.
"""

from dataclasses import dataclass, field
from datetime import datetime

from mlb_prediction_sync.engine.outcomes import Category, Outcome


@dataclass(frozen=True)
class Prediction:
    """A user's guess for one at-bat.

    ``resolved_at`` is None while pending and set exactly once on resolution.
    """

    id: int
    user_id: str
    game_pk: int
    at_bat_index: int
    prediction: Outcome
    prediction_category: Category | None = None
    actual_outcome: Outcome | None = None
    actual_category: Category | None = None
    is_correct: bool | None = None
    is_partial_credit: bool = False
    points_earned: int = 0
    streak_count: int = 0
    streak_bonus: int = 0
    created_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.resolved_at is None


@dataclass(frozen=True)
class PitcherPrediction:
    """A user's guess for a starting pitcher's final line.

    Innings are stored as outs recorded (6.2 innings -> 20).
    """

    id: int
    user_id: str
    game_pk: int
    pitcher_id: int
    pitcher_name: str
    predicted_outs: int
    predicted_hits: int
    predicted_earned_runs: int
    predicted_walks: int
    predicted_strikeouts: int
    actual_outs: int | None = None
    actual_hits: int | None = None
    actual_earned_runs: int | None = None
    actual_walks: int | None = None
    actual_strikeouts: int | None = None
    points_earned: int = 0
    created_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.resolved_at is None


@dataclass(frozen=True)
class ResolutionRow:
    """Resolution fields to write for one at-bat prediction."""

    prediction_id: int
    user_id: str
    actual_outcome: Outcome
    actual_category: Category
    is_correct: bool
    is_partial_credit: bool
    points_earned: int
    streak_count: int
    streak_bonus: int
    resolved_at: datetime


@dataclass(frozen=True)
class PitcherResolutionRow:
    """Resolution fields to write for one pitcher prediction."""

    prediction_id: int
    user_id: str
    actual_outs: int
    actual_hits: int
    actual_earned_runs: int
    actual_walks: int
    actual_strikeouts: int
    points_earned: int
    resolved_at: datetime


@dataclass(frozen=True)
class ResolutionBatch:
    """An event's outcome plus the rows computed for its pending predictions.

    Exists only for the duration of one resolve call.
    """

    game_pk: int
    key: int
    outcome: str
    rows: tuple = ()


@dataclass
class ResolutionOutcome:
    """Result of one resolve call.

    Attributes:
        attempted: Pending rows the resolver tried to write
        succeeded: Rows written
        failed: Rows left pending after a failed write
        already_resolved: Rows another writer resolved first
        points_awarded: Points written in this call
        path: "transaction", "fallback", or "noop"
    """

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    already_resolved: int = 0
    points_awarded: int = 0
    path: str = "noop"

    @property
    def complete(self) -> bool:
        """True when nothing is left pending for the event."""
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "already_resolved": self.already_resolved,
            "points_awarded": self.points_awarded,
            "path": self.path,
        }


@dataclass
class TickReport:
    """Summary of one scheduler tick across all tracked games."""

    tick_id: str
    started_at: datetime
    games_polled: int = 0
    fetch_failures: int = 0
    events_resolved: int = 0
    predictions_resolved: int = 0
    points_awarded: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors and self.fetch_failures == 0


@dataclass(frozen=True)
class SyncLogEntry:
    """One row of the append-only sync log."""

    game_pk: int
    sync_type: str
    status: str
    events_resolved: int = 0
    predictions_resolved: int = 0
    points_awarded: int = 0
    duration_ms: int = 0
    error_message: str | None = None


@dataclass(frozen=True)
class ResolutionLogEntry:
    """One row of the append-only resolution log."""

    game_pk: int
    resolution_type: str
    key: int
    outcome: str
    path: str
    predictions_resolved: int
    predictions_failed: int
    points_awarded: int
    duration_ms: int
