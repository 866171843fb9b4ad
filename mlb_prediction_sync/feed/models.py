"""Typed game snapshot model produced at the feed boundary.

Everything downstream of the parser works on these frozen models, never on
raw feed JSON. A snapshot is replaced wholesale on every successful fetch.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mlb_prediction_sync.engine.outcomes import Outcome


class GameStatus(str, Enum):
    """Lifecycle status of a game."""

    SCHEDULED = "scheduled"
    LIVE = "live"
    FINAL = "final"
    POSTPONED = "postponed"


class EventResult(BaseModel):
    """Result block of a play as reported upstream."""

    model_config = ConfigDict(frozen=True)

    event_type: str | None = None
    event: str | None = None
    description: str | None = None
    type: str | None = None


class EventRecord(BaseModel):
    """One plate appearance within a game.

    Attributes:
        index: Upstream at-bat index, unique and increasing within a game
        is_complete: Whether the plate appearance has finished
        result: Raw result block used by the classifier
        outcome: Canonical outcome once classified
        inning: Inning number
        half_inning: "top" or "bottom"
        context: Participant data for presentation only (batter, pitcher, ...)
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    is_complete: bool = False
    result: EventResult = Field(default_factory=EventResult)
    outcome: Outcome | None = None
    inning: int | None = None
    half_inning: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class PitcherLine(BaseModel):
    """A pitcher's cumulative line in one game.

    Innings are carried as outs recorded so that comparisons are exact;
    ``innings_pitched`` renders them back in baseball notation (6.2).
    """

    model_config = ConfigDict(frozen=True)

    pitcher_id: int
    name: str = ""
    team_side: str = "home"
    is_starter: bool = False
    has_exited: bool = False
    outs: int = Field(default=0, ge=0)
    hits: int = Field(default=0, ge=0)
    earned_runs: int = Field(default=0, ge=0)
    walks: int = Field(default=0, ge=0)
    strikeouts: int = Field(default=0, ge=0)

    @property
    def innings_pitched(self) -> float:
        """Innings in baseball notation, e.g. 20 outs -> 6.2."""
        return float(f"{self.outs // 3}.{self.outs % 3}")


class GameSnapshot(BaseModel):
    """Full state of one game as of a single fetch."""

    model_config = ConfigDict(frozen=True)

    game_pk: int
    status: GameStatus = GameStatus.SCHEDULED
    detailed_state: str | None = None
    events: tuple[EventRecord, ...] = ()
    current_event_index: int | None = None
    pitcher_lines: tuple[PitcherLine, ...] = ()
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("events")
    @classmethod
    def order_events(cls, v: tuple[EventRecord, ...]) -> tuple[EventRecord, ...]:
        """Keep events sorted by index; a repeated index keeps its last report."""
        by_index = {event.index: event for event in v}
        return tuple(by_index[i] for i in sorted(by_index))

    @property
    def is_live(self) -> bool:
        return self.status == GameStatus.LIVE

    @property
    def is_finished(self) -> bool:
        """True when no further plays will be reported."""
        return self.status in (GameStatus.FINAL, GameStatus.POSTPONED)

    def event(self, index: int) -> EventRecord | None:
        """Return the event with the given index, if present."""
        for record in self.events:
            if record.index == index:
                return record
        return None

    def completed_events(self) -> list[EventRecord]:
        """Completed events in ascending index order."""
        return [record for record in self.events if record.is_complete]

    def starters(self) -> list[PitcherLine]:
        return [line for line in self.pitcher_lines if line.is_starter]
