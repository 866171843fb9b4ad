"""Pydantic v2 request and response models for the API."""

from datetime import datetime

from pydantic import BaseModel, Field

from mlb_prediction_sync.engine.outcomes import Category, Outcome


# --- Health ---

class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    timestamp: str
    database: bool
    scheduler: str


# --- Game state ---

class EventResponse(BaseModel):
    index: int
    is_complete: bool
    outcome: Outcome | None = None
    description: str | None = None
    inning: int | None = None
    half_inning: str | None = None


class PitcherLineResponse(BaseModel):
    pitcher_id: int
    name: str
    team_side: str
    is_starter: bool
    has_exited: bool
    innings_pitched: float
    hits: int
    earned_runs: int
    walks: int
    strikeouts: int


class GameStateResponse(BaseModel):
    game_pk: int
    status: str
    detailed_state: str | None = None
    current_event_index: int | None = None
    fetched_at: datetime
    cached: bool
    events: list[EventResponse]
    pitcher_lines: list[PitcherLineResponse]


# --- Predictions ---

class PredictionRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    at_bat_index: int = Field(..., ge=0)
    prediction: Outcome
    prediction_category: Category | None = None


class PredictionResponse(BaseModel):
    id: int
    user_id: str
    game_pk: int
    at_bat_index: int
    prediction: Outcome
    prediction_category: Category | None = None
    created_at: datetime | None = None


class PitcherPredictionRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    pitcher_id: int
    pitcher_name: str = Field(default="", max_length=120)
    predicted_innings: float = Field(..., ge=0, le=30, description="Baseball notation, e.g. 6.2")
    predicted_hits: int = Field(..., ge=0)
    predicted_earned_runs: int = Field(..., ge=0)
    predicted_walks: int = Field(..., ge=0)
    predicted_strikeouts: int = Field(..., ge=0)


class PitcherPredictionResponse(BaseModel):
    id: int
    user_id: str
    game_pk: int
    pitcher_id: int
    predicted_outs: int
    created_at: datetime | None = None


# --- System ---

class SyncTriggerResponse(BaseModel):
    ran: bool
    tick_id: str | None = None
    games_polled: int = 0
    fetch_failures: int = 0
    events_resolved: int = 0
    predictions_resolved: int = 0
    points_awarded: int = 0
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)


class SchedulerActionResponse(BaseModel):
    changed: bool
    state: str
    interval_seconds: float


class SystemStatsResponse(BaseModel):
    scheduler: dict
    cache: dict
    sync_log: dict | None = None
