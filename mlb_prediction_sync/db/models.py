"""SQLAlchemy ORM models for predictions and sync logs.

Mutable database models mirroring the frozen dataclasses in engine.models,
plus converter functions between the two.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from mlb_prediction_sync.engine.models import PitcherPrediction, Prediction
from mlb_prediction_sync.engine.outcomes import Category, Outcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class AtBatPredictionModel(Base):
    """One user's prediction for one at-bat.

    The unique constraint on (user_id, game_pk, at_bat_index) enforces at
    most one prediction per user per at-bat. ``resolved_at`` is written once.

    Indexes:
        - (game_pk, at_bat_index, resolved_at): pending lookups per at-bat
        - (user_id, resolved_at): streak history per user
    """

    __tablename__ = "at_bat_predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    game_pk: Mapped[int] = mapped_column(Integer, nullable=False)
    at_bat_index: Mapped[int] = mapped_column(Integer, nullable=False)
    prediction: Mapped[str] = mapped_column(String(40), nullable=False)
    prediction_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actual_outcome: Mapped[str | None] = mapped_column(String(40), nullable=True)
    actual_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_partial_credit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "game_pk", "at_bat_index", name="uq_at_bat_predictions_user_event"),
        Index("ix_at_bat_predictions_event_resolved", "game_pk", "at_bat_index", "resolved_at"),
        Index("ix_at_bat_predictions_user_resolved", "user_id", "resolved_at"),
    )


class PitcherPredictionModel(Base):
    """One user's prediction of a pitcher's final line in one game.

    Innings are stored as outs recorded.
    """

    __tablename__ = "pitcher_predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    game_pk: Mapped[int] = mapped_column(Integer, nullable=False)
    pitcher_id: Mapped[int] = mapped_column(Integer, nullable=False)
    pitcher_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    predicted_outs: Mapped[int] = mapped_column(Integer, nullable=False)
    predicted_hits: Mapped[int] = mapped_column(Integer, nullable=False)
    predicted_earned_runs: Mapped[int] = mapped_column(Integer, nullable=False)
    predicted_walks: Mapped[int] = mapped_column(Integer, nullable=False)
    predicted_strikeouts: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_outs: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_hits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_earned_runs: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_walks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_strikeouts: Mapped[int | None] = mapped_column(Integer, nullable=True)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "game_pk", "pitcher_id", name="uq_pitcher_predictions_user_pitcher"),
        Index("ix_pitcher_predictions_pitcher_resolved", "game_pk", "pitcher_id", "resolved_at"),
    )


class SyncLogModel(Base):
    """Append-only record of each game's outcome within a tick."""

    __tablename__ = "game_sync_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_pk: Mapped[int] = mapped_column(Integer, nullable=False)
    sync_type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    events_resolved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    predictions_resolved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_game_sync_log_created", "created_at"),)


class ResolutionLogModel(Base):
    """Append-only record of each resolve call that had work to do."""

    __tablename__ = "prediction_resolution_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_pk: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_type: Mapped[str] = mapped_column(String(20), nullable=False)
    at_bat_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pitcher_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    outcome: Mapped[str] = mapped_column(String(40), nullable=False)
    path: Mapped[str] = mapped_column(String(20), nullable=False)
    predictions_resolved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    predictions_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_prediction_resolution_log_game", "game_pk", "created_at"),)


# Converter functions between models and frozen dataclasses


def model_to_prediction(model: AtBatPredictionModel) -> Prediction:
    """Convert an AtBatPredictionModel row to a frozen Prediction."""
    return Prediction(
        id=model.id,
        user_id=model.user_id,
        game_pk=model.game_pk,
        at_bat_index=model.at_bat_index,
        prediction=Outcome(model.prediction),
        prediction_category=Category(model.prediction_category) if model.prediction_category else None,
        actual_outcome=Outcome(model.actual_outcome) if model.actual_outcome else None,
        actual_category=Category(model.actual_category) if model.actual_category else None,
        is_correct=model.is_correct,
        is_partial_credit=bool(model.is_partial_credit),
        points_earned=model.points_earned or 0,
        streak_count=model.streak_count or 0,
        streak_bonus=model.streak_bonus or 0,
        created_at=model.created_at,
        resolved_at=model.resolved_at,
    )


def model_to_pitcher_prediction(model: PitcherPredictionModel) -> PitcherPrediction:
    """Convert a PitcherPredictionModel row to a frozen PitcherPrediction."""
    return PitcherPrediction(
        id=model.id,
        user_id=model.user_id,
        game_pk=model.game_pk,
        pitcher_id=model.pitcher_id,
        pitcher_name=model.pitcher_name,
        predicted_outs=model.predicted_outs,
        predicted_hits=model.predicted_hits,
        predicted_earned_runs=model.predicted_earned_runs,
        predicted_walks=model.predicted_walks,
        predicted_strikeouts=model.predicted_strikeouts,
        actual_outs=model.actual_outs,
        actual_hits=model.actual_hits,
        actual_earned_runs=model.actual_earned_runs,
        actual_walks=model.actual_walks,
        actual_strikeouts=model.actual_strikeouts,
        points_earned=model.points_earned or 0,
        created_at=model.created_at,
        resolved_at=model.resolved_at,
    )
