"""create prediction and sync log tables

Revision ID: 5e1f0c9a3b27
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1f0c9a3b27'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create prediction tables and the two append-only logs."""
    op.create_table(
        "at_bat_predictions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("game_pk", sa.Integer(), nullable=False),
        sa.Column("at_bat_index", sa.Integer(), nullable=False),
        sa.Column("prediction", sa.String(40), nullable=False),
        sa.Column("prediction_category", sa.String(20), nullable=True),
        sa.Column("actual_outcome", sa.String(40), nullable=True),
        sa.Column("actual_category", sa.String(20), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("is_partial_credit", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak_bonus", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "game_pk", "at_bat_index", name="uq_at_bat_predictions_user_event"),
    )
    op.create_index(
        "ix_at_bat_predictions_event_resolved",
        "at_bat_predictions",
        ["game_pk", "at_bat_index", "resolved_at"],
    )
    op.create_index("ix_at_bat_predictions_user_resolved", "at_bat_predictions", ["user_id", "resolved_at"])

    op.create_table(
        "pitcher_predictions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("game_pk", sa.Integer(), nullable=False),
        sa.Column("pitcher_id", sa.Integer(), nullable=False),
        sa.Column("pitcher_name", sa.String(120), nullable=False, server_default=""),
        sa.Column("predicted_outs", sa.Integer(), nullable=False),
        sa.Column("predicted_hits", sa.Integer(), nullable=False),
        sa.Column("predicted_earned_runs", sa.Integer(), nullable=False),
        sa.Column("predicted_walks", sa.Integer(), nullable=False),
        sa.Column("predicted_strikeouts", sa.Integer(), nullable=False),
        sa.Column("actual_outs", sa.Integer(), nullable=True),
        sa.Column("actual_hits", sa.Integer(), nullable=True),
        sa.Column("actual_earned_runs", sa.Integer(), nullable=True),
        sa.Column("actual_walks", sa.Integer(), nullable=True),
        sa.Column("actual_strikeouts", sa.Integer(), nullable=True),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "game_pk", "pitcher_id", name="uq_pitcher_predictions_user_pitcher"),
    )
    op.create_index(
        "ix_pitcher_predictions_pitcher_resolved",
        "pitcher_predictions",
        ["game_pk", "pitcher_id", "resolved_at"],
    )

    op.create_table(
        "game_sync_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("game_pk", sa.Integer(), nullable=False),
        sa.Column("sync_type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("events_resolved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("predictions_resolved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_awarded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_game_sync_log_created", "game_sync_log", ["created_at"])

    op.create_table(
        "prediction_resolution_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("game_pk", sa.Integer(), nullable=False),
        sa.Column("resolution_type", sa.String(20), nullable=False),
        sa.Column("at_bat_index", sa.Integer(), nullable=True),
        sa.Column("pitcher_id", sa.Integer(), nullable=True),
        sa.Column("outcome", sa.String(40), nullable=False),
        sa.Column("path", sa.String(20), nullable=False),
        sa.Column("predictions_resolved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("predictions_failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_awarded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_prediction_resolution_log_game",
        "prediction_resolution_log",
        ["game_pk", "created_at"],
    )


def downgrade() -> None:
    """Drop all prediction sync tables."""
    op.drop_index("ix_prediction_resolution_log_game", table_name="prediction_resolution_log")
    op.drop_table("prediction_resolution_log")
    op.drop_index("ix_game_sync_log_created", table_name="game_sync_log")
    op.drop_table("game_sync_log")
    op.drop_index("ix_pitcher_predictions_pitcher_resolved", table_name="pitcher_predictions")
    op.drop_table("pitcher_predictions")
    op.drop_index("ix_at_bat_predictions_user_resolved", table_name="at_bat_predictions")
    op.drop_index("ix_at_bat_predictions_event_resolved", table_name="at_bat_predictions")
    op.drop_table("at_bat_predictions")
