"""Database layer for the prediction sync service.

Public exports:
    - Base: SQLAlchemy declarative base
    - ORM models for predictions and the two append-only logs
    - Session and engine helpers
    - PredictionRepository: the Store implementation
    - init_database: Create the schema
"""

from sqlalchemy.ext.asyncio import AsyncEngine

from mlb_prediction_sync.db.models import (
    AtBatPredictionModel,
    Base,
    PitcherPredictionModel,
    ResolutionLogModel,
    SyncLogModel,
    model_to_pitcher_prediction,
    model_to_prediction,
)
from mlb_prediction_sync.db.repositories import PredictionRepository
from mlb_prediction_sync.db.session import (
    create_engine,
    get_database_url,
    make_session_factory,
)


async def init_database(engine: AsyncEngine) -> None:
    """Create tables if they don't exist.

    Production schemas are managed by alembic; this is for SQLite
    development databases and tests.

    Args:
        engine: Engine to create the tables on
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


__all__ = [
    "Base",
    "AtBatPredictionModel",
    "PitcherPredictionModel",
    "SyncLogModel",
    "ResolutionLogModel",
    "model_to_prediction",
    "model_to_pitcher_prediction",
    "PredictionRepository",
    "create_engine",
    "get_database_url",
    "make_session_factory",
    "init_database",
]
