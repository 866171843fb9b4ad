"""Repository layer implementing the engine's Store contract."""

from mlb_prediction_sync.db.repositories.predictions import PredictionRepository

__all__ = ["PredictionRepository"]
