"""CLI package for the prediction sync service."""

from mlb_prediction_sync.cli.main import cli

__all__ = ["cli"]
