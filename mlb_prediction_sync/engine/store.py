"""Durable store contract consumed by the resolver and scheduler.

The SQLAlchemy implementation lives in ``db.repositories.predictions``;
tests use an in-memory fake. Every write is guarded on ``resolved_at IS
NULL`` so that a second writer becomes a no-op rather than a double award.
"""

from abc import ABC, abstractmethod

from mlb_prediction_sync.engine.models import (
    PitcherPrediction,
    PitcherResolutionRow,
    Prediction,
    ResolutionLogEntry,
    ResolutionRow,
    SyncLogEntry,
)
from mlb_prediction_sync.engine.outcomes import Category, Outcome


class Store(ABC):
    """Abstract durable store for predictions and sync logs.

    Defines the contract any backing store must fulfill:
    - pending/history reads for resolution
    - an all-or-nothing batch write plus a per-row fallback write
    - submission with the at-most-one-prediction invariant
    - append-only sync and resolution logs
    """

    # --- At-bat predictions ---

    @abstractmethod
    async def get_pending_predictions(self, game_pk: int, at_bat_index: int) -> list[Prediction]:
        """Return predictions for the at-bat with ``resolved_at`` still null."""

    @abstractmethod
    async def batch_resolve(self, rows: list[ResolutionRow]) -> set[int]:
        """Write all rows in one transaction.

        Returns:
            Ids of the predictions actually written (rows resolved by another
            writer are skipped)

        Raises:
            PersistenceConflictError: If the transaction was rejected; nothing was written
        """

    @abstractmethod
    async def resolve_one(self, row: ResolutionRow) -> bool:
        """Write a single row.

        Returns:
            True if written, False if the prediction was already resolved
        """

    @abstractmethod
    async def get_user_recent_resolved(self, user_id: str, limit: int) -> list[Prediction]:
        """Return the user's most recent resolved predictions, newest first."""

    @abstractmethod
    async def get_resolved_event_indices(self, game_pk: int) -> set[int]:
        """At-bat indices whose predictions are all resolved."""

    @abstractmethod
    async def submit_prediction(
        self,
        user_id: str,
        game_pk: int,
        at_bat_index: int,
        prediction: Outcome,
        prediction_category: Category | None = None,
    ) -> Prediction:
        """Create a pending prediction.

        Raises:
            DuplicatePredictionError: If the user already predicted this at-bat
        """

    # --- Pitcher-line predictions ---

    @abstractmethod
    async def get_pending_pitcher_predictions(
        self, game_pk: int, pitcher_id: int
    ) -> list[PitcherPrediction]:
        """Return unresolved pitcher predictions for one pitcher in one game."""

    @abstractmethod
    async def batch_resolve_pitcher(self, rows: list[PitcherResolutionRow]) -> set[int]:
        """Transactional write for pitcher rows (see batch_resolve)."""

    @abstractmethod
    async def resolve_one_pitcher(self, row: PitcherResolutionRow) -> bool:
        """Single-row write for pitcher rows (see resolve_one)."""

    @abstractmethod
    async def get_resolved_pitcher_ids(self, game_pk: int) -> set[int]:
        """Pitcher ids whose predictions in this game are all resolved."""

    @abstractmethod
    async def submit_pitcher_prediction(
        self,
        user_id: str,
        game_pk: int,
        pitcher_id: int,
        pitcher_name: str,
        predicted_outs: int,
        predicted_hits: int,
        predicted_earned_runs: int,
        predicted_walks: int,
        predicted_strikeouts: int,
    ) -> PitcherPrediction:
        """Create a pending pitcher prediction.

        Raises:
            DuplicatePredictionError: If the user already predicted this pitcher
        """

    # --- Observability ---

    @abstractmethod
    async def record_sync(self, entry: SyncLogEntry) -> None:
        """Append a tick outcome to the sync log."""

    @abstractmethod
    async def record_resolution(self, entry: ResolutionLogEntry) -> None:
        """Append a resolution outcome to the resolution log."""

    @abstractmethod
    async def get_sync_stats(self, hours: int = 24) -> dict:
        """Aggregate the sync log over the last ``hours``."""

    async def check_health(self) -> bool:
        """Whether the store is reachable. Stores without a connection are always healthy."""
        return True
