"""Exactly-once resolution of predictions against completed events.

Each resolve call:
1. Re-reads pending predictions from the store (the tracker may be cold).
2. Scores every pending row.
3. Writes them in one transaction, or, if the transaction is rejected,
   row by row concurrently, collecting per-row success and failure.
4. Marks the event resolved in the tracker only when no row is left pending.

Rows that fail keep ``resolved_at`` null and are picked up by the next tick's
re-read; there is no retry queue. Worst case a failed write is delayed by one
poll interval.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

from mlb_prediction_sync.engine.errors import StoreUnavailableError
from mlb_prediction_sync.engine.models import (
    PitcherResolutionRow,
    ResolutionBatch,
    ResolutionLogEntry,
    ResolutionOutcome,
    ResolutionRow,
)
from mlb_prediction_sync.engine.outcomes import Outcome, category_of
from mlb_prediction_sync.engine.scoring import current_streak, score_at_bat, score_pitcher_line
from mlb_prediction_sync.engine.store import Store
from mlb_prediction_sync.engine.tracker import ResolvedEventTracker
from mlb_prediction_sync.feed.models import PitcherLine
from mlb_prediction_sync.monitoring import get_logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _BaseResolver:
    """Shared persistence path for at-bat and pitcher resolution."""

    resolution_type = ""

    def __init__(
        self,
        store: Store,
        tracker: ResolvedEventTracker,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.tracker = tracker
        self._clock = clock
        self.logger = get_logger()

    async def _persist(
        self,
        batch: ResolutionBatch,
        batch_write: Callable[[list], Awaitable[set[int]]],
        row_write: Callable[[object], Awaitable[bool]],
    ) -> ResolutionOutcome:
        """Write a batch transactionally, falling back to concurrent per-row writes."""
        rows: Sequence = batch.rows
        result = ResolutionOutcome(attempted=len(rows))

        try:
            written = await batch_write(list(rows))
        except Exception as e:
            self.logger.warning(
                "resolution_batch_failed",
                game_pk=batch.game_pk,
                resolution_type=self.resolution_type,
                key=batch.key,
                rows=len(rows),
                error=str(e),
                error_type=type(e).__name__,
            )
        else:
            result.path = "transaction"
            result.succeeded = len(written)
            result.already_resolved = len(rows) - len(written)
            result.points_awarded = sum(
                row.points_earned for row in rows if row.prediction_id in written
            )
            return result

        result.path = "fallback"
        outcomes = await asyncio.gather(*(row_write(row) for row in rows), return_exceptions=True)
        for row, outcome in zip(rows, outcomes):
            if isinstance(outcome, BaseException):
                result.failed += 1
                self.logger.error(
                    "resolution_row_failed",
                    game_pk=batch.game_pk,
                    resolution_type=self.resolution_type,
                    key=batch.key,
                    prediction_id=row.prediction_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
            elif outcome:
                result.succeeded += 1
                result.points_awarded += row.points_earned
            else:
                result.already_resolved += 1
        return result

    async def _record(self, batch: ResolutionBatch, result: ResolutionOutcome, started: float) -> None:
        """Append to the resolution log. A logging failure never fails the resolution."""
        entry = ResolutionLogEntry(
            game_pk=batch.game_pk,
            resolution_type=self.resolution_type,
            key=batch.key,
            outcome=batch.outcome,
            path=result.path,
            predictions_resolved=result.succeeded,
            predictions_failed=result.failed,
            points_awarded=result.points_awarded,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        try:
            await self.store.record_resolution(entry)
        except Exception as e:
            self.logger.warning(
                "resolution_log_write_failed",
                game_pk=batch.game_pk,
                key=batch.key,
                error=str(e),
                error_type=type(e).__name__,
            )

    def _finish(self, batch: ResolutionBatch, result: ResolutionOutcome) -> ResolutionOutcome:
        if result.complete:
            self.tracker.mark_resolved(batch.game_pk, batch.key)
            self.logger.info(
                "resolution_completed",
                game_pk=batch.game_pk,
                resolution_type=self.resolution_type,
                key=batch.key,
                outcome=batch.outcome,
                **result.to_dict(),
            )
        else:
            self.logger.warning(
                "resolution_incomplete",
                game_pk=batch.game_pk,
                resolution_type=self.resolution_type,
                key=batch.key,
                outcome=batch.outcome,
                **result.to_dict(),
            )
        return result


class PredictionResolver(_BaseResolver):
    """Resolves at-bat predictions for one completed at-bat at a time.

    Attributes:
        store: Durable store collaborator
        tracker: In-memory resolved-event guard
        history_limit: How many recent resolved predictions to read for streaks
    """

    resolution_type = "at_bat"

    def __init__(
        self,
        store: Store,
        tracker: ResolvedEventTracker,
        history_limit: int = 20,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(store, tracker, clock)
        self.history_limit = history_limit

    async def resolve(self, game_pk: int, at_bat_index: int, outcome: Outcome) -> ResolutionOutcome:
        """Resolve every pending prediction for one at-bat.

        Calling this twice is safe: the second call finds nothing pending and
        returns a no-op result.

        Args:
            game_pk: Game id
            at_bat_index: Upstream at-bat index
            outcome: Classified outcome (UNKNOWN still resolves, scoring zero)

        Returns:
            ResolutionOutcome with attempted/succeeded/failed counts

        Raises:
            StoreUnavailableError: If pending predictions or streak history
                could not be read; the event is not marked resolved
        """
        started = time.perf_counter()

        try:
            pending = await self.store.get_pending_predictions(game_pk, at_bat_index)
        except Exception as e:
            raise StoreUnavailableError(
                f"Could not load pending predictions for {game_pk}/{at_bat_index}: {e}"
            ) from e

        if not pending:
            self.tracker.mark_resolved(game_pk, at_bat_index)
            return ResolutionOutcome()

        resolved_at = self._clock()
        actual_category = category_of(outcome)
        rows: list[ResolutionRow] = []
        for prediction in pending:
            try:
                history = await self.store.get_user_recent_resolved(
                    prediction.user_id, self.history_limit
                )
            except Exception as e:
                raise StoreUnavailableError(
                    f"Could not load streak history for user {prediction.user_id}: {e}"
                ) from e

            score = score_at_bat(prediction, outcome, current_streak(history))
            rows.append(
                ResolutionRow(
                    prediction_id=prediction.id,
                    user_id=prediction.user_id,
                    actual_outcome=outcome,
                    actual_category=actual_category,
                    is_correct=score.is_correct,
                    is_partial_credit=score.is_partial_credit,
                    points_earned=score.points_earned,
                    streak_count=score.streak_count,
                    streak_bonus=score.streak_bonus,
                    resolved_at=resolved_at,
                )
            )

        batch = ResolutionBatch(
            game_pk=game_pk, key=at_bat_index, outcome=outcome.value, rows=tuple(rows)
        )
        result = await self._persist(batch, self.store.batch_resolve, self.store.resolve_one)
        await self._record(batch, result, started)
        return self._finish(batch, result)


class PitcherPredictionResolver(_BaseResolver):
    """Resolves pitcher-line predictions once a pitcher has left the game."""

    resolution_type = "pitcher"

    async def resolve(self, game_pk: int, line: PitcherLine) -> ResolutionOutcome:
        """Score all pending predictions on this pitcher against the final line.

        Raises:
            StoreUnavailableError: If pending predictions could not be read
        """
        started = time.perf_counter()

        try:
            pending = await self.store.get_pending_pitcher_predictions(game_pk, line.pitcher_id)
        except Exception as e:
            raise StoreUnavailableError(
                f"Could not load pitcher predictions for {game_pk}/{line.pitcher_id}: {e}"
            ) from e

        if not pending:
            self.tracker.mark_resolved(game_pk, line.pitcher_id)
            return ResolutionOutcome()

        resolved_at = self._clock()
        rows = [
            PitcherResolutionRow(
                prediction_id=prediction.id,
                user_id=prediction.user_id,
                actual_outs=line.outs,
                actual_hits=line.hits,
                actual_earned_runs=line.earned_runs,
                actual_walks=line.walks,
                actual_strikeouts=line.strikeouts,
                points_earned=score_pitcher_line(
                    prediction,
                    outs=line.outs,
                    hits=line.hits,
                    earned_runs=line.earned_runs,
                    walks=line.walks,
                    strikeouts=line.strikeouts,
                ),
                resolved_at=resolved_at,
            )
            for prediction in pending
        ]

        batch = ResolutionBatch(
            game_pk=game_pk,
            key=line.pitcher_id,
            outcome=f"{line.innings_pitched} IP",
            rows=tuple(rows),
        )
        result = await self._persist(
            batch, self.store.batch_resolve_pitcher, self.store.resolve_one_pitcher
        )
        await self._record(batch, result, started)
        return self._finish(batch, result)
