"""Shared pytest fixtures for the prediction sync tests."""

import asyncio
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from mlb_prediction_sync.engine.errors import (
    DuplicatePredictionError,
    PersistenceConflictError,
    StoreUnavailableError,
    TransientUpstreamError,
)
from mlb_prediction_sync.engine.models import (
    PitcherPrediction,
    Prediction,
)
from mlb_prediction_sync.engine.outcomes import Outcome, classify
from mlb_prediction_sync.engine.store import Store
from mlb_prediction_sync.feed.client import FeedClient
from mlb_prediction_sync.feed.models import (
    EventRecord,
    EventResult,
    GameSnapshot,
    GameStatus,
    PitcherLine,
)
from mlb_prediction_sync.monitoring import configure_logging


@pytest.fixture(autouse=True)
def setup_test_logging():
    """Configure structlog for test output."""
    configure_logging("development")


class FakeStore(Store):
    """In-memory Store with failure injection.

    Attributes:
        fail_pending: get_pending_predictions raises
        fail_history: get_user_recent_resolved raises
        fail_batch: batch writes raise PersistenceConflictError
        fail_rows: prediction ids whose single-row write raises
        fail_logs: record_sync / record_resolution raise
    """

    def __init__(self):
        self.predictions: dict[int, Prediction] = {}
        self.pitcher_predictions: dict[int, PitcherPrediction] = {}
        self.sync_log: list = []
        self.resolution_log: list = []
        self.batch_calls = 0
        self.row_calls = 0
        self._next_id = 1

        self.fail_pending = False
        self.fail_history = False
        self.fail_batch = False
        self.fail_rows: set[int] = set()
        self.fail_logs = False

    def _id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    # --- Seeding helpers ---

    def add_history(self, user_id: str, results: list[bool], game_pk: int = 1) -> None:
        """Seed resolved predictions, oldest first."""
        start = datetime(2026, 4, 1, tzinfo=timezone.utc)
        for i, correct in enumerate(results):
            pid = self._id()
            self.predictions[pid] = Prediction(
                id=pid,
                user_id=user_id,
                game_pk=game_pk,
                at_bat_index=i,
                prediction=Outcome.SINGLE,
                is_correct=correct,
                resolved_at=start + timedelta(minutes=i),
            )

    # --- At-bat predictions ---

    async def get_pending_predictions(self, game_pk, at_bat_index):
        if self.fail_pending:
            raise StoreUnavailableError("pending read failed")
        return [
            p
            for p in sorted(self.predictions.values(), key=lambda p: p.id)
            if p.game_pk == game_pk and p.at_bat_index == at_bat_index and p.resolved_at is None
        ]

    def _apply(self, row) -> bool:
        current = self.predictions[row.prediction_id]
        if current.resolved_at is not None:
            return False
        self.predictions[row.prediction_id] = replace(
            current,
            actual_outcome=row.actual_outcome,
            actual_category=row.actual_category,
            is_correct=row.is_correct,
            is_partial_credit=row.is_partial_credit,
            points_earned=row.points_earned,
            streak_count=row.streak_count,
            streak_bonus=row.streak_bonus,
            resolved_at=row.resolved_at,
        )
        return True

    async def batch_resolve(self, rows):
        self.batch_calls += 1
        if self.fail_batch:
            raise PersistenceConflictError("batch rejected")
        return {row.prediction_id for row in rows if self._apply(row)}

    async def resolve_one(self, row):
        self.row_calls += 1
        await asyncio.sleep(0)
        if row.prediction_id in self.fail_rows:
            raise StoreUnavailableError(f"row {row.prediction_id} failed")
        return self._apply(row)

    async def get_user_recent_resolved(self, user_id, limit):
        if self.fail_history:
            raise StoreUnavailableError("history read failed")
        resolved = [
            p for p in self.predictions.values() if p.user_id == user_id and p.resolved_at is not None
        ]
        resolved.sort(key=lambda p: (p.resolved_at, p.game_pk, p.at_bat_index), reverse=True)
        return resolved[:limit]

    async def get_resolved_event_indices(self, game_pk):
        by_index: dict[int, list[Prediction]] = {}
        for p in self.predictions.values():
            if p.game_pk == game_pk:
                by_index.setdefault(p.at_bat_index, []).append(p)
        return {i for i, ps in by_index.items() if all(p.resolved_at is not None for p in ps)}

    async def submit_prediction(self, user_id, game_pk, at_bat_index, prediction, prediction_category=None):
        for p in self.predictions.values():
            if (p.user_id, p.game_pk, p.at_bat_index) == (user_id, game_pk, at_bat_index):
                raise DuplicatePredictionError(user_id, game_pk, at_bat_index)
        pid = self._id()
        self.predictions[pid] = Prediction(
            id=pid,
            user_id=user_id,
            game_pk=game_pk,
            at_bat_index=at_bat_index,
            prediction=prediction,
            prediction_category=prediction_category,
            created_at=datetime.now(timezone.utc),
        )
        return self.predictions[pid]

    # --- Pitcher predictions ---

    async def get_pending_pitcher_predictions(self, game_pk, pitcher_id):
        return [
            p
            for p in self.pitcher_predictions.values()
            if p.game_pk == game_pk and p.pitcher_id == pitcher_id and p.resolved_at is None
        ]

    def _apply_pitcher(self, row) -> bool:
        current = self.pitcher_predictions[row.prediction_id]
        if current.resolved_at is not None:
            return False
        self.pitcher_predictions[row.prediction_id] = replace(
            current,
            actual_outs=row.actual_outs,
            actual_hits=row.actual_hits,
            actual_earned_runs=row.actual_earned_runs,
            actual_walks=row.actual_walks,
            actual_strikeouts=row.actual_strikeouts,
            points_earned=row.points_earned,
            resolved_at=row.resolved_at,
        )
        return True

    async def batch_resolve_pitcher(self, rows):
        if self.fail_batch:
            raise PersistenceConflictError("batch rejected")
        return {row.prediction_id for row in rows if self._apply_pitcher(row)}

    async def resolve_one_pitcher(self, row):
        if row.prediction_id in self.fail_rows:
            raise StoreUnavailableError(f"row {row.prediction_id} failed")
        return self._apply_pitcher(row)

    async def get_resolved_pitcher_ids(self, game_pk):
        ids: dict[int, bool] = {}
        for p in self.pitcher_predictions.values():
            if p.game_pk == game_pk:
                ids[p.pitcher_id] = ids.get(p.pitcher_id, True) and p.resolved_at is not None
        return {pid for pid, done in ids.items() if done}

    async def submit_pitcher_prediction(
        self,
        user_id,
        game_pk,
        pitcher_id,
        pitcher_name,
        predicted_outs,
        predicted_hits,
        predicted_earned_runs,
        predicted_walks,
        predicted_strikeouts,
    ):
        for p in self.pitcher_predictions.values():
            if (p.user_id, p.game_pk, p.pitcher_id) == (user_id, game_pk, pitcher_id):
                raise DuplicatePredictionError(user_id, game_pk, pitcher_id)
        pid = self._id()
        self.pitcher_predictions[pid] = PitcherPrediction(
            id=pid,
            user_id=user_id,
            game_pk=game_pk,
            pitcher_id=pitcher_id,
            pitcher_name=pitcher_name,
            predicted_outs=predicted_outs,
            predicted_hits=predicted_hits,
            predicted_earned_runs=predicted_earned_runs,
            predicted_walks=predicted_walks,
            predicted_strikeouts=predicted_strikeouts,
        )
        return self.pitcher_predictions[pid]

    # --- Logs ---

    async def record_sync(self, entry):
        if self.fail_logs:
            raise StoreUnavailableError("sync log write failed")
        self.sync_log.append(entry)

    async def record_resolution(self, entry):
        if self.fail_logs:
            raise StoreUnavailableError("resolution log write failed")
        self.resolution_log.append(entry)

    async def get_sync_stats(self, hours=24):
        total = len(self.sync_log)
        successful = sum(1 for e in self.sync_log if e.status == "success")
        return {
            "period_hours": hours,
            "total_syncs": total,
            "successful_syncs": successful,
            "failed_syncs": sum(1 for e in self.sync_log if e.status == "error"),
            "success_rate": round(successful / total * 100, 1) if total else 0.0,
            "average_duration_ms": 0,
            "by_type": {},
            "resolutions": {
                "total": len(self.resolution_log),
                "fallback": sum(1 for e in self.resolution_log if e.path == "fallback"),
                "predictions_resolved": sum(e.predictions_resolved for e in self.resolution_log),
                "predictions_failed": sum(e.predictions_failed for e in self.resolution_log),
                "points_awarded": sum(e.points_awarded for e in self.resolution_log),
            },
        }


class FakeFeed(FeedClient):
    """Feed returning queued snapshots (or raising queued errors) per game.

    ``responses[game_pk]`` is a list consumed front to back; the last item is
    repeated once the list is down to one.
    """

    def __init__(self):
        self.responses: dict[int, list] = {}
        self.schedule: dict[int, list[int]] = {}
        self.calls: list[int] = []
        self.delay = 0.0

    def queue(self, game_pk: int, *items) -> None:
        self.responses.setdefault(game_pk, []).extend(items)

    async def fetch_snapshot(self, game_pk):
        self.calls.append(game_pk)
        if self.delay:
            await asyncio.sleep(self.delay)
        pending = self.responses.get(game_pk)
        if not pending:
            return None
        item = pending.pop(0) if len(pending) > 1 else pending[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def find_game_pks(self, team_id, on: date):
        if team_id not in self.schedule:
            raise TransientUpstreamError("schedule unavailable")
        return list(self.schedule[team_id])


def make_event(index: int, event_type: str | None = None, description: str | None = None, complete: bool = True) -> EventRecord:
    result = EventResult(event_type=event_type, description=description)
    return EventRecord(
        index=index,
        is_complete=complete,
        result=result,
        outcome=classify(result) if complete else None,
    )


def make_snapshot(
    game_pk: int = 745123,
    events=(),
    status: GameStatus = GameStatus.LIVE,
    pitcher_lines=(),
) -> GameSnapshot:
    return GameSnapshot(
        game_pk=game_pk,
        status=status,
        events=tuple(events),
        pitcher_lines=tuple(pitcher_lines),
    )


def make_starter(pitcher_id: int = 543037, has_exited: bool = True, outs: int = 18, **stats) -> PitcherLine:
    return PitcherLine(
        pitcher_id=pitcher_id,
        name="Gerrit Cole",
        is_starter=True,
        has_exited=has_exited,
        outs=outs,
        **stats,
    )


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_feed():
    return FakeFeed()


@pytest.fixture
def snapshot_factory():
    """Expose the snapshot builders as a namespace."""

    class Factory:
        event = staticmethod(make_event)
        snapshot = staticmethod(make_snapshot)
        starter = staticmethod(make_starter)

    return Factory
