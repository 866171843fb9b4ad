"""Tests for PredictionRepository against a file-backed SQLite database.

Tests verify:
- Guarded resolution writes (a resolved row is never overwritten)
- Duplicate and invalid submissions are rejected
- Resolved-key queries only report fully resolved events
- Sync statistics aggregate both logs
- Database failures surface as store errors
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from mlb_prediction_sync.db import PredictionRepository, create_engine, init_database, make_session_factory
from mlb_prediction_sync.engine.errors import (
    DuplicatePredictionError,
    InvalidPredictionError,
    PersistenceConflictError,
    StoreUnavailableError,
)
from mlb_prediction_sync.engine.models import (
    PitcherResolutionRow,
    ResolutionLogEntry,
    ResolutionRow,
    SyncLogEntry,
)
from mlb_prediction_sync.engine.outcomes import Category, Outcome
from mlb_prediction_sync.engine.resolver import PredictionResolver
from mlb_prediction_sync.engine.tracker import ResolvedEventTracker

GAME = 745123
NOW = datetime(2026, 7, 4, 20, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """File-backed SQLite engine so concurrent sessions share one database."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'predictions.db'}")
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repo(test_engine):
    return PredictionRepository(make_session_factory(test_engine))


@pytest_asyncio.fixture
async def broken_repo(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    yield PredictionRepository(make_session_factory(engine))
    await engine.dispose()


def _row(prediction_id, points=3, resolved_at=NOW, user_id="alice") -> ResolutionRow:
    return ResolutionRow(
        prediction_id=prediction_id,
        user_id=user_id,
        actual_outcome=Outcome.SINGLE,
        actual_category=Category.HIT,
        is_correct=points > 0,
        is_partial_credit=False,
        points_earned=points,
        streak_count=1 if points else 0,
        streak_bonus=0,
        resolved_at=resolved_at,
    )


class TestSubmission:
    @pytest.mark.asyncio
    async def test_submit_and_read_pending(self, repo):
        created = await repo.submit_prediction("alice", GAME, 3, Outcome.DOUBLE, Category.HIT)

        pending = await repo.get_pending_predictions(GAME, 3)

        assert [p.id for p in pending] == [created.id]
        assert pending[0].prediction == Outcome.DOUBLE
        assert pending[0].prediction_category == Category.HIT
        assert pending[0].is_pending

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, repo):
        await repo.submit_prediction("alice", GAME, 3, Outcome.DOUBLE)

        with pytest.raises(DuplicatePredictionError):
            await repo.submit_prediction("alice", GAME, 3, Outcome.SINGLE)

        # Another user may predict the same at-bat
        await repo.submit_prediction("bob", GAME, 3, Outcome.SINGLE)
        assert len(await repo.get_pending_predictions(GAME, 3)) == 2

    @pytest.mark.asyncio
    async def test_invalid_rejected(self, repo):
        with pytest.raises(InvalidPredictionError):
            await repo.submit_prediction("alice", GAME, -1, Outcome.SINGLE)
        with pytest.raises(InvalidPredictionError):
            await repo.submit_prediction("alice", GAME, 0, Outcome.UNKNOWN)
        with pytest.raises(InvalidPredictionError):
            await repo.submit_pitcher_prediction("alice", GAME, 543037, "Gerrit Cole", 18, -1, 0, 0, 0)

    @pytest.mark.asyncio
    async def test_pitcher_duplicate_rejected(self, repo):
        await repo.submit_pitcher_prediction("alice", GAME, 543037, "Gerrit Cole", 18, 5, 2, 1, 7)

        with pytest.raises(DuplicatePredictionError):
            await repo.submit_pitcher_prediction("alice", GAME, 543037, "Gerrit Cole", 15, 5, 2, 1, 7)


class TestResolutionWrites:
    @pytest.mark.asyncio
    async def test_batch_resolve_writes_pending_rows(self, repo):
        first = await repo.submit_prediction("alice", GAME, 0, Outcome.SINGLE)
        second = await repo.submit_prediction("bob", GAME, 0, Outcome.WALK)

        written = await repo.batch_resolve([_row(first.id), _row(second.id, points=0, user_id="bob")])

        assert written == {first.id, second.id}
        assert await repo.get_pending_predictions(GAME, 0) == []

    @pytest.mark.asyncio
    async def test_resolved_row_is_never_overwritten(self, repo):
        created = await repo.submit_prediction("alice", GAME, 0, Outcome.SINGLE)
        assert await repo.resolve_one(_row(created.id, points=3))

        assert await repo.resolve_one(_row(created.id, points=99)) is False
        assert await repo.batch_resolve([_row(created.id, points=99)]) == set()

        [history] = await repo.get_user_recent_resolved("alice", 10)
        assert history.points_earned == 3

    @pytest.mark.asyncio
    async def test_pitcher_writes_are_guarded(self, repo):
        created = await repo.submit_pitcher_prediction("alice", GAME, 543037, "Gerrit Cole", 18, 5, 2, 1, 7)
        row = PitcherResolutionRow(
            prediction_id=created.id,
            user_id="alice",
            actual_outs=18,
            actual_hits=5,
            actual_earned_runs=2,
            actual_walks=1,
            actual_strikeouts=7,
            points_earned=20,
            resolved_at=NOW,
        )

        assert await repo.batch_resolve_pitcher([row]) == {created.id}
        assert await repo.resolve_one_pitcher(row) is False
        assert await repo.get_pending_pitcher_predictions(GAME, 543037) == []
        assert await repo.get_resolved_pitcher_ids(GAME) == {543037}

    @pytest.mark.asyncio
    async def test_broken_database_raises_store_errors(self, broken_repo):
        with pytest.raises(StoreUnavailableError):
            await broken_repo.get_pending_predictions(GAME, 0)
        with pytest.raises(PersistenceConflictError):
            await broken_repo.batch_resolve([_row(1)])
        with pytest.raises(StoreUnavailableError):
            await broken_repo.resolve_one(_row(1))
        assert await broken_repo.check_health() is False


class TestQueries:
    @pytest.mark.asyncio
    async def test_recent_resolved_newest_first(self, repo):
        ids = [(await repo.submit_prediction("alice", GAME, i, Outcome.SINGLE)).id for i in range(4)]
        for offset, pid in enumerate(ids[:3]):
            await repo.resolve_one(_row(pid, resolved_at=NOW + timedelta(minutes=offset)))

        history = await repo.get_user_recent_resolved("alice", 2)

        assert [p.at_bat_index for p in history] == [2, 1]

    @pytest.mark.asyncio
    async def test_resolved_indices_require_every_row(self, repo):
        a = await repo.submit_prediction("alice", GAME, 0, Outcome.SINGLE)
        b = await repo.submit_prediction("bob", GAME, 0, Outcome.SINGLE)
        c = await repo.submit_prediction("alice", GAME, 1, Outcome.SINGLE)
        await repo.submit_prediction("alice", GAME + 1, 0, Outcome.SINGLE)
        await repo.resolve_one(_row(a.id))
        await repo.resolve_one(_row(c.id))

        assert await repo.get_resolved_event_indices(GAME) == {1}

        await repo.resolve_one(_row(b.id, user_id="bob"))
        assert await repo.get_resolved_event_indices(GAME) == {0, 1}

    @pytest.mark.asyncio
    async def test_check_health(self, repo):
        assert await repo.check_health() is True


class TestLogs:
    @pytest.mark.asyncio
    async def test_sync_stats(self, repo):
        await repo.record_sync(SyncLogEntry(GAME, "game_state", "success", duration_ms=100))
        await repo.record_sync(SyncLogEntry(GAME, "game_state", "partial", duration_ms=300))
        await repo.record_sync(SyncLogEntry(GAME, "game_state", "error", error_message="timeout"))
        await repo.record_sync(SyncLogEntry(GAME, "game_state", "success", duration_ms=200))
        await repo.record_resolution(
            ResolutionLogEntry(GAME, "at_bat", 4, "single", "transaction", 2, 0, 6, 12)
        )
        await repo.record_resolution(
            ResolutionLogEntry(GAME, "pitcher", 543037, "6.0 IP", "fallback", 1, 1, 20, 30)
        )

        stats = await repo.get_sync_stats(hours=24)

        assert stats["total_syncs"] == 4
        assert stats["successful_syncs"] == 2
        assert stats["failed_syncs"] == 1
        assert stats["success_rate"] == 50.0
        assert stats["average_duration_ms"] == 150
        assert stats["by_type"]["game_state"] == {"total": 4, "success": 2, "partial": 1, "error": 1}
        assert stats["resolutions"] == {
            "total": 2,
            "fallback": 1,
            "predictions_resolved": 3,
            "predictions_failed": 1,
            "points_awarded": 26,
        }

    @pytest.mark.asyncio
    async def test_empty_stats(self, repo):
        stats = await repo.get_sync_stats(hours=1)
        assert stats["total_syncs"] == 0
        assert stats["success_rate"] == 0.0


@pytest.mark.asyncio
async def test_resolver_against_database(repo):
    """End to end: a resolved event awards points exactly once."""
    tracker = ResolvedEventTracker()
    resolver = PredictionResolver(repo, tracker)
    alice = await repo.submit_prediction("alice", GAME, 5, Outcome.HOME_RUN)
    await repo.submit_prediction("bob", GAME, 5, Outcome.STRIKEOUT)

    first = await resolver.resolve(GAME, 5, Outcome.HOME_RUN)
    tracker.forget(GAME)
    second = await resolver.resolve(GAME, 5, Outcome.HOME_RUN)

    assert first.path == "transaction"
    assert first.points_awarded == 6
    assert second.attempted == 0
    [row] = await repo.get_user_recent_resolved("alice", 5)
    assert row.id == alice.id
    assert row.points_earned == 6
    assert row.actual_outcome == Outcome.HOME_RUN
