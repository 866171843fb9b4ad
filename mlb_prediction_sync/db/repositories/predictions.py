"""Prediction repository: the SQLAlchemy implementation of the engine Store.

Each operation opens its own session from the factory, because the resolver's
fallback path issues row writes concurrently and an AsyncSession must not be
shared between concurrent tasks.

Every resolution write is an UPDATE guarded on ``resolved_at IS NULL``. A
second writer matches zero rows and is reported as already resolved, so
points can never be awarded twice.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mlb_prediction_sync.db.models import (
    AtBatPredictionModel,
    PitcherPredictionModel,
    ResolutionLogModel,
    SyncLogModel,
    model_to_pitcher_prediction,
    model_to_prediction,
)
from mlb_prediction_sync.engine.errors import (
    DuplicatePredictionError,
    InvalidPredictionError,
    PersistenceConflictError,
    StoreUnavailableError,
)
from mlb_prediction_sync.engine.models import (
    PitcherPrediction,
    PitcherResolutionRow,
    Prediction,
    ResolutionLogEntry,
    ResolutionRow,
    SyncLogEntry,
)
from mlb_prediction_sync.engine.outcomes import Category, Outcome
from mlb_prediction_sync.engine.store import Store
from mlb_prediction_sync.monitoring import get_logger


def _resolution_values(row: ResolutionRow) -> dict:
    return {
        "actual_outcome": row.actual_outcome.value,
        "actual_category": row.actual_category.value,
        "is_correct": row.is_correct,
        "is_partial_credit": row.is_partial_credit,
        "points_earned": row.points_earned,
        "streak_count": row.streak_count,
        "streak_bonus": row.streak_bonus,
        "resolved_at": row.resolved_at,
    }


def _pitcher_resolution_values(row: PitcherResolutionRow) -> dict:
    return {
        "actual_outs": row.actual_outs,
        "actual_hits": row.actual_hits,
        "actual_earned_runs": row.actual_earned_runs,
        "actual_walks": row.actual_walks,
        "actual_strikeouts": row.actual_strikeouts,
        "points_earned": row.points_earned,
        "resolved_at": row.resolved_at,
    }


class PredictionRepository(Store):
    """Store implementation backed by SQLAlchemy async sessions.

    Attributes:
        session_factory: Factory producing a fresh AsyncSession per operation
        logger: Structured logger instance

    Example:
        repo = PredictionRepository(make_session_factory(create_engine()))
        pending = await repo.get_pending_predictions(745123, 42)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = get_logger()

    def _db_error(self, operation: str, e: Exception, **fields) -> StoreUnavailableError:
        self.logger.error(
            "predictions_repo_db_error",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
            **fields,
        )
        return StoreUnavailableError(f"{operation} failed: {type(e).__name__}: {e}")

    # --- At-bat predictions ---

    async def get_pending_predictions(self, game_pk: int, at_bat_index: int) -> list[Prediction]:
        stmt = (
            select(AtBatPredictionModel)
            .where(
                AtBatPredictionModel.game_pk == game_pk,
                AtBatPredictionModel.at_bat_index == at_bat_index,
                AtBatPredictionModel.resolved_at.is_(None),
            )
            .order_by(AtBatPredictionModel.id)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [model_to_prediction(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._db_error("get_pending_predictions", e, game_pk=game_pk, at_bat_index=at_bat_index) from e

    async def batch_resolve(self, rows: list[ResolutionRow]) -> set[int]:
        written: set[int] = set()
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    for row in rows:
                        result = await session.execute(
                            update(AtBatPredictionModel)
                            .where(
                                AtBatPredictionModel.id == row.prediction_id,
                                AtBatPredictionModel.resolved_at.is_(None),
                            )
                            .values(**_resolution_values(row))
                            .execution_options(synchronize_session=False)
                        )
                        if result.rowcount:
                            written.add(row.prediction_id)
        except SQLAlchemyError as e:
            self.logger.warning(
                "predictions_repo_batch_rejected",
                rows=len(rows),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceConflictError(f"Batch of {len(rows)} rows rejected: {e}") from e
        return written

    async def resolve_one(self, row: ResolutionRow) -> bool:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(AtBatPredictionModel)
                        .where(
                            AtBatPredictionModel.id == row.prediction_id,
                            AtBatPredictionModel.resolved_at.is_(None),
                        )
                        .values(**_resolution_values(row))
                        .execution_options(synchronize_session=False)
                    )
                    return bool(result.rowcount)
        except SQLAlchemyError as e:
            raise self._db_error("resolve_one", e, prediction_id=row.prediction_id) from e

    async def get_user_recent_resolved(self, user_id: str, limit: int) -> list[Prediction]:
        stmt = (
            select(AtBatPredictionModel)
            .where(
                AtBatPredictionModel.user_id == user_id,
                AtBatPredictionModel.resolved_at.is_not(None),
            )
            .order_by(
                AtBatPredictionModel.resolved_at.desc(),
                AtBatPredictionModel.game_pk.desc(),
                AtBatPredictionModel.at_bat_index.desc(),
            )
            .limit(limit)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [model_to_prediction(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._db_error("get_user_recent_resolved", e, user_id=user_id) from e

    async def get_resolved_event_indices(self, game_pk: int) -> set[int]:
        # count(resolved_at) skips nulls, so equality means nothing is pending
        stmt = (
            select(AtBatPredictionModel.at_bat_index)
            .where(AtBatPredictionModel.game_pk == game_pk)
            .group_by(AtBatPredictionModel.at_bat_index)
            .having(func.count(AtBatPredictionModel.resolved_at) == func.count(AtBatPredictionModel.id))
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return set(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._db_error("get_resolved_event_indices", e, game_pk=game_pk) from e

    async def submit_prediction(
        self,
        user_id: str,
        game_pk: int,
        at_bat_index: int,
        prediction: Outcome,
        prediction_category: Category | None = None,
    ) -> Prediction:
        if at_bat_index < 0:
            raise InvalidPredictionError(f"at_bat_index must be >= 0, got {at_bat_index}")
        if prediction is Outcome.UNKNOWN:
            raise InvalidPredictionError("Cannot predict an unknown outcome")

        model = AtBatPredictionModel(
            user_id=user_id,
            game_pk=game_pk,
            at_bat_index=at_bat_index,
            prediction=prediction.value,
            prediction_category=prediction_category.value if prediction_category else None,
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(model)
                return model_to_prediction(model)
        except IntegrityError as e:
            self.logger.info(
                "prediction_duplicate_rejected",
                user_id=user_id,
                game_pk=game_pk,
                at_bat_index=at_bat_index,
            )
            raise DuplicatePredictionError(user_id, game_pk, at_bat_index) from e
        except SQLAlchemyError as e:
            raise self._db_error("submit_prediction", e, game_pk=game_pk) from e

    # --- Pitcher predictions ---

    async def get_pending_pitcher_predictions(
        self, game_pk: int, pitcher_id: int
    ) -> list[PitcherPrediction]:
        stmt = (
            select(PitcherPredictionModel)
            .where(
                PitcherPredictionModel.game_pk == game_pk,
                PitcherPredictionModel.pitcher_id == pitcher_id,
                PitcherPredictionModel.resolved_at.is_(None),
            )
            .order_by(PitcherPredictionModel.id)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [model_to_pitcher_prediction(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._db_error(
                "get_pending_pitcher_predictions", e, game_pk=game_pk, pitcher_id=pitcher_id
            ) from e

    async def batch_resolve_pitcher(self, rows: list[PitcherResolutionRow]) -> set[int]:
        written: set[int] = set()
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    for row in rows:
                        result = await session.execute(
                            update(PitcherPredictionModel)
                            .where(
                                PitcherPredictionModel.id == row.prediction_id,
                                PitcherPredictionModel.resolved_at.is_(None),
                            )
                            .values(**_pitcher_resolution_values(row))
                            .execution_options(synchronize_session=False)
                        )
                        if result.rowcount:
                            written.add(row.prediction_id)
        except SQLAlchemyError as e:
            raise PersistenceConflictError(f"Pitcher batch of {len(rows)} rows rejected: {e}") from e
        return written

    async def resolve_one_pitcher(self, row: PitcherResolutionRow) -> bool:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(PitcherPredictionModel)
                        .where(
                            PitcherPredictionModel.id == row.prediction_id,
                            PitcherPredictionModel.resolved_at.is_(None),
                        )
                        .values(**_pitcher_resolution_values(row))
                        .execution_options(synchronize_session=False)
                    )
                    return bool(result.rowcount)
        except SQLAlchemyError as e:
            raise self._db_error("resolve_one_pitcher", e, prediction_id=row.prediction_id) from e

    async def get_resolved_pitcher_ids(self, game_pk: int) -> set[int]:
        stmt = (
            select(PitcherPredictionModel.pitcher_id)
            .where(PitcherPredictionModel.game_pk == game_pk)
            .group_by(PitcherPredictionModel.pitcher_id)
            .having(func.count(PitcherPredictionModel.resolved_at) == func.count(PitcherPredictionModel.id))
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return set(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._db_error("get_resolved_pitcher_ids", e, game_pk=game_pk) from e

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
        stats = {
            "predicted_outs": predicted_outs,
            "predicted_hits": predicted_hits,
            "predicted_earned_runs": predicted_earned_runs,
            "predicted_walks": predicted_walks,
            "predicted_strikeouts": predicted_strikeouts,
        }
        negative = [name for name, value in stats.items() if value < 0]
        if negative:
            raise InvalidPredictionError(f"Negative values for {', '.join(negative)}")

        model = PitcherPredictionModel(
            user_id=user_id,
            game_pk=game_pk,
            pitcher_id=pitcher_id,
            pitcher_name=pitcher_name,
            **stats,
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(model)
                return model_to_pitcher_prediction(model)
        except IntegrityError as e:
            raise DuplicatePredictionError(user_id, game_pk, pitcher_id) from e
        except SQLAlchemyError as e:
            raise self._db_error("submit_pitcher_prediction", e, game_pk=game_pk) from e

    # --- Logs and stats ---

    async def record_sync(self, entry: SyncLogEntry) -> None:
        model = SyncLogModel(
            game_pk=entry.game_pk,
            sync_type=entry.sync_type,
            status=entry.status,
            error_message=entry.error_message,
            events_resolved=entry.events_resolved,
            predictions_resolved=entry.predictions_resolved,
            points_awarded=entry.points_awarded,
            duration_ms=entry.duration_ms,
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(model)
        except SQLAlchemyError as e:
            raise self._db_error("record_sync", e, game_pk=entry.game_pk) from e

    async def record_resolution(self, entry: ResolutionLogEntry) -> None:
        model = ResolutionLogModel(
            game_pk=entry.game_pk,
            resolution_type=entry.resolution_type,
            at_bat_index=entry.key if entry.resolution_type == "at_bat" else None,
            pitcher_id=entry.key if entry.resolution_type == "pitcher" else None,
            outcome=entry.outcome,
            path=entry.path,
            predictions_resolved=entry.predictions_resolved,
            predictions_failed=entry.predictions_failed,
            points_awarded=entry.points_awarded,
            duration_ms=entry.duration_ms,
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(model)
        except SQLAlchemyError as e:
            raise self._db_error("record_resolution", e, game_pk=entry.game_pk) from e

    async def get_sync_stats(self, hours: int = 24) -> dict:
        """Aggregate sync and resolution logs over the last ``hours``.

        Returns:
            Dict with total_syncs, successful_syncs, failed_syncs,
            success_rate (percent), average_duration_ms, by_type breakdown
            and resolution totals
        """
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        try:
            async with self.session_factory() as session:
                syncs = (
                    await session.execute(select(SyncLogModel).where(SyncLogModel.created_at >= since))
                ).scalars().all()
                resolutions = (
                    await session.execute(
                        select(ResolutionLogModel).where(ResolutionLogModel.created_at >= since)
                    )
                ).scalars().all()
        except SQLAlchemyError as e:
            raise self._db_error("get_sync_stats", e, hours=hours) from e

        total = len(syncs)
        successful = sum(1 for s in syncs if s.status == "success")
        failed = sum(1 for s in syncs if s.status == "error")

        by_type: dict[str, dict[str, int]] = {}
        for s in syncs:
            bucket = by_type.setdefault(s.sync_type, {"total": 0, "success": 0, "partial": 0, "error": 0})
            bucket["total"] += 1
            if s.status in bucket:
                bucket[s.status] += 1

        return {
            "period_hours": hours,
            "total_syncs": total,
            "successful_syncs": successful,
            "failed_syncs": failed,
            "success_rate": round(successful / total * 100, 1) if total else 0.0,
            "average_duration_ms": round(sum(s.duration_ms for s in syncs) / total) if total else 0,
            "by_type": by_type,
            "resolutions": {
                "total": len(resolutions),
                "fallback": sum(1 for r in resolutions if r.path == "fallback"),
                "predictions_resolved": sum(r.predictions_resolved for r in resolutions),
                "predictions_failed": sum(r.predictions_failed for r in resolutions),
                "points_awarded": sum(r.points_awarded for r in resolutions),
            },
        }

    async def check_health(self) -> bool:
        """Check if database connection is healthy.

        Returns:
            True if a trivial query succeeds, False otherwise
        """
        try:
            async with self.session_factory() as session:
                await session.execute(select(1))
            return True
        except Exception as e:
            self.logger.warning(
                "predictions_repo_health_check_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
