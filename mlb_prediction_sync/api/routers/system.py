"""Scheduler control and observability endpoints."""

from fastapi import APIRouter, Query

from mlb_prediction_sync.api.deps import ContextDep
from mlb_prediction_sync.api.schemas import (
    SchedulerActionResponse,
    SyncTriggerResponse,
    SystemStatsResponse,
)
from mlb_prediction_sync.monitoring import get_logger

router = APIRouter(tags=["system"])
log = get_logger()


@router.get("/system/stats", response_model=SystemStatsResponse)
async def get_stats(context: ContextDep, hours: int = Query(default=24, ge=1, le=720)):
    """Scheduler, cache and sync-log statistics.

    The sync-log section is omitted when the store cannot be read.
    """
    try:
        sync_log = await context.store.get_sync_stats(hours)
    except Exception as e:
        log.warning("sync_stats_unavailable", error=str(e), error_type=type(e).__name__)
        sync_log = None

    return SystemStatsResponse(
        scheduler=context.scheduler.stats(),
        cache=context.cache.stats(),
        sync_log=sync_log,
    )


@router.post("/system/sync", response_model=SyncTriggerResponse)
async def trigger_sync(context: ContextDep):
    """Run one tick now. ``ran`` is false if a tick was already in progress."""
    report = await context.scheduler.trigger_once()
    if report is None:
        return SyncTriggerResponse(ran=False)
    return SyncTriggerResponse(
        ran=True,
        tick_id=report.tick_id,
        games_polled=report.games_polled,
        fetch_failures=report.fetch_failures,
        events_resolved=report.events_resolved,
        predictions_resolved=report.predictions_resolved,
        points_awarded=report.points_awarded,
        duration_ms=report.duration_ms,
        errors=report.errors,
    )


def _scheduler_state(context, changed: bool) -> SchedulerActionResponse:
    scheduler = context.scheduler
    return SchedulerActionResponse(
        changed=changed,
        state="polling" if scheduler.is_polling else "idle",
        interval_seconds=scheduler.interval,
    )


@router.post("/system/scheduler/start", response_model=SchedulerActionResponse)
async def start_scheduler(context: ContextDep):
    return _scheduler_state(context, context.scheduler.start())


@router.post("/system/scheduler/stop", response_model=SchedulerActionResponse)
async def stop_scheduler(context: ContextDep):
    return _scheduler_state(context, context.scheduler.stop())
