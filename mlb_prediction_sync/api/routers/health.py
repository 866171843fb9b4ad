"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from mlb_prediction_sync import __version__
from mlb_prediction_sync.api.deps import ContextDep
from mlb_prediction_sync.api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(context: ContextDep):
    """Check API, database and scheduler state."""
    db_ok = await context.store.check_health()

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=db_ok,
        scheduler="polling" if context.scheduler.is_polling else "idle",
    )
