"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from mlb_prediction_sync import __version__
from mlb_prediction_sync.api.config import get_settings
from mlb_prediction_sync.api.middleware import RequestLoggingMiddleware
from mlb_prediction_sync.api.routers import game, health, system
from mlb_prediction_sync.context import SyncContext, build_context
from mlb_prediction_sync.monitoring import configure_logging, get_logger

log = get_logger()


def create_app(context: SyncContext | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        context: Pre-built context (tests). When omitted the lifespan builds
            one from settings, creates the schema for SQLite and owns shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown hooks."""
        owned = context is None
        if owned:
            settings = get_settings()
            configure_logging(settings.environment, settings.log_level)
            ctx = build_context(settings)
            if ctx.engine is not None and ctx.engine.dialect.name == "sqlite":
                from mlb_prediction_sync.db import init_database

                await init_database(ctx.engine)
        else:
            ctx = context

        app.state.context = ctx
        if owned and ctx.settings.scheduler_enabled:
            ctx.scheduler.start()
        log.info("api_started", version=__version__, scheduler=ctx.scheduler.is_polling)
        try:
            yield
        finally:
            if owned:
                await ctx.shutdown()
            else:
                await ctx.scheduler.shutdown()
            log.info("api_stopped")

    app = FastAPI(
        title="MLB Prediction Sync",
        description="Resolves live at-bat and pitcher predictions against the MLB game feed",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    for router in (health.router, game.router, system.router):
        app.include_router(router, prefix="/api")

    return app
