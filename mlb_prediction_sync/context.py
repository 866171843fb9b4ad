"""Wiring of the sync engine's collaborators.

Both the API process and the CLI build one SyncContext from settings. Tests
pass their own feed and store to get the same wiring over fakes.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from mlb_prediction_sync.api.config import Settings
from mlb_prediction_sync.db.repositories import PredictionRepository
from mlb_prediction_sync.db.session import create_engine, make_session_factory
from mlb_prediction_sync.engine.cache import DiskTTLCache, GameStateCache
from mlb_prediction_sync.engine.resolver import PitcherPredictionResolver, PredictionResolver
from mlb_prediction_sync.engine.scheduler import SyncScheduler
from mlb_prediction_sync.engine.store import Store
from mlb_prediction_sync.engine.tracker import ResolvedEventTracker
from mlb_prediction_sync.feed.client import FeedClient, MLBFeedClient
from mlb_prediction_sync.monitoring import get_logger

logger = get_logger()


@dataclass
class SyncContext:
    """Everything a running sync process holds on to."""

    settings: Settings
    feed: FeedClient
    store: Store
    cache: GameStateCache
    tracker: ResolvedEventTracker
    pitcher_tracker: ResolvedEventTracker
    resolver: PredictionResolver
    pitcher_resolver: PitcherPredictionResolver
    scheduler: SyncScheduler
    engine: AsyncEngine | None = None

    async def shutdown(self) -> None:
        """Drain the scheduler, then release the cache and the connection pool."""
        await self.scheduler.shutdown()
        self.cache.close()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("sync_context_closed")


def build_context(
    settings: Settings,
    feed: FeedClient | None = None,
    store: Store | None = None,
) -> SyncContext:
    """Build a SyncContext from settings.

    Args:
        settings: Validated settings
        feed: Feed client override (default: MLBFeedClient on feed_base_url)
        store: Store override (default: PredictionRepository on database_url)

    Returns:
        Wired SyncContext; the scheduler is idle until started
    """
    engine = None
    if store is None:
        engine = create_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            environment=settings.environment,
        )
        store = PredictionRepository(make_session_factory(engine))

    if feed is None:
        feed = MLBFeedClient(base_url=settings.feed_base_url, timeout=settings.fetch_timeout_seconds)

    backend = None
    if settings.snapshot_cache_dir:
        backend = DiskTTLCache(settings.snapshot_cache_dir, default_ttl=settings.static_cache_ttl_seconds)
    cache = GameStateCache(
        live_ttl=settings.live_cache_ttl_seconds,
        static_ttl=settings.static_cache_ttl_seconds,
        backend=backend,
    )

    tracker = ResolvedEventTracker("at_bat")
    pitcher_tracker = ResolvedEventTracker("pitcher")
    resolver = PredictionResolver(store, tracker, history_limit=settings.streak_history_limit)
    pitcher_resolver = PitcherPredictionResolver(store, pitcher_tracker)

    scheduler = SyncScheduler(
        feed,
        store,
        cache,
        resolver,
        pitcher_resolver,
        tracked_game_pks=settings.tracked_game_pks,
        team_id=settings.team_id,
        poll_interval=settings.poll_interval_seconds,
        idle_poll_interval=settings.idle_poll_interval_seconds,
        final_ticks_before_backoff=settings.final_ticks_before_backoff,
        stop_when_idle=settings.stop_when_idle,
        fetch_timeout=settings.fetch_timeout_seconds,
    )

    return SyncContext(
        settings=settings,
        feed=feed,
        store=store,
        cache=cache,
        tracker=tracker,
        pitcher_tracker=pitcher_tracker,
        resolver=resolver,
        pitcher_resolver=pitcher_resolver,
        scheduler=scheduler,
        engine=engine,
    )
