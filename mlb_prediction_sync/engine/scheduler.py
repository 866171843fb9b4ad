"""Timer-driven polling loop that keeps predictions in step with the live feed.

The scheduler has two states, idle (no timer) and polling (timer task
running). Each tick fetches every tracked game, refreshes the snapshot cache,
finds newly completed at-bats, and resolves them in ascending index order so
streak history is causally ordered. Games are fetched concurrently but resolved
one after another, since streaks span games. Ticks never overlap: a firing that
finds the previous tick still running is skipped, not queued.

Nothing escapes a tick. Fetch failures, store outages and resolver errors are
logged and the affected work is retried by the next tick's re-poll.
"""

import asyncio
import time
import uuid
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Callable

from mlb_prediction_sync.engine.cache import GameStateCache
from mlb_prediction_sync.engine.errors import TransientUpstreamError
from mlb_prediction_sync.engine.models import SyncLogEntry, TickReport
from mlb_prediction_sync.engine.outcomes import classify
from mlb_prediction_sync.engine.resolver import PitcherPredictionResolver, PredictionResolver
from mlb_prediction_sync.engine.store import Store
from mlb_prediction_sync.feed.client import FeedClient
from mlb_prediction_sync.feed.models import EventRecord, GameSnapshot
from mlb_prediction_sync.monitoring import (
    SchedulerMetrics,
    bind_correlation_id,
    get_logger,
    unbind_correlation_id,
)


class SyncScheduler:
    """Polls the feed and drives resolution.

    Attributes:
        poll_interval: Seconds between ticks while any game is live
        idle_poll_interval: Seconds between ticks once every game is finished
        final_ticks_before_backoff: Consecutive finished ticks before backing off
        stop_when_idle: Stop the timer instead of backing off
        fetch_timeout: Bound on a single upstream fetch
        interval: Current interval (poll_interval or idle_poll_interval)
        metrics: SchedulerMetrics counters

    Example:
        scheduler = SyncScheduler(feed, store, cache, resolver, tracked_game_pks=[745123])
        scheduler.start()
        ...
        await scheduler.shutdown()
    """

    def __init__(
        self,
        feed: FeedClient,
        store: Store,
        cache: GameStateCache,
        resolver: PredictionResolver,
        pitcher_resolver: PitcherPredictionResolver | None = None,
        *,
        tracked_game_pks: list[int] | None = None,
        team_id: int | None = None,
        poll_interval: float = 10,
        idle_poll_interval: float = 300,
        final_ticks_before_backoff: int = 3,
        stop_when_idle: bool = False,
        fetch_timeout: float = 8,
        today: Callable[[], date] = date.today,
    ):
        self.feed = feed
        self.store = store
        self.cache = cache
        self.resolver = resolver
        self.pitcher_resolver = pitcher_resolver
        self.tracked_game_pks = list(tracked_game_pks or [])
        self.team_id = team_id
        self.poll_interval = poll_interval
        self.idle_poll_interval = idle_poll_interval
        self.final_ticks_before_backoff = final_ticks_before_backoff
        self.stop_when_idle = stop_when_idle
        self.fetch_timeout = fetch_timeout
        self._today = today

        self.interval = poll_interval
        self.metrics = SchedulerMetrics()
        self.last_report: TickReport | None = None
        self.logger = get_logger()

        self._timer: asyncio.Task | None = None
        self._tick_task: asyncio.Task | None = None
        self._busy = False
        self._previous: dict[int, GameSnapshot] = {}
        self._finished_ticks: dict[int, int] = defaultdict(int)
        self._discovered: tuple[date, list[int]] | None = None

    # --- Lifecycle ---

    @property
    def is_polling(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def is_busy(self) -> bool:
        return self._busy

    def start(self) -> bool:
        """Start polling. Must be called from a running event loop.

        Returns:
            True if the timer was started, False if already polling
        """
        if self.is_polling:
            self.logger.info("scheduler_already_running")
            return False
        self.interval = self.poll_interval
        self._finished_ticks.clear()
        self._timer = asyncio.get_running_loop().create_task(self._timer_loop())
        self.logger.info(
            "scheduler_started",
            interval_seconds=self.interval,
            tracked_games=self.tracked_game_pks,
            team_id=self.team_id,
        )
        return True

    def stop(self) -> bool:
        """Stop the timer. An in-flight tick keeps running to completion.

        Returns:
            True if a running timer was stopped
        """
        if not self.is_polling:
            return False
        self._timer.cancel()
        self._timer = None
        self.logger.info("scheduler_stopped", tick_in_flight=self._busy)
        return True

    async def shutdown(self) -> None:
        """Stop the timer and wait for any in-flight tick to drain."""
        self.stop()
        if self._tick_task is not None and not self._tick_task.done():
            await self._tick_task

    async def trigger_once(self) -> TickReport | None:
        """Run one tick now.

        Returns:
            The tick report, or None if a tick was already running
        """
        if not self._claim():
            return None
        return await self._execute_tick()

    def track(self, game_pk: int) -> None:
        """Add a game to the tracked set."""
        if game_pk not in self.tracked_game_pks:
            self.tracked_game_pks.append(game_pk)
            self._finished_ticks.pop(game_pk, None)

    def untrack(self, game_pk: int) -> None:
        if game_pk in self.tracked_game_pks:
            self.tracked_game_pks.remove(game_pk)
        self._previous.pop(game_pk, None)
        self._finished_ticks.pop(game_pk, None)

    # --- Timer ---

    def _claim(self) -> bool:
        if self._busy:
            self.metrics.ticks_skipped += 1
            self.logger.debug("sync_tick_skipped", reason="previous_tick_running")
            return False
        self._busy = True
        return True

    async def _timer_loop(self) -> None:
        while True:
            if self._claim():
                self._tick_task = asyncio.create_task(self._execute_tick())
            await asyncio.sleep(self.interval)

    # --- Tick ---

    async def _execute_tick(self) -> TickReport:
        tick_id = uuid.uuid4().hex[:12]
        bind_correlation_id(tick_id)
        started = time.perf_counter()
        report = TickReport(tick_id=tick_id, started_at=datetime.now(timezone.utc))
        self.metrics.ticks_started += 1
        self.metrics.last_tick_started_at = report.started_at

        try:
            game_pks = await self._game_pks(report)
            report.games_polled = len(game_pks)
            # Fetches fan out; resolution runs one game at a time so a user's
            # streak history is never read by two games in the same tick
            snapshots = await asyncio.gather(
                *(self._fetch(game_pk, report) for game_pk in game_pks),
                return_exceptions=True,
            )
            for game_pk, snapshot in zip(game_pks, snapshots):
                try:
                    if isinstance(snapshot, BaseException):
                        raise snapshot
                    if snapshot is not None:
                        await self._sync_game(snapshot, report)
                except Exception as e:
                    report.errors.append(f"game {game_pk}: {type(e).__name__}: {e}")
                    self.logger.error(
                        "game_sync_failed",
                        game_pk=game_pk,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
            self._adjust_interval(game_pks)
        except Exception as e:
            report.errors.append(f"{type(e).__name__}: {e}")
            self.logger.error(
                "sync_tick_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        finally:
            report.duration_ms = int((time.perf_counter() - started) * 1000)
            self.metrics.ticks_completed += 1
            self.metrics.last_tick_duration_ms = report.duration_ms
            self.last_report = report
            self._busy = False
            self.logger.info(
                "sync_tick_completed",
                games_polled=report.games_polled,
                fetch_failures=report.fetch_failures,
                events_resolved=report.events_resolved,
                predictions_resolved=report.predictions_resolved,
                points_awarded=report.points_awarded,
                duration_ms=report.duration_ms,
            )
            unbind_correlation_id()
        return report

    async def _game_pks(self, report: TickReport) -> list[int]:
        """Explicitly tracked games, else today's games for the configured team."""
        if self.tracked_game_pks:
            return list(self.tracked_game_pks)
        if self.team_id is None:
            return []

        today = self._today()
        if self._discovered is not None and self._discovered[0] == today:
            return list(self._discovered[1])

        try:
            game_pks = await asyncio.wait_for(
                self.feed.find_game_pks(self.team_id, today), timeout=self.fetch_timeout
            )
        except (TransientUpstreamError, asyncio.TimeoutError) as e:
            report.fetch_failures += 1
            self.metrics.fetch_failures += 1
            self.logger.warning(
                "schedule_lookup_failed",
                team_id=self.team_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        self._discovered = (today, game_pks)
        self.logger.info("games_discovered", team_id=self.team_id, date=today.isoformat(), game_pks=game_pks)
        return list(game_pks)

    async def _fetch(self, game_pk: int, report: TickReport) -> GameSnapshot | None:
        try:
            return await asyncio.wait_for(self.feed.fetch_snapshot(game_pk), timeout=self.fetch_timeout)
        except (TransientUpstreamError, asyncio.TimeoutError) as e:
            report.fetch_failures += 1
            self.metrics.fetch_failures += 1
            self.logger.warning(
                "feed_fetch_failed",
                game_pk=game_pk,
                error=str(e) or "timeout",
                error_type=type(e).__name__,
            )
            await self._record_sync(
                SyncLogEntry(
                    game_pk=game_pk,
                    sync_type="game_state",
                    status="error",
                    error_message=f"{type(e).__name__}: {e}",
                )
            )
            return None

    async def _sync_game(self, snapshot: GameSnapshot, report: TickReport) -> None:
        started = time.perf_counter()
        game_pk = snapshot.game_pk
        self.cache.put(game_pk, snapshot)
        previous = self._previous.get(game_pk)
        self._previous[game_pk] = snapshot

        await self._seed_trackers(game_pk)

        errors: list[str] = []
        events_resolved = predictions_resolved = points = 0

        for event in self.find_candidates(snapshot, previous):
            outcome = classify(event.result)
            try:
                result = await self.resolver.resolve(game_pk, event.index, outcome)
            except Exception as e:
                errors.append(f"at_bat {event.index}: {type(e).__name__}: {e}")
                self.logger.error(
                    "event_resolution_failed",
                    game_pk=game_pk,
                    at_bat_index=event.index,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            if result.failed:
                errors.append(f"at_bat {event.index}: {result.failed} rows left pending")
            if result.attempted and result.complete:
                events_resolved += 1
            predictions_resolved += result.succeeded
            points += result.points_awarded

        if self.pitcher_resolver is not None:
            pitcher_tracker = self.pitcher_resolver.tracker
            for line in snapshot.starters():
                if not line.has_exited or pitcher_tracker.is_resolved(game_pk, line.pitcher_id):
                    continue
                try:
                    result = await self.pitcher_resolver.resolve(game_pk, line)
                except Exception as e:
                    errors.append(f"pitcher {line.pitcher_id}: {type(e).__name__}: {e}")
                    self.logger.error(
                        "pitcher_resolution_failed",
                        game_pk=game_pk,
                        pitcher_id=line.pitcher_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue
                if result.failed:
                    errors.append(f"pitcher {line.pitcher_id}: {result.failed} rows left pending")
                predictions_resolved += result.succeeded
                points += result.points_awarded

        if snapshot.is_finished:
            self._finished_ticks[game_pk] += 1
        else:
            self._finished_ticks[game_pk] = 0

        report.events_resolved += events_resolved
        report.predictions_resolved += predictions_resolved
        report.points_awarded += points
        report.errors.extend(errors)
        self.metrics.events_resolved += events_resolved
        self.metrics.predictions_resolved += predictions_resolved
        self.metrics.points_awarded += points

        await self._record_sync(
            SyncLogEntry(
                game_pk=game_pk,
                sync_type="game_state",
                status="partial" if errors else "success",
                events_resolved=events_resolved,
                predictions_resolved=predictions_resolved,
                points_awarded=points,
                duration_ms=int((time.perf_counter() - started) * 1000),
                error_message="; ".join(errors) or None,
            )
        )

    def find_candidates(
        self, snapshot: GameSnapshot, previous: GameSnapshot | None
    ) -> list[EventRecord]:
        """Completed events that are newly complete or not yet known resolved.

        Returns:
            Candidates in ascending index order
        """
        tracker = self.resolver.tracker
        previously_complete = (
            {event.index for event in previous.completed_events()} if previous is not None else set()
        )
        candidates = [
            event
            for event in snapshot.completed_events()
            if (previous is not None and event.index not in previously_complete)
            or not tracker.is_resolved(snapshot.game_pk, event.index)
        ]
        return sorted(candidates, key=lambda event: event.index)

    async def _seed_trackers(self, game_pk: int) -> None:
        """Load already-resolved keys from the store the first time a game is seen."""
        tracker = self.resolver.tracker
        try:
            if not tracker.is_initialized(game_pk):
                tracker.initialize(game_pk, await self.store.get_resolved_event_indices(game_pk))
            if self.pitcher_resolver is not None:
                pitcher_tracker = self.pitcher_resolver.tracker
                if not pitcher_tracker.is_initialized(game_pk):
                    pitcher_tracker.initialize(
                        game_pk, await self.store.get_resolved_pitcher_ids(game_pk)
                    )
        except Exception as e:
            # Cold tracker is safe; the resolver re-reads pending rows anyway
            self.logger.warning(
                "tracker_seed_failed",
                game_pk=game_pk,
                error=str(e),
                error_type=type(e).__name__,
            )

    def _adjust_interval(self, game_pks: list[int]) -> None:
        """Back off (or stop) once every game has been finished for enough ticks."""
        idle = not game_pks or all(
            self._finished_ticks.get(game_pk, 0) >= self.final_ticks_before_backoff
            for game_pk in game_pks
        )
        if idle:
            if self.stop_when_idle:
                if self.stop():
                    self.logger.info("scheduler_stopped_idle", game_pks=game_pks)
            elif self.interval != self.idle_poll_interval:
                self.interval = self.idle_poll_interval
                self.logger.info(
                    "scheduler_backing_off",
                    interval_seconds=self.interval,
                    game_pks=game_pks,
                )
        elif self.interval != self.poll_interval:
            self.interval = self.poll_interval
            self.logger.info("scheduler_resumed_live_polling", interval_seconds=self.interval)

    async def _record_sync(self, entry: SyncLogEntry) -> None:
        try:
            await self.store.record_sync(entry)
        except Exception as e:
            self.logger.warning(
                "sync_log_write_failed",
                game_pk=entry.game_pk,
                error=str(e),
                error_type=type(e).__name__,
            )

    def stats(self) -> dict:
        trackers = {"at_bat": self.resolver.tracker.stats()}
        if self.pitcher_resolver is not None:
            trackers["pitcher"] = self.pitcher_resolver.tracker.stats()
        return {
            "state": "polling" if self.is_polling else "idle",
            "busy": self._busy,
            "interval_seconds": self.interval,
            "tracked_games": list(self.tracked_game_pks),
            "team_id": self.team_id,
            "metrics": self.metrics.to_dict(),
            "trackers": trackers,
        }
