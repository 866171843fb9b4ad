"""MLB Stats API client with retry logic and a circuit breaker.

Fetches the live game feed and the team schedule. Transport errors, timeouts
and 5xx responses are retried with exponential backoff; repeated failures
open a per-client circuit so a down upstream is not hammered every tick.
Every failure reaches the caller as TransientUpstreamError.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any

import httpx
from circuitbreaker import CircuitBreakerError, circuit
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from mlb_prediction_sync.engine.errors import TransientUpstreamError
from mlb_prediction_sync.feed.models import GameSnapshot
from mlb_prediction_sync.feed.parser import parse_game_feed, parse_schedule
from mlb_prediction_sync.monitoring import get_logger

log = get_logger()

DEFAULT_BASE_URL = "https://statsapi.mlb.com/api"


class FeedClient(ABC):
    """Source of game snapshots."""

    @abstractmethod
    async def fetch_snapshot(self, game_pk: int) -> GameSnapshot | None:
        """Fetch the current snapshot for a game.

        Returns:
            GameSnapshot, or None if the game does not exist upstream

        Raises:
            TransientUpstreamError: On network failure or timeout
        """

    @abstractmethod
    async def find_game_pks(self, team_id: int, on: date) -> list[int]:
        """Return the team's game ids on a date (empty when the team is off)."""


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, (httpx.TransportError, httpx.TimeoutException))


class MLBFeedClient(FeedClient):
    """Async client for statsapi.mlb.com.

    Uses a circuit breaker (5 failures, 60s recovery) around a retried GET
    (3 attempts, exponential backoff). A 404 means "no such game" and is
    returned as None rather than raised.

    Example:
        client = MLBFeedClient()
        snapshot = await client.fetch_snapshot(745123)
        if snapshot and snapshot.is_live:
            print(len(snapshot.completed_events()))
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 8.0,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
    ):
        """Initialize the client.

        Args:
            base_url: Stats API root (without version segment)
            timeout: Per-request timeout in seconds
            failure_threshold: Consecutive failures before the circuit opens
            recovery_timeout: Seconds the circuit stays open
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Per-instance breaker so one client's failures do not trip another's
        self._guarded_get = circuit(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            name=f"mlb_feed_{id(self)}",
        )(self._get_json)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """GET a JSON document, returning None on 404."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.base_url}{path}", params=params)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def _get(self, path: str, params: dict[str, Any] | None = None, game_pk: int | None = None):
        try:
            return await self._guarded_get(path, params)
        except CircuitBreakerError as e:
            raise TransientUpstreamError(f"Feed circuit open: {e}", game_pk=game_pk) from e
        except (httpx.HTTPError, ValueError) as e:
            log.warning(
                "feed_request_failed",
                path=path,
                game_pk=game_pk,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransientUpstreamError(f"Feed request failed: {type(e).__name__}: {e}", game_pk=game_pk) from e

    async def fetch_snapshot(self, game_pk: int) -> GameSnapshot | None:
        payload = await self._get(f"/v1.1/game/{game_pk}/feed/live", game_pk=game_pk)
        if payload is None:
            log.info("feed_game_not_found", game_pk=game_pk)
            return None
        return parse_game_feed(payload, game_pk)

    async def find_game_pks(self, team_id: int, on: date) -> list[int]:
        payload = await self._get(
            "/v1/schedule",
            params={"sportId": 1, "teamId": team_id, "date": on.isoformat()},
        )
        if payload is None:
            return []
        return parse_schedule(payload)
