"""Tests for MLBFeedClient against mocked HTTP responses."""

from datetime import date

import httpx
import pytest
from tenacity import wait_none

from mlb_prediction_sync.engine.errors import TransientUpstreamError
from mlb_prediction_sync.feed.client import MLBFeedClient
from mlb_prediction_sync.feed.models import GameStatus

GAME = 745123
BASE = "https://statsapi.test/api"

LIVE_FEED = {
    "gameData": {"status": {"abstractGameState": "Live", "detailedState": "In Progress"}},
    "liveData": {
        "plays": {
            "allPlays": [
                {
                    "about": {"atBatIndex": 0, "isComplete": True},
                    "result": {"eventType": "home_run", "description": "Aaron Judge homers (12)."},
                }
            ],
            "currentPlay": {"about": {"atBatIndex": 1}},
        }
    },
}


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(MLBFeedClient._get_json.retry, "wait", wait_none())


@pytest.fixture
def client():
    return MLBFeedClient(base_url=BASE, timeout=1.0)


@pytest.mark.asyncio
async def test_fetch_snapshot(httpx_mock, client):
    httpx_mock.add_response(url=f"{BASE}/v1.1/game/{GAME}/feed/live", json=LIVE_FEED)

    snapshot = await client.fetch_snapshot(GAME)

    assert snapshot.game_pk == GAME
    assert snapshot.status == GameStatus.LIVE
    assert snapshot.event(0).outcome.value == "home_run"


@pytest.mark.asyncio
async def test_unknown_game_returns_none(httpx_mock, client):
    httpx_mock.add_response(status_code=404)

    assert await client.fetch_snapshot(GAME) is None


@pytest.mark.asyncio
async def test_server_error_is_retried(httpx_mock, client):
    httpx_mock.add_response(status_code=503)
    httpx_mock.add_response(json=LIVE_FEED)

    snapshot = await client.fetch_snapshot(GAME)

    assert snapshot is not None
    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_repeated_server_errors_raise_transient(httpx_mock, client):
    for _ in range(3):
        httpx_mock.add_response(status_code=502)

    with pytest.raises(TransientUpstreamError) as exc_info:
        await client.fetch_snapshot(GAME)

    assert exc_info.value.game_pk == GAME
    assert len(httpx_mock.get_requests()) == 3


@pytest.mark.asyncio
async def test_client_error_is_not_retried(httpx_mock, client):
    httpx_mock.add_response(status_code=400)

    with pytest.raises(TransientUpstreamError):
        await client.fetch_snapshot(GAME)

    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_transport_error_raises_transient(httpx_mock, client):
    for _ in range(3):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

    with pytest.raises(TransientUpstreamError):
        await client.fetch_snapshot(GAME)


@pytest.mark.asyncio
async def test_open_circuit_short_circuits(httpx_mock):
    client = MLBFeedClient(base_url=BASE, failure_threshold=1, recovery_timeout=60)
    httpx_mock.add_response(status_code=400)

    with pytest.raises(TransientUpstreamError):
        await client.fetch_snapshot(GAME)
    with pytest.raises(TransientUpstreamError, match="circuit open"):
        await client.fetch_snapshot(GAME)

    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_find_game_pks(httpx_mock, client):
    httpx_mock.add_response(json={"dates": [{"games": [{"gamePk": GAME}]}]})

    game_pks = await client.find_game_pks(147, date(2026, 7, 4))

    assert game_pks == [GAME]
    request = httpx_mock.get_request()
    assert request.url.path == "/api/v1/schedule"
    assert request.url.params["teamId"] == "147"
    assert request.url.params["date"] == "2026-07-04"
