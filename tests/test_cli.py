"""Tests for the mlb-sync CLI commands."""

import pytest
from typer.testing import CliRunner

from mlb_prediction_sync import __version__
from mlb_prediction_sync.cli import main as cli_main
from mlb_prediction_sync.cli.main import cli
from mlb_prediction_sync.engine.errors import TransientUpstreamError
from mlb_prediction_sync.engine.outcomes import Outcome

runner = CliRunner()

GAME = 745123


@pytest.fixture
def wired(monkeypatch, fake_feed, fake_store):
    """Make the CLI build its context over the fakes."""
    real_build = cli_main.build_context

    def build(settings):
        return real_build(settings, feed=fake_feed, store=fake_store)

    monkeypatch.setattr(cli_main, "build_context", build)
    return fake_feed, fake_store


class TestClassify:
    def test_description(self):
        result = runner.invoke(cli, ["classify", "-d", "Aaron Judge grounds into a double play, shortstop to first."])

        assert result.exit_code == 0
        assert "grounded_into_double_play" in result.output
        assert "out" in result.output

    def test_event_type_code(self):
        result = runner.invoke(cli, ["classify", "--event-type", "home_run"])

        assert result.exit_code == 0
        assert "home_run" in result.output
        assert "6" in result.output

    def test_requires_input(self):
        result = runner.invoke(cli, ["classify"])
        assert result.exit_code == 2


def test_version():
    result = runner.invoke(cli, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestSyncOnce:
    def test_resolves_and_prints_report(self, wired, snapshot_factory):
        import asyncio

        feed, store = wired
        asyncio.run(store.submit_prediction("alice", GAME, 0, Outcome.WALK))
        feed.queue(GAME, snapshot_factory.snapshot(GAME, events=[snapshot_factory.event(0, event_type="walk")]))

        result = runner.invoke(cli, ["sync-once", "--game", str(GAME)])

        assert result.exit_code == 0
        assert "Predictions resolved" in result.output
        assert store.predictions[1].points_earned == 2

    def test_fetch_failure_exits_nonzero(self, wired):
        feed, _ = wired
        feed.queue(GAME, TransientUpstreamError("feed down", game_pk=GAME))

        result = runner.invoke(cli, ["sync-once", "-g", str(GAME)])

        assert result.exit_code == 1
        assert "Fetch failures" in result.output


def test_stats(wired):
    result = runner.invoke(cli, ["stats", "--hours", "6"])

    assert result.exit_code == 0
    assert "Total syncs" in result.output
    assert "last 6h" in result.output
