"""Typer CLI entry point for the prediction sync service.

- mlb-sync run --game 745123
- mlb-sync sync-once
- mlb-sync classify --description "Aaron Judge grounds into a double play"
"""

import asyncio
import os

from dotenv import load_dotenv

# Load .env file before settings are read
load_dotenv()

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mlb_prediction_sync import __version__
from mlb_prediction_sync.api.config import Settings, get_settings
from mlb_prediction_sync.context import SyncContext, build_context
from mlb_prediction_sync.engine.models import TickReport
from mlb_prediction_sync.engine.outcomes import (
    CATEGORY_POINTS,
    EXACT_POINTS,
    category_of,
    classify as classify_result,
)
from mlb_prediction_sync.feed.models import EventResult
from mlb_prediction_sync.monitoring import configure_logging

cli = typer.Typer(
    name="mlb-sync",
    help="""MLB Prediction Sync - resolve live at-bat predictions against the game feed.

QUICK START:
  mlb-sync init-db
  mlb-sync run --game 745123
  mlb-sync sync-once
  mlb-sync stats --hours 6
""",
    add_completion=False,
)

# Disable colors if NO_COLOR env var is set (standard convention)
console = Console(no_color=os.getenv("NO_COLOR") is not None)


def _settings(games: list[int] | None = None, interval: float | None = None) -> Settings:
    settings = get_settings()
    overrides = {}
    if games:
        overrides["tracked_game_pks"] = games
    if interval is not None:
        overrides["poll_interval_seconds"] = interval
    return settings.model_copy(update=overrides) if overrides else settings


async def _open(settings: Settings) -> SyncContext:
    context = build_context(settings)
    if context.engine is not None and context.engine.dialect.name == "sqlite":
        from mlb_prediction_sync.db import init_database

        await init_database(context.engine)
    return context


def _report_table(report: TickReport) -> Table:
    table = Table(title=f"Tick {report.tick_id}", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Games polled", str(report.games_polled))
    table.add_row("Fetch failures", str(report.fetch_failures))
    table.add_row("Events resolved", str(report.events_resolved))
    table.add_row("Predictions resolved", str(report.predictions_resolved))
    table.add_row("Points awarded", str(report.points_awarded))
    table.add_row("Duration", f"{report.duration_ms} ms")
    return table


@cli.command()
def run(
    game: list[int] = typer.Option(None, "--game", "-g", help="Game id to track (repeatable). Default: TRACKED_GAME_PKS or today's TEAM_ID game"),
    interval: float = typer.Option(None, "--interval", "-i", help="Live polling interval in seconds"),
):
    """Poll the feed in the foreground until interrupted (Ctrl-C)."""
    settings = _settings(game, interval)

    async def _run() -> None:
        context = await _open(settings)
        context.scheduler.start()
        try:
            while context.scheduler.is_polling:
                await asyncio.sleep(1)
        finally:
            await context.shutdown()

    console.print(
        f"[bold cyan]Polling[/bold cyan] every {settings.poll_interval_seconds:g}s "
        f"(games: {settings.tracked_game_pks or f'team {settings.team_id} today'})"
    )
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")
        return
    console.print("[green]All games finished, scheduler stopped[/green]")


@cli.command("sync-once")
def sync_once(
    game: list[int] = typer.Option(None, "--game", "-g", help="Game id to sync (repeatable)"),
):
    """Run a single sync tick and print its report."""
    settings = _settings(game)

    async def _tick() -> TickReport | None:
        context = await _open(settings)
        try:
            return await context.scheduler.trigger_once()
        finally:
            await context.shutdown()

    report = asyncio.run(_tick())
    if report is None:
        console.print("[yellow]A tick was already running[/yellow]")
        raise typer.Exit(code=1)

    console.print(_report_table(report))
    for error in report.errors:
        console.print(f"[red]  {error}[/red]")
    if not report.ok:
        raise typer.Exit(code=1)


@cli.command()
def classify(
    event_type: str = typer.Option(None, "--event-type", "-t", help="Upstream eventType code, e.g. grounded_into_double_play"),
    event: str = typer.Option(None, "--event", "-e", help="Event name, e.g. 'Grounded Into DP'"),
    description: str = typer.Option(None, "--description", "-d", help="Play description text"),
):
    """Show how a play result is classified and what it is worth."""
    if not (event_type or event or description):
        console.print("[bold red]Error:[/bold red] give at least one of --event-type, --event, --description")
        raise typer.Exit(code=2)

    outcome = classify_result(EventResult(event_type=event_type, event=event, description=description))
    category = category_of(outcome)
    console.print(Panel.fit(
        f"[bold cyan]Outcome:[/bold cyan] {outcome.value}\n"
        f"[bold cyan]Category:[/bold cyan] {category.value}\n"
        f"[bold cyan]Exact points:[/bold cyan] {EXACT_POINTS[outcome]}\n"
        f"[bold cyan]Category points:[/bold cyan] {CATEGORY_POINTS[category]}",
        title="Classification",
        border_style="cyan",
    ))


@cli.command()
def stats(
    hours: int = typer.Option(24, "--hours", "-h", help="Look-back window in hours"),
):
    """Show sync and resolution statistics from the durable logs."""
    settings = get_settings()

    async def _stats() -> dict:
        context = await _open(settings)
        try:
            return await context.store.get_sync_stats(hours)
        finally:
            await context.shutdown()

    try:
        data = asyncio.run(_stats())
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}", style="red")
        raise typer.Exit(code=1)

    table = Table(title=f"Sync log, last {hours}h", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Total syncs", str(data["total_syncs"]))
    table.add_row("Successful", str(data["successful_syncs"]))
    table.add_row("Failed", str(data["failed_syncs"]))
    table.add_row("Success rate", f"{data['success_rate']}%")
    table.add_row("Average duration", f"{data['average_duration_ms']} ms")
    resolutions = data["resolutions"]
    table.add_row("Resolutions", str(resolutions["total"]))
    table.add_row("Fallback resolutions", str(resolutions["fallback"]))
    table.add_row("Predictions resolved", str(resolutions["predictions_resolved"]))
    table.add_row("Points awarded", str(resolutions["points_awarded"]))
    console.print(table)

    if data["by_type"]:
        by_type = Table(title="By sync type")
        by_type.add_column("Type", style="cyan")
        for column in ("total", "success", "partial", "error"):
            by_type.add_column(column.capitalize(), justify="right")
        for sync_type, counts in sorted(data["by_type"].items()):
            by_type.add_row(
                sync_type,
                *(str(counts[c]) for c in ("total", "success", "partial", "error")),
            )
        console.print(by_type)


@cli.command("init-db")
def init_db():
    """Create database tables (SQLite development databases)."""
    from mlb_prediction_sync.db import create_engine, init_database

    settings = get_settings()

    async def _init() -> None:
        engine = create_engine(settings.database_url, environment=settings.environment)
        try:
            await init_database(engine)
        finally:
            await engine.dispose()

    asyncio.run(_init())
    console.print("[green]Schema ready[/green]")


@cli.command()
def version():
    """Show version and configuration info."""
    settings = get_settings()
    console.print(f"[bold cyan]MLB Prediction Sync[/bold cyan] v{__version__}")
    console.print()
    console.print("[bold]Configuration:[/bold]")
    console.print(f"  Feed: {settings.feed_base_url}")
    console.print(f"  Tracked games: {settings.tracked_game_pks or f'auto (team {settings.team_id})'}")
    console.print(f"  Poll interval: {settings.poll_interval_seconds:g}s (idle {settings.idle_poll_interval_seconds:g}s)")
    console.print(f"  Snapshot cache: {settings.snapshot_cache_dir or 'in-memory'}")


def main():
    """Entry point for CLI."""
    settings = get_settings()
    configure_logging(os.getenv("LOG_MODE", settings.environment), settings.log_level)
    cli()


if __name__ == "__main__":
    main()
