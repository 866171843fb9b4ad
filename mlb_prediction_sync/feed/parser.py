"""Narrow parsing step from raw MLB live feed JSON to GameSnapshot.

The live feed is eventually consistent: fields appear and disappear between
polls. Every lookup here tolerates a missing key and falls back to a safe
default, so a partial payload yields a partial (never invalid) snapshot.
"""

from typing import Any

from mlb_prediction_sync.engine.outcomes import classify
from mlb_prediction_sync.engine.scoring import innings_to_outs
from mlb_prediction_sync.feed.models import (
    EventRecord,
    EventResult,
    GameSnapshot,
    GameStatus,
    PitcherLine,
)
from mlb_prediction_sync.monitoring import get_logger

log = get_logger()

_LIVE_DETAILED_STATES = {"in progress", "warmup", "manager challenge"}
_POSTPONED_DETAILED_STATES = {"postponed", "suspended", "cancelled"}


def _dig(payload: Any, *keys: str, default: Any = None) -> Any:
    """Walk nested dicts, returning default at the first missing key."""
    current = payload
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def parse_status(game_status: dict[str, Any] | None) -> GameStatus:
    """Map the feed's status block to a GameStatus.

    Args:
        game_status: ``gameData.status`` block (abstractGameState,
            detailedState, codedGameState)

    Returns:
        GameStatus, SCHEDULED when the block is missing or unrecognized
    """
    if not game_status:
        return GameStatus.SCHEDULED

    abstract = (game_status.get("abstractGameState") or "").lower()
    detailed = (game_status.get("detailedState") or "").lower()
    coded = (game_status.get("codedGameState") or "").upper()

    if coded == "D" or any(state in detailed for state in _POSTPONED_DETAILED_STATES):
        return GameStatus.POSTPONED
    if abstract == "final" or coded in ("F", "O"):
        return GameStatus.FINAL
    if abstract == "live" or coded == "I" or detailed in _LIVE_DETAILED_STATES:
        return GameStatus.LIVE
    return GameStatus.SCHEDULED


def _parse_result(raw: dict[str, Any]) -> EventResult:
    return EventResult(
        event_type=raw.get("eventType"),
        event=raw.get("event"),
        description=raw.get("description"),
        type=raw.get("type"),
    )


def _parse_play(play: dict[str, Any], current_index: int | None) -> EventRecord | None:
    about = play.get("about") or {}
    index = about.get("atBatIndex", play.get("atBatIndex"))
    if index is None:
        return None

    result = _parse_result(play.get("result") or {})
    if "isComplete" in about:
        is_complete = bool(about["isComplete"])
    else:
        # Older payloads omit the flag; a play with a result that is no
        # longer current has finished.
        is_complete = bool(result.event_type) and index != current_index

    matchup = play.get("matchup") or {}
    context = {
        "batter": _dig(matchup, "batter", "fullName"),
        "batter_id": _dig(matchup, "batter", "id"),
        "pitcher": _dig(matchup, "pitcher", "fullName"),
        "pitcher_id": _dig(matchup, "pitcher", "id"),
        "rbi": _dig(play, "result", "rbi"),
    }

    return EventRecord(
        index=int(index),
        is_complete=is_complete,
        result=result,
        outcome=classify(result) if is_complete else None,
        inning=about.get("inning"),
        half_inning=about.get("halfInning"),
        context={k: v for k, v in context.items() if v is not None},
    )


def _has_exited(position: int, appearances: int, status: GameStatus, pitching: dict[str, Any]) -> bool:
    """A pitcher is done once relieved, or when the game ends or is halted."""
    if position < appearances - 1 or status == GameStatus.FINAL:
        return True
    # A suspended game resumes with a fresh pitcher, so a started line is final
    pitched = innings_to_outs(pitching.get("inningsPitched")) > 0 or bool(pitching.get("battersFaced"))
    return status == GameStatus.POSTPONED and pitched


def _parse_pitcher_lines(boxscore: dict[str, Any], status: GameStatus) -> list[PitcherLine]:
    lines: list[PitcherLine] = []
    for side in ("home", "away"):
        team = _dig(boxscore, "teams", side, default={})
        players = team.get("players") or {}
        order = [int(pid) for pid in team.get("pitchers") or []]

        stats_by_id: dict[int, dict[str, Any]] = {}
        names: dict[int, str] = {}
        for player in players.values():
            pitching = _dig(player, "stats", "pitching")
            pid = _dig(player, "person", "id")
            if pid is None or not pitching:
                continue
            stats_by_id[int(pid)] = pitching
            names[int(pid)] = _dig(player, "person", "fullName", default="")

        if not order:
            # Without an appearance list, the pitcher with the most outs started
            order = sorted(
                stats_by_id,
                key=lambda pid: innings_to_outs(stats_by_id[pid].get("inningsPitched")),
                reverse=True,
            )

        for position, pid in enumerate(order):
            pitching = stats_by_id.get(pid, {})
            is_starter = position == 0
            lines.append(
                PitcherLine(
                    pitcher_id=pid,
                    name=names.get(pid, ""),
                    team_side=side,
                    is_starter=is_starter,
                    has_exited=_has_exited(position, len(order), status, pitching),
                    outs=innings_to_outs(pitching.get("inningsPitched")),
                    hits=int(pitching.get("hits") or 0),
                    earned_runs=int(pitching.get("earnedRuns") or 0),
                    walks=int(pitching.get("baseOnBalls") or 0),
                    strikeouts=int(pitching.get("strikeOuts") or 0),
                )
            )
    return lines


def parse_game_feed(payload: dict[str, Any], game_pk: int) -> GameSnapshot:
    """Parse a ``/v1.1/game/{pk}/feed/live`` payload.

    Args:
        payload: Decoded JSON body
        game_pk: Game id the payload was requested for

    Returns:
        Immutable GameSnapshot
    """
    status = parse_status(_dig(payload, "gameData", "status"))
    plays = _dig(payload, "liveData", "plays", default={})
    current = plays.get("currentPlay") or {}
    current_index = _dig(current, "about", "atBatIndex")

    events: list[EventRecord] = []
    skipped = 0
    for play in plays.get("allPlays") or []:
        record = _parse_play(play, current_index)
        if record is None:
            skipped += 1
            continue
        events.append(record)

    if skipped:
        log.debug("feed_plays_skipped", game_pk=game_pk, count=skipped)

    return GameSnapshot(
        game_pk=game_pk,
        status=status,
        detailed_state=_dig(payload, "gameData", "status", "detailedState"),
        events=tuple(events),
        current_event_index=current_index,
        pitcher_lines=tuple(
            _parse_pitcher_lines(_dig(payload, "liveData", "boxscore", default={}), status)
        ),
    )


def parse_schedule(payload: dict[str, Any]) -> list[int]:
    """Extract game ids from a ``/v1/schedule`` payload."""
    game_pks: list[int] = []
    for date in payload.get("dates") or []:
        for game in date.get("games") or []:
            if game.get("gamePk") is not None:
                game_pks.append(int(game["gamePk"]))
    return game_pks
