"""Game state and prediction submission endpoints."""

from fastapi import APIRouter, HTTPException

from mlb_prediction_sync.api.deps import ContextDep
from mlb_prediction_sync.api.schemas import (
    EventResponse,
    GameStateResponse,
    PitcherLineResponse,
    PitcherPredictionRequest,
    PitcherPredictionResponse,
    PredictionRequest,
    PredictionResponse,
)
from mlb_prediction_sync.context import SyncContext
from mlb_prediction_sync.engine.errors import (
    DuplicatePredictionError,
    InvalidPredictionError,
    StoreUnavailableError,
    TransientUpstreamError,
)
from mlb_prediction_sync.engine.scoring import innings_to_outs
from mlb_prediction_sync.feed.models import GameSnapshot

router = APIRouter(tags=["game"])


async def _load_snapshot(context: SyncContext, game_pk: int) -> tuple[GameSnapshot, bool]:
    """Cached snapshot if fresh, else fetch upstream and cache it."""
    snapshot = context.cache.get(game_pk)
    if snapshot is not None:
        return snapshot, True
    try:
        snapshot = await context.feed.fetch_snapshot(game_pk)
    except TransientUpstreamError as e:
        raise HTTPException(status_code=503, detail=f"Game feed unavailable: {e}") from e
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Game {game_pk} not found")
    context.cache.put(game_pk, snapshot)
    return snapshot, False


@router.get("/game/{game_pk}", response_model=GameStateResponse)
async def get_game(game_pk: int, context: ContextDep):
    """Current state of a game, served from the snapshot cache when fresh."""
    snapshot, cached = await _load_snapshot(context, game_pk)
    return GameStateResponse(
        game_pk=snapshot.game_pk,
        status=snapshot.status.value,
        detailed_state=snapshot.detailed_state,
        current_event_index=snapshot.current_event_index,
        fetched_at=snapshot.fetched_at,
        cached=cached,
        events=[
            EventResponse(
                index=event.index,
                is_complete=event.is_complete,
                outcome=event.outcome,
                description=event.result.description,
                inning=event.inning,
                half_inning=event.half_inning,
            )
            for event in snapshot.events
        ],
        pitcher_lines=[
            PitcherLineResponse(
                pitcher_id=line.pitcher_id,
                name=line.name,
                team_side=line.team_side,
                is_starter=line.is_starter,
                has_exited=line.has_exited,
                innings_pitched=line.innings_pitched,
                hits=line.hits,
                earned_runs=line.earned_runs,
                walks=line.walks,
                strikeouts=line.strikeouts,
            )
            for line in snapshot.pitcher_lines
        ],
    )


@router.post("/game/{game_pk}/predictions", response_model=PredictionResponse, status_code=201)
async def submit_prediction(game_pk: int, body: PredictionRequest, context: ContextDep):
    """Submit one user's prediction for an at-bat that has not completed yet.

    Returns 409 if the at-bat is already complete or already resolved, or if
    the user already predicted it.
    """
    snapshot, _ = await _load_snapshot(context, game_pk)
    if snapshot.is_finished:
        raise HTTPException(status_code=409, detail=f"Game {game_pk} is {snapshot.status.value}")
    event = snapshot.event(body.at_bat_index)
    if (event is not None and event.is_complete) or context.tracker.is_resolved(game_pk, body.at_bat_index):
        raise HTTPException(status_code=409, detail=f"At-bat {body.at_bat_index} is already complete")

    try:
        prediction = await context.store.submit_prediction(
            body.user_id,
            game_pk,
            body.at_bat_index,
            body.prediction,
            body.prediction_category,
        )
    except DuplicatePredictionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except InvalidPredictionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    return PredictionResponse(
        id=prediction.id,
        user_id=prediction.user_id,
        game_pk=prediction.game_pk,
        at_bat_index=prediction.at_bat_index,
        prediction=prediction.prediction,
        prediction_category=prediction.prediction_category,
        created_at=prediction.created_at,
    )


@router.post(
    "/game/{game_pk}/pitcher-predictions",
    response_model=PitcherPredictionResponse,
    status_code=201,
)
async def submit_pitcher_prediction(game_pk: int, body: PitcherPredictionRequest, context: ContextDep):
    """Submit a prediction of a starting pitcher's final line."""
    snapshot, _ = await _load_snapshot(context, game_pk)
    line = next((p for p in snapshot.pitcher_lines if p.pitcher_id == body.pitcher_id), None)
    if snapshot.is_finished or (line is not None and line.has_exited):
        raise HTTPException(status_code=409, detail=f"Pitcher {body.pitcher_id} has already left the game")
    if line is not None and not line.is_starter:
        raise HTTPException(status_code=409, detail=f"Pitcher {body.pitcher_id} did not start this game")

    try:
        prediction = await context.store.submit_pitcher_prediction(
            body.user_id,
            game_pk,
            body.pitcher_id,
            body.pitcher_name or (line.name if line else ""),
            innings_to_outs(body.predicted_innings),
            body.predicted_hits,
            body.predicted_earned_runs,
            body.predicted_walks,
            body.predicted_strikeouts,
        )
    except DuplicatePredictionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except InvalidPredictionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    return PitcherPredictionResponse(
        id=prediction.id,
        user_id=prediction.user_id,
        game_pk=prediction.game_pk,
        pitcher_id=prediction.pitcher_id,
        predicted_outs=prediction.predicted_outs,
        created_at=prediction.created_at,
    )
