import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from rotation.errors import ScheduleConfigError, ScheduleEditError, ScheduleGenerationError
from rotation.functions import generate_schedule, rounds_for_session
from rotation.models import SavedSchedule, ScheduleConfig, ScoringWeights, config_to_dict, schedule_to_dict
from rotation.results import (
    assess_fairness, calculate_standings, clear_match_result, export_schedule_to_csv,
    record_match_result, rename_players, swap_players,
)
from store import ScheduleStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rotation", tags=["Rotation"])


class WeightsIn(BaseModel):
    balance: float = 1.0
    must_play: float = 1.0
    partnership: float = 1.0
    opposition: float = 1.0
    court: float = 1.0


class ScheduleIn(BaseModel):
    name: Optional[str] = None
    num_players: int
    num_courts: int
    num_rounds: Optional[int] = None
    # alternative to num_rounds
    session_start: Optional[str] = None
    session_end: Optional[str] = None
    match_length: Optional[int] = None
    player_names: Optional[List[str]] = None
    avoid_consecutive_sitting_out: bool = True
    balance_match_counts: bool = True
    scoring_weights: Optional[WeightsIn] = None
    random_seed: Optional[int] = None
    attempts: Optional[int] = None
    refine: bool = True


class ResultIn(BaseModel):
    match_id: int
    team1_score: int
    team2_score: int


class RenameIn(BaseModel):
    names: Dict[int, str]


class SwapIn(BaseModel):
    match_id: int
    slot: int
    other_match_id: int
    other_slot: int


def _to_config(body: ScheduleIn) -> ScheduleConfig:
    num_rounds = body.num_rounds
    if num_rounds is None:
        if not (body.session_start and body.session_end and body.match_length):
            raise ScheduleConfigError("Give num_rounds or session_start, session_end and match_length")
        num_rounds = rounds_for_session(body.session_start, body.session_end, body.match_length)
    weights = ScoringWeights(**body.scoring_weights.model_dump()) if body.scoring_weights else ScoringWeights()
    return ScheduleConfig(
        num_rounds=num_rounds,
        num_players=body.num_players,
        num_courts=body.num_courts,
        player_names=body.player_names,
        avoid_consecutive_sitting_out=body.avoid_consecutive_sitting_out,
        balance_match_counts=body.balance_match_counts,
        scoring_weights=weights,
        random_seed=body.random_seed,
        attempts=body.attempts,
        refine=body.refine,
    )


def _saved_to_dict(saved: SavedSchedule) -> dict:
    return {
        "id": saved.id,
        "name": saved.name,
        "createdAt": saved.created_at,
        "config": config_to_dict(saved.config),
        "schedule": schedule_to_dict(saved.schedule),
    }


def _get_saved(sid: str, store: ScheduleStore) -> SavedSchedule:
    saved = store.get(sid)
    if not saved:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return saved


# Routes

@router.post("/schedules", status_code=201)
def create_schedule(body: ScheduleIn, store: ScheduleStore = Depends(get_store)):
    try:
        config = _to_config(body)
        schedule = generate_schedule(config)
    except ScheduleConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ScheduleGenerationError as exc:
        logger.error("Generation failed: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc))
    saved = store.save(config, schedule, body.name)
    logger.info("Saved schedule %s (%d matches)", saved.id, len(schedule.matches))
    return _saved_to_dict(saved)


@router.get("/schedules")
async def list_schedules(store: ScheduleStore = Depends(get_store)):
    return [_saved_to_dict(s) for s in store.list()]


@router.get("/schedules/{sid}")
async def get_schedule(sid: str, store: ScheduleStore = Depends(get_store)):
    return _saved_to_dict(_get_saved(sid, store))


@router.delete("/schedules/{sid}", status_code=204)
async def delete_schedule(sid: str, store: ScheduleStore = Depends(get_store)):
    if not store.delete(sid):
        raise HTTPException(status_code=404, detail="Schedule not found")
    return Response(status_code=204)


@router.get("/schedules/{sid}/csv")
async def export_csv(sid: str, store: ScheduleStore = Depends(get_store)):
    saved = _get_saved(sid, store)
    return Response(
        content=export_schedule_to_csv(saved.schedule),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="schedule-{sid}.csv"'},
    )


@router.post("/schedules/{sid}/results")
async def submit_result(sid: str, body: ResultIn, store: ScheduleStore = Depends(get_store)):
    saved = _get_saved(sid, store)
    try:
        schedule = record_match_result(saved.schedule, body.match_id, body.team1_score, body.team2_score)
    except ScheduleEditError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _saved_to_dict(store.update(sid, schedule))


@router.delete("/schedules/{sid}/results/{match_id}")
async def delete_result(sid: str, match_id: int, store: ScheduleStore = Depends(get_store)):
    saved = _get_saved(sid, store)
    try:
        schedule = clear_match_result(saved.schedule, match_id)
    except ScheduleEditError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _saved_to_dict(store.update(sid, schedule))


@router.post("/schedules/{sid}/rename")
async def rename(sid: str, body: RenameIn, store: ScheduleStore = Depends(get_store)):
    saved = _get_saved(sid, store)
    try:
        schedule = rename_players(saved.schedule, body.names)
    except ScheduleEditError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _saved_to_dict(store.update(sid, schedule))


@router.post("/schedules/{sid}/swap")
async def swap(sid: str, body: SwapIn, store: ScheduleStore = Depends(get_store)):
    saved = _get_saved(sid, store)
    try:
        schedule = swap_players(saved.schedule, body.match_id, body.slot, body.other_match_id, body.other_slot)
    except ScheduleEditError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _saved_to_dict(store.update(sid, schedule))


@router.get("/schedules/{sid}/standings")
async def standings(sid: str, store: ScheduleStore = Depends(get_store)):
    return calculate_standings(_get_saved(sid, store).schedule)


@router.get("/schedules/{sid}/fairness")
async def fairness(sid: str, store: ScheduleStore = Depends(get_store)):
    return assess_fairness(_get_saved(sid, store).schedule)
