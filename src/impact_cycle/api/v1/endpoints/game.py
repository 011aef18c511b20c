# src/impact_cycle/api/v1/endpoints/game.py
"""Read-only game state endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, HTTPException, status

from impact_cycle.api.v1.dependencies import LedgerDep
from impact_cycle.core.errors import ConfigurationError, LedgerError
from impact_cycle.schemas.cycle import (
    CoordinatesModel,
    CycleRecordResponse,
    EvaluateRequest,
    EvaluateResponse,
    GameStateResponse,
    ScheduleEntryModel,
    TokenomicsModel,
)
from impact_cycle.services.coordinates import (
    Coordinates,
    assign_battery,
    count_matches,
    validate_coordinate,
)
from impact_cycle.services.phase import (
    current_hour,
    phase_schedule,
    resolve_cycle_day,
    resolve_phase,
    utcnow,
)
from impact_cycle.services.tokenomics import calculate_tokenomics

router = APIRouter(prefix="/game", tags=["game"])


@router.get("/state", response_model=GameStateResponse)
async def get_game_state() -> GameStateResponse:
    """Return the current cycle day, hour and phase with the daily schedule."""
    now = utcnow()
    return GameStateResponse(
        day=resolve_cycle_day(now),
        hour=current_hour(now),
        phase=resolve_phase(now).value,
        schedule=[
            ScheduleEntryModel(hour=entry.hour, phase=entry.phase.value, action=entry.action)
            for entry in phase_schedule()
        ],
    )


@router.get("/cycles/{day}", response_model=CycleRecordResponse)
async def get_cycle(day: int, ledger: LedgerDep) -> CycleRecordResponse:
    """Return the ledger's record for `day` together with its fee split."""
    if day < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="day must be non-negative",
        )
    try:
        record = await ledger.read_cycle_record(day)
    except ConfigurationError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(err),
        ) from err
    except LedgerError as err:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Ledger unavailable",
        ) from err

    tokenomics = calculate_tokenomics(record.total_fees, record.participant_count)
    return CycleRecordResponse(
        day=record.day,
        targeting_locked=record.targeting_locked,
        randomness_requested=record.randomness_requested,
        coordinates_set=record.coordinates_set,
        winning_coordinates=(
            CoordinatesModel(**record.winning_coordinates.as_dict())
            if record.winning_coordinates is not None
            else None
        ),
        participant_count=record.participant_count,
        total_fees=record.total_fees,
        reset_completed=record.reset_completed,
        tokenomics=TokenomicsModel(**asdict(tokenomics)),
    )


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_guess(payload: EvaluateRequest) -> EvaluateResponse:
    """Validate a guess and score it against a winning coordinate."""
    guess = payload.guess
    if not validate_coordinate(guess.x, guess.y, guess.z):
        return EvaluateResponse(valid=False)

    response = EvaluateResponse(valid=True)
    if payload.winning is not None:
        response.matches = count_matches(
            Coordinates(guess.x, guess.y, guess.z),
            Coordinates(payload.winning.x, payload.winning.y, payload.winning.z),
        )
    if payload.join_index is not None:
        response.battery = assign_battery(payload.join_index)
    return response
