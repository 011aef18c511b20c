"""Cycle trigger and game state Pydantic schemas."""
from __future__ import annotations

from pydantic import BaseModel, Field


class CoordinatesModel(BaseModel):
    """A point on the targeting grid."""

    x: int = Field(..., ge=0, le=10)
    y: int = Field(..., ge=0, le=10)
    z: int = Field(..., ge=0, le=10)


class TriggerResult(BaseModel):
    status: str = Field(..., description="noop, already_done, confirmed, pending or failed")
    submitted: bool = Field(False, description="True if a transaction reached the ledger")
    tx_hash: str | None = None
    winning_coordinates: CoordinatesModel | None = None


class TriggerResponse(BaseModel):
    """Body returned to the hourly scheduler."""

    success: bool
    hour: int
    day: int
    phase: str
    action: str | None = None
    result: TriggerResult | None = None
    message: str | None = None
    warning: str | None = None
    error: str | None = None


class ScheduleEntryModel(BaseModel):
    hour: int
    phase: str
    action: str | None = None


class GameStateResponse(BaseModel):
    day: int
    hour: int
    phase: str
    schedule: list[ScheduleEntryModel]


class FeeSplitModel(BaseModel):
    jackpot: int
    dev_rake: int
    burn: int


class TokenomicsModel(BaseModel):
    total_fees: int
    participant_count: int
    burn_rate: float
    jackpot_percentage: float
    dev_rake_percentage: float
    burn_percentage: float
    split: FeeSplitModel


class CycleRecordResponse(BaseModel):
    """Ledger cycle record with its derived fee breakdown."""

    day: int
    targeting_locked: bool
    randomness_requested: bool
    coordinates_set: bool
    winning_coordinates: CoordinatesModel | None = None
    participant_count: int
    total_fees: int
    reset_completed: bool
    tokenomics: TokenomicsModel


class GuessModel(BaseModel):
    """Unvalidated player guess; range checks happen in the evaluator."""

    x: int
    y: int
    z: int


class EvaluateRequest(BaseModel):
    """Player guess to score against a winning coordinate."""

    guess: GuessModel
    winning: CoordinatesModel | None = None
    join_index: int | None = Field(None, ge=0, description="Zero-based join order")


class EvaluateResponse(BaseModel):
    valid: bool
    matches: int | None = None
    battery: int | None = None
