"""Pydantic schemas for the Impact cycle API."""

from .cycle import (
    CoordinatesModel,
    CycleRecordResponse,
    EvaluateRequest,
    EvaluateResponse,
    GameStateResponse,
    TriggerResponse,
    TriggerResult,
)
from .session import SessionResponse, VerifyRequest, VerifyResponse

__all__ = [
    "CoordinatesModel",
    "CycleRecordResponse",
    "EvaluateRequest",
    "EvaluateResponse",
    "GameStateResponse",
    "TriggerResponse",
    "TriggerResult",
    "SessionResponse",
    "VerifyRequest",
    "VerifyResponse",
]
