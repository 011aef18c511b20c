# src/impact_cycle/api/v1/endpoints/cron.py
"""Hourly scheduler trigger for the daily cycle."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from impact_cycle.api.v1.dependencies import OrchestratorDep, require_cron_secret
from impact_cycle.core.errors import ConfigurationError
from impact_cycle.schemas.cycle import CoordinatesModel, TriggerResponse, TriggerResult
from impact_cycle.services.orchestrator import CycleRunResult, RunStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])

_SUCCESS_STATUSES = (RunStatus.ALREADY_DONE, RunStatus.CONFIRMED, RunStatus.PENDING)


def build_trigger_response(run: CycleRunResult) -> TriggerResponse:
    """Translate an orchestrator result into the scheduler-facing body."""
    winning = (
        CoordinatesModel(**run.winning_coordinates.as_dict())
        if run.winning_coordinates is not None
        else None
    )
    response = TriggerResponse(
        success=run.status in _SUCCESS_STATUSES,
        hour=run.hour,
        day=run.day,
        phase=run.phase.value,
        action=run.action.value if run.action else None,
        message=run.message,
    )
    if run.status is RunStatus.NOOP:
        return response

    response.result = TriggerResult(
        status=run.status.value,
        submitted=run.submitted,
        tx_hash=run.tx_hash,
        winning_coordinates=winning,
    )
    if run.status is RunStatus.PENDING:
        response.warning = run.message
    if run.error is not None:
        response.error = str(run.error)
    return response


@router.get(
    "/daily-drawing",
    summary="Run the scheduled daily cycle step for the current hour",
    response_model=TriggerResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def run_daily_cycle(orchestrator: OrchestratorDep) -> TriggerResponse | JSONResponse:
    """Lock, request randomness or reset depending on the UTC hour."""
    try:
        run = await orchestrator.run()
    except ConfigurationError as err:
        logger.error("Daily cycle misconfigured: %s", err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(err),
        ) from err

    body = build_trigger_response(run)
    if run.status is RunStatus.FAILED:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(),
        )
    return body
