"""Daily cycle orchestration.

The orchestrator is invoked once per hour by an external scheduler and keeps
no memory between invocations. Each run re-derives the phase from the clock
and reads the day's cycle record from the ledger, then decides what (if
anything) to submit. The ledger record is the idempotency check: an action
the ledger already reflects is never submitted again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from impact_cycle.core.errors import CycleActionError, LedgerError
from impact_cycle.core.settings import settings
from impact_cycle.services.coordinates import Coordinates
from impact_cycle.services.ledger import (
    ConfirmationStatus,
    CycleRecord,
    LedgerAction,
    LedgerGateway,
    TransactionHandle,
)
from impact_cycle.services.phase import (
    Phase,
    current_hour,
    phase_for_hour,
    resolve_cycle_day,
    utcnow,
)

# Configure logger for this module
logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Outcome of one orchestrator invocation."""

    NOOP = "noop"  # nothing scheduled for this hour; nothing attempted
    ALREADY_DONE = "already_done"  # ledger already reflects the action
    CONFIRMED = "confirmed"
    PENDING = "pending"  # submitted, completion not yet observed
    FAILED = "failed"


@dataclass(frozen=True)
class CyclePlan:
    """What a single invocation should do, derived from (phase, record)."""

    phase: Phase
    action: LedgerAction | None
    submit: bool
    await_fulfillment: bool
    reason: str


@dataclass
class CycleRunResult:
    phase: Phase
    hour: int
    day: int
    status: RunStatus
    action: LedgerAction | None = None
    submitted: bool = False
    tx_hash: str | None = None
    winning_coordinates: Coordinates | None = None
    message: str | None = None
    error: CycleActionError | None = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.status is not RunStatus.FAILED

    def raise_for_status(self) -> None:
        """Raise the recorded `CycleActionError` if the run failed."""
        if self.error is not None:
            raise self.error


def plan_cycle_action(phase: Phase, record: CycleRecord) -> CyclePlan:
    """Decide the ledger action for `phase` given the current ledger snapshot.

    Pure: no I/O, no clock. `submit` is False whenever the record shows the
    action has already been accepted.
    """
    if phase is Phase.LOCKED:
        action = LedgerAction.LOCK_TARGETING
        if record.targeting_locked:
            return CyclePlan(phase, action, False, False, "Targeting already locked")
        return CyclePlan(phase, action, True, False, "Locking targeting")

    if phase is Phase.STRIKE:
        action = LedgerAction.REQUEST_WINNING_COORDINATES
        if record.coordinates_set:
            return CyclePlan(phase, action, False, False, "Winning coordinates already set")
        if record.randomness_requested:
            return CyclePlan(phase, action, False, True, "Randomness already requested")
        return CyclePlan(phase, action, True, True, "Requesting winning coordinates")

    if phase is Phase.OUTCOME:
        action = LedgerAction.RESET_DAILY_CYCLE
        if record.reset_completed:
            return CyclePlan(phase, action, False, False, "Daily cycle already reset")
        return CyclePlan(phase, action, True, False, "Resetting daily cycle")

    return CyclePlan(phase, None, False, False, f"No action scheduled during {phase.value}")


class DailyCycleOrchestrator:
    """Runs one scheduled step of the daily cycle per invocation."""

    def __init__(
        self,
        ledger: LedgerGateway,
        *,
        now: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
        poll_interval: float | None = None,
        max_wait: float | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            ledger: Gateway used for every read and write.
            now: Wall-clock source; re-read at the start of every run.
            sleep: Awaitable sleep used between fulfillment polls.
            monotonic: Monotonic clock bounding the fulfillment wait.
            poll_interval: Seconds between fulfillment polls.
            max_wait: Upper bound in seconds on the fulfillment wait.
        """
        self.ledger = ledger
        self._now = now
        self._sleep = sleep
        self._monotonic = monotonic
        self.poll_interval = (
            settings.fulfillment_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.max_wait = settings.fulfillment_max_wait_seconds if max_wait is None else max_wait

    async def run(self) -> CycleRunResult:
        """Execute whatever the current hour calls for."""
        instant = self._now()
        hour = current_hour(instant)
        phase = phase_for_hour(hour)
        day = resolve_cycle_day(instant)

        if phase in (Phase.TARGETING, Phase.RESET):
            return CycleRunResult(
                phase=phase,
                hour=hour,
                day=day,
                status=RunStatus.NOOP,
                message=f"No action scheduled for hour {hour}",
            )

        try:
            record = await self.ledger.read_cycle_record(day)
        except LedgerError as exc:
            logger.error("Could not read cycle record for day %d: %s", day, exc)
            return self._failed(phase, hour, day, None, f"Cycle record unavailable: {exc}", exc)

        plan = plan_cycle_action(phase, record)
        result = CycleRunResult(
            phase=phase,
            hour=hour,
            day=day,
            status=RunStatus.ALREADY_DONE,
            action=plan.action,
            message=plan.reason,
            winning_coordinates=record.winning_coordinates,
        )

        if plan.submit and plan.action is not None:
            try:
                handle = await self.ledger.submit(plan.action)
            except LedgerError as exc:
                logger.error("Submitting %s failed: %s", plan.action.value, exc)
                return self._failed(phase, hour, day, plan.action, str(exc), exc)

            result.submitted = True
            result.tx_hash = handle.tx_hash
            confirmation = await self._confirm(handle, result)
            if confirmation is ConfirmationStatus.FAILED:
                return result
            if confirmation is ConfirmationStatus.CONFIRMED:
                result.status = RunStatus.CONFIRMED

        if plan.await_fulfillment:
            await self._await_fulfillment(day, result)

        logger.info(
            "Cycle day %d hour %d: %s -> %s",
            day,
            hour,
            plan.action.value if plan.action else "none",
            result.status.value,
        )
        return result

    async def _confirm(
        self, handle: TransactionHandle, result: CycleRunResult
    ) -> ConfirmationStatus:
        try:
            confirmation = await self.ledger.await_confirmation(handle)
        except LedgerError as exc:
            logger.warning("Confirmation of %s unknown: %s", handle.tx_hash, exc)
            confirmation = ConfirmationStatus.UNKNOWN

        if confirmation is ConfirmationStatus.FAILED:
            message = f"{handle.action.value} transaction {handle.tx_hash} failed on the ledger"
            result.status = RunStatus.FAILED
            result.message = message
            result.error = CycleActionError(
                message,
                phase=result.phase.value,
                action=handle.action.value,
                submitted=True,
            )
        elif confirmation is ConfirmationStatus.UNKNOWN:
            result.status = RunStatus.PENDING
            result.message = f"{handle.action.value} submitted; confirmation pending"
        return confirmation

    async def _await_fulfillment(self, day: int, result: CycleRunResult) -> None:
        coordinates = await self.wait_for_fulfillment(day)
        if coordinates is None:
            logger.warning("Randomness fulfillment pending for day %d", day)
            result.status = RunStatus.PENDING
            result.message = "Randomness fulfillment pending"
            return
        result.status = RunStatus.CONFIRMED
        result.winning_coordinates = coordinates
        result.message = "Winning coordinates set"

    async def wait_for_fulfillment(self, day: int) -> Coordinates | None:
        """Poll the ledger until the day's winning coordinates are set.

        Returns:
            The winning coordinates, or None if `max_wait` elapsed first.
        """
        started = self._monotonic()
        while True:
            try:
                record = await self.ledger.read_cycle_record(day)
            except LedgerError as exc:
                logger.warning("Error checking randomness fulfillment: %s", exc)
            else:
                if record.coordinates_set and record.winning_coordinates is not None:
                    return record.winning_coordinates

            remaining = self.max_wait - (self._monotonic() - started)
            if remaining <= 0:
                return None
            await self._sleep(min(self.poll_interval, remaining))

    @staticmethod
    def _failed(
        phase: Phase,
        hour: int,
        day: int,
        action: LedgerAction | None,
        message: str,
        cause: Exception,
    ) -> CycleRunResult:
        error = CycleActionError(
            message,
            phase=phase.value,
            action=action.value if action else None,
            submitted=False,
        )
        error.__cause__ = cause
        return CycleRunResult(
            phase=phase,
            hour=hour,
            day=day,
            status=RunStatus.FAILED,
            action=action,
            message=message,
            error=error,
        )
