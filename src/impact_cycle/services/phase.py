"""Clock and phase resolution for the daily cycle.

Everything here is a pure function of a UTC instant. Nothing is cached or
stored, so any process can re-derive the same phase and cycle day after a
restart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

SECONDS_PER_DAY = 86_400

LOCK_HOUR = 21
STRIKE_HOUR = 22
OUTCOME_HOUR = 23

# Contract function names called at each scheduled hour.
LOCK_ACTION = "lockTargeting"
STRIKE_ACTION = "requestWinningCoordinates"
OUTCOME_ACTION = "resetDailyCycle"


class Phase(str, Enum):
    """Named stages of a cycle day."""

    TARGETING = "targeting"
    LOCKED = "locked"
    STRIKE = "strike"
    OUTCOME = "outcome"
    RESET = "reset"


@dataclass(frozen=True)
class ScheduleEntry:
    """One row of the fixed daily schedule."""

    hour: int
    phase: Phase
    action: str | None


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("Phase resolution requires a timezone-aware datetime")
    return now.astimezone(UTC)


def current_hour(now: datetime) -> int:
    """Return the UTC hour-of-day for `now`."""
    return _as_utc(now).hour


def phase_for_hour(hour: int) -> Phase:
    """Map an hour-of-day to its phase; total over all integers."""
    if hour < LOCK_HOUR:
        return Phase.TARGETING
    if hour == LOCK_HOUR:
        return Phase.LOCKED
    if hour == STRIKE_HOUR:
        return Phase.STRIKE
    if hour == OUTCOME_HOUR:
        return Phase.OUTCOME
    return Phase.RESET


def resolve_phase(now: datetime) -> Phase:
    """Return the phase active at the instant `now`."""
    return phase_for_hour(current_hour(now))


def resolve_cycle_day(now: datetime) -> int:
    """Return whole days elapsed since the Unix epoch at `now`."""
    return int(_as_utc(now).timestamp()) // SECONDS_PER_DAY


def phase_schedule() -> list[ScheduleEntry]:
    """Return the fixed hour -> phase -> ledger action table."""
    return [
        ScheduleEntry(hour=0, phase=Phase.TARGETING, action=None),
        ScheduleEntry(hour=LOCK_HOUR, phase=Phase.LOCKED, action=LOCK_ACTION),
        ScheduleEntry(hour=STRIKE_HOUR, phase=Phase.STRIKE, action=STRIKE_ACTION),
        ScheduleEntry(hour=OUTCOME_HOUR, phase=Phase.OUTCOME, action=OUTCOME_ACTION),
    ]
