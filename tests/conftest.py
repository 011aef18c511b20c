# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

import pytest

os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi import FastAPI
from fastapi.testclient import TestClient

from impact_cycle.api.v1 import dependencies
from impact_cycle.core.errors import LedgerError
from impact_cycle.main import app as fastapi_app
from impact_cycle.services.coordinates import Coordinates
from impact_cycle.services.ledger import (
    ConfirmationStatus,
    CycleRecord,
    LedgerAction,
    TransactionHandle,
)
from impact_cycle.services.orchestrator import DailyCycleOrchestrator
from impact_cycle.services.phase import resolve_cycle_day
from impact_cycle.services.rate_limit import InMemoryRateLimiter

TEST_PRIVATE_KEY = "0x" + "11" * 32
OTHER_PRIVATE_KEY = "0x" + "22" * 32
WINNING = Coordinates(3, 7, 1)


def at_hour(hour: int, minute: int = 5) -> datetime:
    """Return a fixed UTC instant on a fixed day at the given hour."""
    return datetime(2026, 10, 19, hour, minute, tzinfo=UTC)


@dataclass
class FakeClock:
    """Wall clock plus a monotonic clock that only advances when slept."""

    now: datetime
    elapsed: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def wall(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return self.elapsed

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.elapsed += seconds


class FakeLedger:
    """In-memory ledger that applies accepted actions to its cycle records.

    `fulfill_after_reads` controls randomness: after a randomness request, the
    winning coordinates appear on that many subsequent reads (None = never).
    """

    def __init__(self) -> None:
        self.records: dict[int, CycleRecord] = {}
        self.submissions: list[LedgerAction] = []
        self.confirmation = ConfirmationStatus.CONFIRMED
        self.submit_error: Exception | None = None
        self.read_error: LedgerError | None = None
        self.transient_read_failures = 0
        self.last_day: int | None = None
        self.fulfill_after_reads: int | None = 1
        self.winning = WINNING
        self.reads = 0
        self.closed = False
        self._reads_since_request = 0

    def record(self, day: int) -> CycleRecord:
        return self.records.get(day, CycleRecord(day=day))

    def set_record(self, day: int, **changes: Any) -> CycleRecord:
        record = replace(self.record(day), **changes)
        self.records[day] = record
        return record

    async def read_cycle_record(self, day: int) -> CycleRecord:
        self.reads += 1
        self.last_day = day
        if self.read_error is not None:
            raise self.read_error
        if self.transient_read_failures > 0:
            self.transient_read_failures -= 1
            raise LedgerError("transient read failure")

        record = self.record(day)
        if record.randomness_requested and not record.coordinates_set:
            self._reads_since_request += 1
            if (
                self.fulfill_after_reads is not None
                and self._reads_since_request >= self.fulfill_after_reads
            ):
                record = self.set_record(
                    day, coordinates_set=True, winning_coordinates=self.winning
                )
        return record

    async def submit(self, action: LedgerAction) -> TransactionHandle:
        if self.submit_error is not None:
            raise self.submit_error
        self.submissions.append(action)
        return TransactionHandle(action=action, tx_hash=f"0x{len(self.submissions):064x}")

    async def await_confirmation(self, handle: TransactionHandle) -> ConfirmationStatus:
        if self.confirmation is not ConfirmationStatus.FAILED:
            self._apply(handle.action)
        return self.confirmation

    async def close(self) -> None:
        self.closed = True

    def _apply(self, action: LedgerAction) -> None:
        assert self.last_day is not None, "actions are only submitted after a read"
        day = self.last_day
        if action is LedgerAction.LOCK_TARGETING:
            self.set_record(day, targeting_locked=True)
        elif action is LedgerAction.REQUEST_WINNING_COORDINATES:
            self._reads_since_request = 0
            self.set_record(day, randomness_requested=True)
        elif action is LedgerAction.RESET_DAILY_CYCLE:
            self.set_record(day, reset_completed=True)


@pytest.fixture()
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture()
def cycle_day() -> int:
    return resolve_cycle_day(at_hour(0))


@pytest.fixture()
def make_orchestrator(
    fake_ledger: FakeLedger,
) -> Callable[..., tuple[DailyCycleOrchestrator, FakeClock]]:
    def _make(
        hour: int, *, max_wait: float = 120.0, poll_interval: float = 3.0
    ) -> tuple[DailyCycleOrchestrator, FakeClock]:
        clock = FakeClock(now=at_hour(hour))
        orchestrator = DailyCycleOrchestrator(
            fake_ledger,
            now=clock.wall,
            sleep=clock.sleep,
            monotonic=clock.monotonic,
            max_wait=max_wait,
            poll_interval=poll_interval,
        )
        return orchestrator, clock

    return _make


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def rate_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(max_requests=3, window_seconds=60)


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, fake_ledger: FakeLedger, rate_limiter: InMemoryRateLimiter
) -> Iterator[None]:
    app.dependency_overrides[dependencies.get_ledger] = lambda: fake_ledger
    app.dependency_overrides[dependencies.get_limiter] = lambda: rate_limiter
    try:
        yield
    finally:
        app.dependency_overrides.pop(dependencies.get_ledger, None)
        app.dependency_overrides.pop(dependencies.get_limiter, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def cron_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {os.environ['CRON_SECRET']}"}


@pytest.fixture(scope="session")
def signer() -> Any:
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture(scope="session")
def other_signer() -> Any:
    return Account.from_key(OTHER_PRIVATE_KEY)


def sign_text(account: Any, message: str) -> str:
    """Return a 0x-prefixed personal-message signature by `account`."""
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture(scope="session")
def sign() -> Callable[[Any, str], str]:
    return sign_text
