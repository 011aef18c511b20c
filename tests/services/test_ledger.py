# tests/services/test_ledger.py
"""Tests for the JSON-RPC ledger gateway."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from eth_abi import encode

from impact_cycle.core.errors import ConfigurationError, LedgerError
from impact_cycle.services.coordinates import Coordinates
from impact_cycle.services.ledger import (
    CYCLE_RECORD_TYPES,
    ConfirmationStatus,
    JsonRpcLedgerGateway,
    LedgerAction,
    LedgerConfig,
    TransactionHandle,
    decode_cycle_record,
)
from impact_cycle.services.orchestrator import DailyCycleOrchestrator, RunStatus
from tests.conftest import TEST_PRIVATE_KEY, FakeClock, at_hour

CONTRACT = "0x" + "ab" * 20
TX_HASH = "0x" + "cd" * 32


def _config(**overrides: Any) -> LedgerConfig:
    values: dict[str, Any] = {
        "rpc_url": "https://rpc.test",
        "contract_address": CONTRACT,
        "signer_private_key": TEST_PRIVATE_KEY,
        "chain_id": 8453,
        "timeout_seconds": 5.0,
        "receipt_timeout_seconds": 10.0,
        "receipt_poll_seconds": 2.0,
    }
    values.update(overrides)
    return LedgerConfig(**values)


def _record_bytes(
    locked: bool = True,
    requested: bool = True,
    coordinates_set: bool = True,
    coords: tuple[int, int, int] = (3, 7, 1),
    participants: int = 42,
    fees: int = 42_000,
    reset: bool = False,
) -> bytes:
    return encode(
        CYCLE_RECORD_TYPES,
        [locked, requested, coordinates_set, *coords, participants, fees, reset],
    )


class RpcStub:
    """Answers JSON-RPC calls from a method -> result table and records them."""

    def __init__(self, results: dict[str, Any]) -> None:
        self.results = results
        self.calls: list[tuple[str, list[Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append((method, body["params"]))
        result = self.results[method]
        if callable(result):
            result = result()
        if isinstance(result, httpx.Response):
            return result
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


def _gateway(
    stub: Callable[[httpx.Request], httpx.Response], clock: FakeClock | None = None, **config: Any
) -> JsonRpcLedgerGateway:
    clock = clock or FakeClock(now=at_hour(22))
    return JsonRpcLedgerGateway(
        _config(**config),
        transport=httpx.MockTransport(stub),
        sleep=clock.sleep,
        monotonic=clock.monotonic,
    )


class TestDecodeCycleRecord:
    def test_decodes_all_fields(self) -> None:
        record = decode_cycle_record(7, _record_bytes())
        assert record.day == 7
        assert record.targeting_locked
        assert record.randomness_requested
        assert record.winning_coordinates == Coordinates(3, 7, 1)
        assert record.participant_count == 42
        assert record.total_fees == 42_000
        assert not record.reset_completed

    def test_unset_coordinates_are_none(self) -> None:
        record = decode_cycle_record(7, _record_bytes(coordinates_set=False, coords=(0, 0, 0)))
        assert record.winning_coordinates is None

    def test_out_of_range_coordinates_are_rejected(self) -> None:
        with pytest.raises(LedgerError):
            decode_cycle_record(7, _record_bytes(coords=(3, 12, 1)))

    def test_truncated_data_is_rejected(self) -> None:
        with pytest.raises(LedgerError):
            decode_cycle_record(7, b"\x00" * 10)


@pytest.mark.asyncio
async def test_read_cycle_record_calls_contract() -> None:
    stub = RpcStub({"eth_call": "0x" + _record_bytes(reset=True).hex()})
    gateway = _gateway(stub)

    record = await gateway.read_cycle_record(20_380)
    await gateway.close()

    assert record.reset_completed
    (method, params), = stub.calls
    assert method == "eth_call"
    assert params[0]["to"].lower() == CONTRACT
    assert params[0]["data"].endswith(f"{20_380:064x}")
    assert params[1] == "latest"


@pytest.mark.asyncio
async def test_submit_signs_and_broadcasts() -> None:
    stub = RpcStub(
        {
            "eth_getTransactionCount": "0x5",
            "eth_gasPrice": "0x3b9aca00",
            "eth_estimateGas": "0x5208",
            "eth_sendRawTransaction": TX_HASH,
        }
    )
    gateway = _gateway(stub)

    handle = await gateway.submit(LedgerAction.LOCK_TARGETING)
    await gateway.close()

    assert handle == TransactionHandle(action=LedgerAction.LOCK_TARGETING, tx_hash=TX_HASH)
    assert stub.methods() == [
        "eth_getTransactionCount",
        "eth_gasPrice",
        "eth_estimateGas",
        "eth_sendRawTransaction",
    ]
    estimate = stub.calls[2][1][0]
    assert estimate["data"] == "0x" + LedgerAction.LOCK_TARGETING.selector.hex()
    raw = stub.calls[3][1][0]
    assert raw.startswith("0x") and len(raw) > 2


@pytest.mark.asyncio
async def test_submit_queries_chain_id_when_not_configured() -> None:
    stub = RpcStub(
        {
            "eth_getTransactionCount": "0x0",
            "eth_gasPrice": "0x1",
            "eth_estimateGas": "0x5208",
            "eth_chainId": "0x2105",
            "eth_sendRawTransaction": TX_HASH,
        }
    )
    gateway = _gateway(stub, chain_id=None)

    await gateway.submit(LedgerAction.RESET_DAILY_CYCLE)
    await gateway.close()

    assert "eth_chainId" in stub.methods()


@pytest.mark.asyncio
async def test_submit_without_signer_is_configuration_error() -> None:
    gateway = _gateway(RpcStub({}), signer_private_key=None)
    with pytest.raises(ConfigurationError):
        await gateway.submit(LedgerAction.LOCK_TARGETING)


@pytest.mark.asyncio
async def test_read_without_contract_is_configuration_error() -> None:
    gateway = _gateway(RpcStub({}), contract_address=None)
    with pytest.raises(ConfigurationError):
        await gateway.read_cycle_record(1)


@pytest.mark.asyncio
async def test_rpc_error_becomes_ledger_error() -> None:
    stub = RpcStub({"eth_call": {"error": {"code": 3, "message": "execution reverted"}}})
    gateway = _gateway(stub)
    with pytest.raises(LedgerError, match="execution reverted"):
        await gateway.read_cycle_record(1)
    await gateway.close()


@pytest.mark.asyncio
async def test_http_failure_becomes_ledger_error() -> None:
    stub = RpcStub({"eth_call": httpx.Response(503, text="unavailable")})
    gateway = _gateway(stub)
    with pytest.raises(LedgerError, match="503"):
        await gateway.read_cycle_record(1)
    await gateway.close()


@pytest.mark.asyncio
async def test_await_confirmation_polls_until_receipt() -> None:
    receipts = iter([None, None, {"status": "0x1"}])
    stub = RpcStub({"eth_getTransactionReceipt": lambda: next(receipts)})
    clock = FakeClock(now=at_hour(22))
    gateway = _gateway(stub, clock=clock)

    status = await gateway.await_confirmation(
        TransactionHandle(action=LedgerAction.LOCK_TARGETING, tx_hash=TX_HASH)
    )
    await gateway.close()

    assert status is ConfirmationStatus.CONFIRMED
    assert clock.sleeps == [2.0, 2.0]


@pytest.mark.asyncio
async def test_await_confirmation_reports_revert() -> None:
    stub = RpcStub({"eth_getTransactionReceipt": {"status": "0x0"}})
    gateway = _gateway(stub)

    status = await gateway.await_confirmation(
        TransactionHandle(action=LedgerAction.RESET_DAILY_CYCLE, tx_hash=TX_HASH)
    )
    await gateway.close()

    assert status is ConfirmationStatus.FAILED


@pytest.mark.asyncio
async def test_await_confirmation_times_out_as_unknown() -> None:
    stub = RpcStub({"eth_getTransactionReceipt": None})
    clock = FakeClock(now=at_hour(22))
    gateway = _gateway(stub, clock=clock, receipt_timeout_seconds=5.0)

    status = await gateway.await_confirmation(
        TransactionHandle(action=LedgerAction.LOCK_TARGETING, tx_hash=TX_HASH)
    )
    await gateway.close()

    assert status is ConfirmationStatus.UNKNOWN
    assert clock.elapsed <= 5.0


def _null_body() -> httpx.Response:
    return httpx.Response(200, content=b"null", headers={"content-type": "application/json"})


@pytest.mark.asyncio
async def test_non_object_body_becomes_ledger_error() -> None:
    stub = RpcStub({"eth_call": _null_body})
    gateway = _gateway(stub)
    with pytest.raises(LedgerError, match="non-object"):
        await gateway.read_cycle_record(1)
    await gateway.close()


@pytest.mark.asyncio
async def test_non_object_receipt_becomes_ledger_error() -> None:
    stub = RpcStub({"eth_getTransactionReceipt": ["not", "a", "receipt"]})
    gateway = _gateway(stub)
    with pytest.raises(LedgerError, match="Malformed receipt"):
        await gateway.await_confirmation(
            TransactionHandle(action=LedgerAction.LOCK_TARGETING, tx_hash=TX_HASH)
        )
    await gateway.close()


@pytest.mark.asyncio
async def test_orchestrator_fails_cleanly_on_null_ledger_body() -> None:
    clock = FakeClock(now=at_hour(21))
    gateway = _gateway(RpcStub({"eth_call": _null_body}), clock=clock)
    orchestrator = DailyCycleOrchestrator(
        gateway, now=clock.wall, sleep=clock.sleep, monotonic=clock.monotonic
    )

    result = await orchestrator.run()
    await gateway.close()

    assert result.status is RunStatus.FAILED
    assert result.error is not None
    assert result.error.phase == "locked"
    assert result.error.submitted is False


@pytest.mark.asyncio
async def test_malformed_receipt_after_submit_is_pending() -> None:
    clock = FakeClock(now=at_hour(21))
    stub = RpcStub(
        {
            "eth_call": "0x"
            + _record_bytes(
                locked=False, requested=False, coordinates_set=False, coords=(0, 0, 0)
            ).hex(),
            "eth_getTransactionCount": "0x0",
            "eth_gasPrice": "0x1",
            "eth_estimateGas": "0x5208",
            "eth_sendRawTransaction": TX_HASH,
            "eth_getTransactionReceipt": "garbage",
        }
    )
    gateway = _gateway(stub, clock=clock)
    orchestrator = DailyCycleOrchestrator(
        gateway, now=clock.wall, sleep=clock.sleep, monotonic=clock.monotonic
    )

    result = await orchestrator.run()
    await gateway.close()

    assert result.status is RunStatus.PENDING
    assert result.submitted
    assert result.tx_hash == TX_HASH
