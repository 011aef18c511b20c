"""Ledger gateway for the game contract.

This module is the only place that knows how the daily cycle is stored on
chain. It provides:

- The `LedgerGateway` protocol the orchestrator depends on
- Value types for actions, transaction handles and cycle records
- `JsonRpcLedgerGateway`, an EVM JSON-RPC implementation over httpx that
  signs transactions locally with the configured server key
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import httpx
from eth_abi import decode, encode
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from impact_cycle.core.errors import (
    ConfigurationError,
    CoordinateValidationError,
    LedgerError,
)
from impact_cycle.core.settings import settings
from impact_cycle.services.coordinates import Coordinates
from impact_cycle.services.phase import LOCK_ACTION, OUTCOME_ACTION, STRIKE_ACTION

# Configure logger for this module
logger = logging.getLogger(__name__)

HTTP_BAD_REQUEST = 400
GAS_BUFFER_NUMERATOR = 12
GAS_BUFFER_DENOMINATOR = 10

CYCLE_RECORD_SIGNATURE = "dailyCycles(uint256)"
CYCLE_RECORD_TYPES = [
    "bool",  # targetingLocked
    "bool",  # vrfRequested
    "bool",  # coordinatesSet
    "uint8",  # winningX
    "uint8",  # winningY
    "uint8",  # winningZ
    "uint256",  # participantCount
    "uint256",  # totalFees
    "bool",  # resetCompleted
]


class LedgerAction(str, Enum):
    """State-changing contract calls issued by the orchestrator."""

    LOCK_TARGETING = LOCK_ACTION
    REQUEST_WINNING_COORDINATES = STRIKE_ACTION
    RESET_DAILY_CYCLE = OUTCOME_ACTION

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(f"{self.value}()")


class ConfirmationStatus(str, Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"
    # No receipt within the wait bound; the transaction may still land.
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TransactionHandle:
    action: LedgerAction
    tx_hash: str


@dataclass(frozen=True)
class CycleRecord:
    """Snapshot of one day's cycle as stored on the ledger."""

    day: int
    targeting_locked: bool = False
    randomness_requested: bool = False
    coordinates_set: bool = False
    winning_coordinates: Coordinates | None = None
    participant_count: int = 0
    total_fees: int = 0
    reset_completed: bool = False


class LedgerGateway(Protocol):
    """Operations the orchestrator is allowed to perform against the ledger."""

    async def submit(self, action: LedgerAction) -> TransactionHandle: ...

    async def await_confirmation(self, handle: TransactionHandle) -> ConfirmationStatus: ...

    async def read_cycle_record(self, day: int) -> CycleRecord: ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable configuration for ledger operations."""

    rpc_url: str
    contract_address: str | None
    signer_private_key: str | None
    chain_id: int | None
    timeout_seconds: float
    receipt_timeout_seconds: float
    receipt_poll_seconds: float


def load_ledger_config() -> LedgerConfig:
    """Build configuration object from global settings."""

    return LedgerConfig(
        rpc_url=settings.ledger_rpc_url,
        contract_address=settings.ledger_contract_address,
        signer_private_key=settings.ledger_signer_private_key,
        chain_id=settings.ledger_chain_id,
        timeout_seconds=float(settings.ledger_http_timeout_seconds),
        receipt_timeout_seconds=float(settings.ledger_receipt_timeout_seconds),
        receipt_poll_seconds=float(settings.ledger_receipt_poll_seconds),
    )


def _hex_to_int(value: object) -> int:
    if not isinstance(value, str):
        raise LedgerError(f"Expected a hex quantity, got {value!r}")
    try:
        return int(value, 16)
    except ValueError as err:
        raise LedgerError(f"Malformed hex quantity {value!r}") from err


def _hex_to_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    except ValueError as err:
        raise LedgerError(f"Malformed hex data {value[:20]!r}") from err


def decode_cycle_record(day: int, raw: bytes) -> CycleRecord:
    """Decode the `dailyCycles(uint256)` return data."""
    try:
        (
            locked,
            requested,
            coordinates_set,
            win_x,
            win_y,
            win_z,
            participants,
            fees,
            reset_completed,
        ) = decode(CYCLE_RECORD_TYPES, raw)
    except Exception as err:
        raise LedgerError(f"Malformed cycle record for day {day}: {err}") from err

    winning: Coordinates | None = None
    if coordinates_set:
        try:
            winning = Coordinates(int(win_x), int(win_y), int(win_z))
        except CoordinateValidationError as err:
            raise LedgerError(f"Ledger reported out-of-range winning coordinates: {err}") from err

    return CycleRecord(
        day=day,
        targeting_locked=bool(locked),
        randomness_requested=bool(requested),
        coordinates_set=bool(coordinates_set),
        winning_coordinates=winning,
        participant_count=int(participants),
        total_fees=int(fees),
        reset_completed=bool(reset_completed),
    )


class JsonRpcLedgerGateway:
    """EVM JSON-RPC implementation of `LedgerGateway`."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or load_ledger_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._request_ids = itertools.count(1)
        self._sleep = sleep
        self._monotonic = monotonic
        self._account: LocalAccount | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _contract_address(self) -> str:
        if not self.config.contract_address:
            raise ConfigurationError("LEDGER_CONTRACT_ADDRESS not configured")
        try:
            return to_checksum_address(self.config.contract_address)
        except ValueError as err:
            raise ConfigurationError(f"Invalid LEDGER_CONTRACT_ADDRESS: {err}") from err

    def _signer(self) -> LocalAccount:
        if self._account is None:
            if not self.config.signer_private_key:
                raise ConfigurationError("LEDGER_SIGNER_PRIVATE_KEY not configured")
            try:
                self._account = Account.from_key(self.config.signer_private_key)
            except (ValueError, TypeError) as err:
                raise ConfigurationError("LEDGER_SIGNER_PRIVATE_KEY is not a valid key") from err
        return self._account

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        client = await self._ensure_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            response = await client.post(self.config.rpc_url, json=payload)
        except httpx.HTTPError as exc:
            raise LedgerError(f"Ledger request {method} failed: {exc}") from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            raise LedgerError(f"Ledger responded with {response.status_code} to {method}")

        try:
            body = response.json()
        except ValueError as exc:
            raise LedgerError(f"Ledger returned non-JSON body for {method}") from exc

        if not isinstance(body, dict):
            raise LedgerError(f"Ledger returned a non-object body for {method}")
        if body.get("error"):
            error = body["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise LedgerError(f"Ledger rejected {method}: {message}")
        return body.get("result")

    async def _chain_id(self) -> int:
        if self.config.chain_id is not None:
            return self.config.chain_id
        return _hex_to_int(await self._rpc("eth_chainId", []))

    async def submit(self, action: LedgerAction) -> TransactionHandle:
        """Sign and broadcast `action`; returns as soon as the node accepts it."""
        contract = self._contract_address()
        account = self._signer()
        data = "0x" + action.selector.hex()

        nonce = _hex_to_int(
            await self._rpc("eth_getTransactionCount", [account.address, "pending"])
        )
        gas_price = _hex_to_int(await self._rpc("eth_gasPrice", []))
        estimated_gas = _hex_to_int(
            await self._rpc(
                "eth_estimateGas",
                [{"from": account.address, "to": contract, "data": data}],
            )
        )
        transaction = {
            "to": contract,
            "data": data,
            "value": 0,
            "nonce": nonce,
            "gas": estimated_gas * GAS_BUFFER_NUMERATOR // GAS_BUFFER_DENOMINATOR,
            "gasPrice": gas_price,
            "chainId": await self._chain_id(),
        }
        signed = account.sign_transaction(transaction)
        raw = "0x" + bytes(signed.raw_transaction).hex()
        tx_hash = await self._rpc("eth_sendRawTransaction", [raw])
        if not isinstance(tx_hash, str):
            raise LedgerError(f"Unexpected eth_sendRawTransaction result: {tx_hash!r}")
        logger.info("Submitted %s as %s (nonce %d)", action.value, tx_hash, nonce)
        return TransactionHandle(action=action, tx_hash=tx_hash)

    async def await_confirmation(self, handle: TransactionHandle) -> ConfirmationStatus:
        """Poll for the transaction receipt until it appears or the bound elapses."""
        deadline = self._monotonic() + self.config.receipt_timeout_seconds
        while True:
            receipt = await self._rpc("eth_getTransactionReceipt", [handle.tx_hash])
            if receipt:
                if not isinstance(receipt, dict):
                    raise LedgerError(f"Malformed receipt for {handle.tx_hash}: {receipt!r}")
                status = _hex_to_int(receipt.get("status", "0x0"))
                if status == 1:
                    return ConfirmationStatus.CONFIRMED
                logger.error("Transaction %s for %s reverted", handle.tx_hash, handle.action.value)
                return ConfirmationStatus.FAILED

            remaining = deadline - self._monotonic()
            if remaining <= 0:
                logger.warning(
                    "No receipt for %s after %.0fs",
                    handle.tx_hash,
                    self.config.receipt_timeout_seconds,
                )
                return ConfirmationStatus.UNKNOWN
            await self._sleep(min(self.config.receipt_poll_seconds, remaining))

    async def read_cycle_record(self, day: int) -> CycleRecord:
        """Read the `dailyCycles(day)` struct from the contract."""
        contract = self._contract_address()
        selector = function_signature_to_4byte_selector(CYCLE_RECORD_SIGNATURE)
        data = "0x" + (selector + encode(["uint256"], [day])).hex()
        result = await self._rpc("eth_call", [{"to": contract, "data": data}, "latest"])
        if not isinstance(result, str):
            raise LedgerError(f"Unexpected eth_call result for day {day}: {result!r}")
        return decode_cycle_record(day, _hex_to_bytes(result))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def get_ledger_gateway() -> LedgerGateway:
    """Return a gateway built from the current settings."""
    return JsonRpcLedgerGateway()
