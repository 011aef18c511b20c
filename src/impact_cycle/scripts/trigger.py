# src/impact_cycle/scripts/trigger.py
"""
Run one step of the daily cycle from a scheduler (cron, systemd timer, ...).

Intended to be invoked once per hour. Each run:
1. Resolves the current phase from the UTC clock
2. Reads the day's cycle record from the ledger
3. Submits the scheduled action if the ledger does not already show it

Exit codes: 0 when nothing failed (including pending randomness),
1 when the ledger action failed, 2 on configuration errors.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from impact_cycle.core.errors import ConfigurationError
from impact_cycle.services.ledger import JsonRpcLedgerGateway
from impact_cycle.services.orchestrator import CycleRunResult, DailyCycleOrchestrator

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

logger = logging.getLogger("impact_cycle.trigger")


def _summarize(result: CycleRunResult) -> dict[str, object]:
    return {
        "day": result.day,
        "hour": result.hour,
        "phase": result.phase.value,
        "action": result.action.value if result.action else None,
        "status": result.status.value,
        "submitted": result.submitted,
        "tx_hash": result.tx_hash,
        "winning_coordinates": (
            result.winning_coordinates.as_dict() if result.winning_coordinates else None
        ),
        "message": result.message,
    }


async def run_once(
    *, max_wait: float | None = None, poll_interval: float | None = None
) -> CycleRunResult:
    """Run a single orchestrator invocation against the configured ledger."""
    gateway = JsonRpcLedgerGateway()
    try:
        orchestrator = DailyCycleOrchestrator(
            gateway, max_wait=max_wait, poll_interval=poll_interval
        )
        return await orchestrator.run()
    finally:
        await gateway.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the scheduled daily cycle step")
    parser.add_argument(
        "--max-wait",
        type=float,
        default=None,
        help="Seconds to wait for randomness fulfillment (default from settings)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between fulfillment polls (default from settings)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = asyncio.run(run_once(max_wait=args.max_wait, poll_interval=args.poll_interval))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG

    print(json.dumps(_summarize(result)))
    if not result.ok:
        logger.error("Daily cycle step failed: %s", result.error)
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
