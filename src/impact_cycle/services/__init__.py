# src/impact_cycle/services/__init__.py
"""Game rules and daily cycle services."""

from .coordinates import Coordinates, assign_battery, count_matches, validate_coordinate
from .ledger import JsonRpcLedgerGateway, LedgerAction, LedgerGateway
from .orchestrator import CycleRunResult, DailyCycleOrchestrator, RunStatus
from .phase import Phase, resolve_cycle_day, resolve_phase
from .rate_limit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from .session import verify_session
from .tokenomics import burn_rate, compute_fee_split

__all__ = [
    "Coordinates",
    "validate_coordinate",
    "count_matches",
    "assign_battery",
    "burn_rate",
    "compute_fee_split",
    "Phase",
    "resolve_phase",
    "resolve_cycle_day",
    "LedgerAction",
    "LedgerGateway",
    "JsonRpcLedgerGateway",
    "DailyCycleOrchestrator",
    "CycleRunResult",
    "RunStatus",
    "RateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "verify_session",
]
