"""Burn-rate tiers and entry-fee split.

Fee amounts are integer base units. Dev rake and burn are floored and any
residual unit lands in the jackpot, so a split always sums to the total.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Final

from impact_cycle.core.errors import CoordinateValidationError

TOTAL_SUPPLY: Final[int] = 1_000_000_000
ENTRY_FEE: Final[int] = 1_000
DECIMALS: Final[int] = 18

# Rates are basis points (1/100 of a percent) so shares stay exact integers.
BASIS_POINTS: Final[int] = 10_000
DEV_RAKE_BPS: Final[int] = 800

# (exclusive participant ceiling, burn bps); the last tier has no ceiling.
BURN_TIERS: Final[tuple[tuple[int | None, int], ...]] = (
    (1_000, 500),
    (5_000, 300),
    (20_000, 150),
    (None, 50),
)


@dataclass(frozen=True)
class FeeSplit:
    jackpot: int
    dev_rake: int
    burn: int

    @property
    def total(self) -> int:
        return self.jackpot + self.dev_rake + self.burn


@dataclass(frozen=True)
class Tokenomics:
    """Percentages and amounts for one cycle's collected fees."""

    total_fees: int
    participant_count: int
    burn_rate: float
    jackpot_percentage: float
    dev_rake_percentage: float
    burn_percentage: float
    split: FeeSplit

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


def _require_non_negative(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise CoordinateValidationError(f"{name} must be a non-negative integer, got {value!r}")


def _burn_bps(participant_count: int) -> int:
    _require_non_negative("participant_count", participant_count)
    for ceiling, rate in BURN_TIERS:
        if ceiling is None or participant_count < ceiling:
            return rate
    raise AssertionError("burn tiers must end with an open tier")  # pragma: no cover


def burn_rate(participant_count: int) -> float:
    """Return the burn percentage for a cycle with `participant_count` players."""
    return _burn_bps(participant_count) / 100


def _floor_share(total: int, bps: int) -> int:
    return total * bps // BASIS_POINTS


def compute_fee_split(total_fees: int, participant_count: int) -> FeeSplit:
    """Split collected fees into jackpot, dev rake and burn."""
    _require_non_negative("total_fees", total_fees)
    dev_rake = _floor_share(total_fees, DEV_RAKE_BPS)
    burn = _floor_share(total_fees, _burn_bps(participant_count))
    return FeeSplit(jackpot=total_fees - dev_rake - burn, dev_rake=dev_rake, burn=burn)


def calculate_tokenomics(total_fees: int, participant_count: int) -> Tokenomics:
    """Return the full percentage breakdown alongside the integer split."""
    burn_bps = _burn_bps(participant_count)
    jackpot_bps = BASIS_POINTS - DEV_RAKE_BPS - burn_bps
    return Tokenomics(
        total_fees=total_fees,
        participant_count=participant_count,
        burn_rate=burn_bps / 100,
        jackpot_percentage=jackpot_bps / 100,
        dev_rake_percentage=DEV_RAKE_BPS / 100,
        burn_percentage=burn_bps / 100,
        split=compute_fee_split(total_fees, participant_count),
    )
