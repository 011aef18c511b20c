"""Coordinate validation, match counting and battery grouping."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from impact_cycle.core.errors import CoordinateValidationError

COORDINATE_MIN = 0
COORDINATE_MAX = 10
BATTERY_SIZE = 10
MAX_INPUT_LENGTH = 1000

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _is_axis_value(value: Any) -> bool:
    # bool is an int subclass; True must not pass as 1.
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and COORDINATE_MIN <= value <= COORDINATE_MAX
    )


def validate_coordinate(x: Any, y: Any, z: Any) -> bool:
    """Return True iff all three axes are integers in the closed range [0, 10]."""
    return _is_axis_value(x) and _is_axis_value(y) and _is_axis_value(z)


@dataclass(frozen=True)
class Coordinates:
    """A point on the 11x11x11 targeting grid."""

    x: int
    y: int
    z: int

    def __post_init__(self) -> None:
        if not validate_coordinate(self.x, self.y, self.z):
            raise CoordinateValidationError(
                f"Coordinates must be integers in [{COORDINATE_MIN}, {COORDINATE_MAX}]: "
                f"({self.x!r}, {self.y!r}, {self.z!r})"
            )

    def as_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "z": self.z}


def count_matches(a: Coordinates, b: Coordinates) -> int:
    """Count the axes on which two coordinates agree (0 to 3)."""
    return int(a.x == b.x) + int(a.y == b.y) + int(a.z == b.z)


def assign_battery(join_index: int) -> int:
    """Return the display battery for a player's zero-based join position.

    Raises:
        CoordinateValidationError: If `join_index` is negative or not an integer.
    """
    if not isinstance(join_index, int) or isinstance(join_index, bool) or join_index < 0:
        raise CoordinateValidationError(
            f"join_index must be a non-negative integer, got {join_index!r}"
        )
    return join_index // BATTERY_SIZE


def sanitize_input(text: str) -> str:
    """Trim surrounding whitespace and cap free-form input length."""
    return text.strip()[:MAX_INPUT_LENGTH]


def validate_transaction(to: str, value: int | None = None) -> bool:
    """Basic shape check for a client-proposed transaction."""
    if not to or not _ADDRESS_RE.match(to):
        return False
    if value is not None and value < 0:
        return False
    return True
