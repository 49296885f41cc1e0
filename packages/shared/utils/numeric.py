"""
Rounding and number-to-text helpers shared by every derivation step.
"""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal


def round_to(value: float, digits: int = 2) -> float:
    """Fixed-decimal rounding, half-up on the exact binary value."""
    if not math.isfinite(value):
        return 0.0
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_index(value: float) -> int:
    """Clamp to [0, 100] and round to an integer; non-finite input is 0."""
    if not math.isfinite(value):
        return 0
    if value < 0:
        return 0
    if value > 100:
        return 100
    return round_half_up(value)


def normalize_index(value: float, reference: float) -> int:
    if reference <= 0 or value <= 0:
        return 0
    return clamp_index(value / reference * 100)


def format_number(value: float) -> str:
    """Shortest text for a number: 12.0 -> '12', 5.6 -> '5.6'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def average(values: list[float | None]) -> float | None:
    usable = [v for v in values if v is not None]
    if not usable:
        return None
    return round_to(sum(usable) / len(usable), 2)
