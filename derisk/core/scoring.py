"""Numeric helpers shared by every scoring engine."""

import math


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round halves away from zero for positive values (2.5 -> 3, not 2)."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def round_score(value: float) -> int:
    """Round a score to the nearest integer, halves up."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float, low: float = 0, high: float = 100) -> int:
    """Round and clamp a score into [low, high]. NaN degrades to low."""
    if value != value:
        return int(low)
    return int(max(low, min(high, round_score(value))))
