"""Numeric helpers."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +inf (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))
