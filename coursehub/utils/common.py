"""
Small numeric helpers shared by schemas and services.
"""

import math


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp_percent(value: object) -> int:
    """Coerce to an int in [0, 100]; anything non-numeric becomes 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(0, min(100, round_half_up(value)))


def completion_percent(done: int, total: int) -> int:
    """round(100 * done / total) clamped to [0, 100]; an empty course is 0%."""
    if total <= 0:
        return 0
    return clamp_percent(100 * done / total)
