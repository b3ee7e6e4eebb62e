"""
Rounding helpers.
"""
import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves rounded towards +infinity.

    Python's built-in ``round`` rounds halves to even, which would shift
    thresholds such as ``round(2.5)`` in the advisory heuristics.

    Args:
        value: Number to round

    Returns:
        Rounded integer
    """
    return int(math.floor(value + 0.5))
