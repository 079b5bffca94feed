"""Small numeric helpers shared by the analysis and aggregation code."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's round() uses banker's rounding (round(0.5) == 0), which
    makes 50.5% display as 50%.
    """
    return int(math.floor(value + 0.5))
