from __future__ import annotations

import math
from typing import Iterable, Optional

from .constants import SCALE_GRID_MIN, SCALE_HEADROOM_MIN, SCALE_MAX, SCALE_MIN, SCALE_PERCENTILE


def percentile_90(values: Iterable[float]) -> float:
    """Nearest-rank 90th percentile: element ``floor(0.9 * (n - 1))`` of the sorted values."""
    ordered = sorted(values)
    if not ordered:
        return 0.0
    return ordered[math.floor(SCALE_PERCENTILE * (len(ordered) - 1))]


def snap_to_grid(value: float, grid: int = SCALE_GRID_MIN, low: int = SCALE_MIN, high: int = SCALE_MAX) -> int:
    """Round up to the grid and clamp into ``[low, high]``."""
    return max(low, min(high, math.ceil(value / grid) * grid))


def signed_max(ages: Iterable[Optional[float]]) -> int:
    """Symmetric vertical bound for the signed staleness axis.

    Follows the 90th percentile of in-window ages plus headroom, in 5-minute
    steps between 15 and 180 so the axis neither flickers nor blows up on
    outliers. Undefined ages are ignored; no data gives the minimum.
    """
    p90 = percentile_90(a for a in ages if a is not None)
    y_max = snap_to_grid(p90 + SCALE_HEADROOM_MIN)
    return snap_to_grid(y_max)
