from __future__ import annotations

from typing import Iterable, List, Optional

from .constants import HYSTERESIS_MS, JITTER_MIN
from .models import Bucket, Sample


def stabilize(
    samples: Iterable[Sample],
    jitter_min: float = JITTER_MIN,
    hysteresis_ms: int = HYSTERESIS_MS,
) -> List[Sample]:
    """Drop samples that are numeric jitter or a too-brief bucket change.

    Each sample is compared with the last *kept* sample, not its immediate
    neighbour, so a slow drift still gets through once it adds up. Undefined
    samples are skipped.
    """
    out: List[Sample] = []
    prev: Optional[Sample] = None
    for cur in samples:
        if cur.age_minutes is None:
            continue
        if prev is None:
            out.append(cur)
            prev = cur
            continue
        if abs(cur.age_minutes - prev.age_minutes) < jitter_min:
            continue
        if Bucket.of(cur.age_minutes) is not Bucket.of(prev.age_minutes) and (cur.t - prev.t) < hysteresis_ms:
            continue
        out.append(cur)
        prev = cur
    return out
