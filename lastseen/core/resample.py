from __future__ import annotations

from typing import List, Sequence

from .constants import MINUTE_MS, SAMPLE_STEP_MS
from .models import Observation, Sample


def age_minutes_at(t: int, last_seen_at: int) -> int:
    return max(0, (t - last_seen_at) // MINUTE_MS)


def build_samples(
    observations: Sequence[Observation],
    range_from: int,
    range_to: int,
    step_ms: int = SAMPLE_STEP_MS,
) -> List[Sample]:
    """Resample the observation log onto a fixed grid by forward fill.

    Grid points are ``range_from, range_from + step_ms, ...`` up to and
    including ``range_to``. At each point the last-seen value is the one
    reported by the latest observation captured at or before it; points
    before the first capture get ``age_minutes=None``.

    ``observations`` must already be sorted by ``captured_at``.
    """
    if step_ms <= 0:
        raise ValueError("step_ms must be positive")
    if not observations:
        return []

    first_capture = observations[0].captured_at
    i = 0
    while i + 1 < len(observations) and observations[i + 1].captured_at <= range_from:
        i += 1
    current_last_seen = observations[i].last_seen_at

    out: List[Sample] = []
    t = range_from
    while t <= range_to:
        while i + 1 < len(observations) and observations[i + 1].captured_at <= t:
            i += 1
            current_last_seen = observations[i].last_seen_at
        if t < first_capture:
            out.append(Sample(t=t, age_minutes=None, last_seen_at=current_last_seen))
        else:
            out.append(Sample(t=t, age_minutes=age_minutes_at(t, current_last_seen), last_seen_at=current_last_seen))
        t += step_ms
    return out
