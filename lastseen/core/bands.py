from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, NamedTuple, Optional

from .constants import CLOSING_EPSILON_MS
from .models import BUCKET_ORDER, Bucket, Sample, SeriesPoint, signed_value


BandStrategy = Literal["closing", "exclusive"]


@dataclass(frozen=True)
class BandedSeries:
    """Four x-aligned series, one per bucket, with gaps outside their bucket."""

    fresh: List[SeriesPoint]
    warm: List[SeriesPoint]
    stale: List[SeriesPoint]
    cold: List[SeriesPoint]

    def by_bucket(self) -> Dict[Bucket, List[SeriesPoint]]:
        return {
            Bucket.FRESH: self.fresh,
            Bucket.WARM: self.warm,
            Bucket.STALE: self.stale,
            Bucket.COLD: self.cold,
        }


class _Row(NamedTuple):
    t: int
    bucket: Bucket
    value: float
    last_seen_at: int


def _rows(samples: Iterable[Sample], close_transitions: bool) -> List[_Row]:
    rows: List[_Row] = []
    prev: Optional[_Row] = None
    prev_age = 0.0
    for s in samples:
        if s.age_minutes is None:
            continue
        bucket = Bucket.of(s.age_minutes)
        if close_transitions and prev is not None and bucket is not prev.bucket:
            close_t = s.t - CLOSING_EPSILON_MS
            if close_t > prev.t:
                age = prev.bucket.clamp(prev_age)
                rows.append(_Row(close_t, prev.bucket, age if prev.bucket.points_up else -age, prev.last_seen_at))
        row = _Row(s.t, bucket, signed_value(s.age_minutes), s.last_seen_at)
        rows.append(row)
        prev = row
        prev_age = s.age_minutes
    return rows


def split_bands(samples: Iterable[Sample], strategy: BandStrategy = "closing") -> BandedSeries:
    """Split a stabilized, windowed series into the Fresh/Warm/Stale/Cold bands.

    ``"exclusive"`` masks every sample into all four series, with a gap in
    the three it does not belong to. ``"closing"`` additionally ends the
    outgoing band one millisecond before each bucket change, so a step-drawn
    line stops at the seam instead of jumping diagonally into the next band.
    In both cases exactly one series holds a value at any timestamp.
    """
    if strategy not in ("closing", "exclusive"):
        raise ValueError(f"unknown band strategy: {strategy!r}")
    rows = _rows(samples, close_transitions=strategy == "closing")
    series: Dict[Bucket, List[SeriesPoint]] = {b: [] for b in BUCKET_ORDER}
    for row in rows:
        for bucket, points in series.items():
            value = row.value if bucket is row.bucket else None
            points.append(SeriesPoint(t=row.t, value=value, last_seen_at=row.last_seen_at))
    return BandedSeries(
        fresh=series[Bucket.FRESH],
        warm=series[Bucket.WARM],
        stale=series[Bucket.STALE],
        cold=series[Bucket.COLD],
    )


def overview_series(samples: Iterable[Sample]) -> List[SeriesPoint]:
    """Unbanded signed series used as the background underlay."""
    return [
        SeriesPoint(t=s.t, value=signed_value(s.age_minutes), last_seen_at=s.last_seen_at)
        for s in samples
        if s.age_minutes is not None
    ]
