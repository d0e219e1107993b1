from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .constants import MINUTE_MS
from .models import Observation


@dataclass(frozen=True)
class AgePoint:
    captured_at: int
    age_minutes: int
    last_seen_at: int


@dataclass(frozen=True)
class Kpis:
    latest_last_seen_at: Optional[int]
    minutes_since_last_seen: Optional[int]
    observations: int
    online_periods: int
    online_minutes: int


def age_series(observations: Iterable[Observation]) -> List[AgePoint]:
    """Age at capture per observation, keeping only points where the age changed."""
    out: List[AgePoint] = []
    prev: Optional[int] = None
    for o in observations:
        age = max(0, round((o.captured_at - o.last_seen_at) / MINUTE_MS))
        if age != prev:
            out.append(AgePoint(captured_at=o.captured_at, age_minutes=age, last_seen_at=o.last_seen_at))
        prev = age
    return out


def summarize(
    observations: Sequence[Observation],
    latest_last_seen_at: Optional[int] = None,
    period_durations_sec: Sequence[float] = (),
) -> Kpis:
    ages = age_series(observations)
    return Kpis(
        latest_last_seen_at=latest_last_seen_at,
        minutes_since_last_seen=ages[-1].age_minutes if ages else None,
        observations=len(observations),
        online_periods=len(period_durations_sec),
        online_minutes=int(sum(period_durations_sec) // 60),
    )
