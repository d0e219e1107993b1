from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .constants import CLOSING_VALUE_EPSILON_MIN, FRESH_MAX_MIN, STALE_MAX_MIN, WARM_MAX_MIN


@dataclass(frozen=True)
class Observation:
    """One raw record: when it was captured and the last-seen value it reported.

    Both fields are integer epoch milliseconds.
    """

    captured_at: int
    last_seen_at: int


@dataclass(frozen=True)
class Sample:
    t: int
    age_minutes: Optional[float]  # None before the first observation
    last_seen_at: int

    @property
    def defined(self) -> bool:
        return self.age_minutes is not None


class Bucket(Enum):
    FRESH = "fresh"
    WARM = "warm"
    STALE = "stale"
    COLD = "cold"

    @classmethod
    def of(cls, age_minutes: float) -> "Bucket":
        # Closed upper edges: 15 is Fresh, 15.01 is Warm.
        if age_minutes <= FRESH_MAX_MIN:
            return cls.FRESH
        if age_minutes <= WARM_MAX_MIN:
            return cls.WARM
        if age_minutes <= STALE_MAX_MIN:
            return cls.STALE
        return cls.COLD

    @property
    def points_up(self) -> bool:
        return self in (Bucket.FRESH, Bucket.WARM)

    @property
    def age_range(self) -> Tuple[float, Optional[float]]:
        """Inclusive ``(low, high)`` ages that stay strictly inside this bucket."""
        if self is Bucket.FRESH:
            return 0.0, float(FRESH_MAX_MIN)
        if self is Bucket.WARM:
            return FRESH_MAX_MIN + CLOSING_VALUE_EPSILON_MIN, float(WARM_MAX_MIN)
        if self is Bucket.STALE:
            return WARM_MAX_MIN + CLOSING_VALUE_EPSILON_MIN, float(STALE_MAX_MIN)
        return STALE_MAX_MIN + CLOSING_VALUE_EPSILON_MIN, None

    def clamp(self, age_minutes: float) -> float:
        low, high = self.age_range
        age = max(low, age_minutes)
        return age if high is None else min(high, age)


BUCKET_ORDER: Tuple[Bucket, ...] = (Bucket.FRESH, Bucket.WARM, Bucket.STALE, Bucket.COLD)


def signed_value(age_minutes: float) -> float:
    """Age on a single signed axis: up for Fresh/Warm, down for Stale/Cold."""
    return age_minutes if Bucket.of(age_minutes).points_up else -age_minutes


@dataclass(frozen=True)
class SeriesPoint:
    """One plotted point; ``value`` is None where the series has a gap."""

    t: int
    value: Optional[float]
    last_seen_at: int


@dataclass(frozen=True)
class Window:
    visible_from: int
    visible_to: int

    @property
    def width_ms(self) -> int:
        return self.visible_to - self.visible_from

    def contains(self, t: int) -> bool:
        return self.visible_from <= t <= self.visible_to


@dataclass(frozen=True)
class EntranceEvent:
    at_last_seen: int
    hour_of_day: int


@dataclass(frozen=True)
class HourCount:
    hour: int
    count: int
