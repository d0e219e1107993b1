from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from .constants import ENTRANCE_JUMP_MIN_MS, ENTRANCE_YOUNG_MAX_MS
from .models import EntranceEvent, HourCount, Observation


def hour_in_zone(ts_ms: int, tz: Union[str, ZoneInfo]) -> int:
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).astimezone(zone).hour


def age_at_capture(o: Observation) -> int:
    return max(0, o.captured_at - o.last_seen_at)


def detect_entrances(
    observations: Sequence[Observation],
    tz: Union[str, ZoneInfo],
    jump_min_ms: int = ENTRANCE_JUMP_MIN_MS,
    young_max_ms: int = ENTRANCE_YOUNG_MAX_MS,
) -> List[EntranceEvent]:
    """Infer arrivals from the raw, capture-ordered log.

    An observation is an entrance when its last-seen value moved forward by at
    least ``jump_min_ms`` since the previous observation and it was captured
    no more than ``young_max_ms`` after that last-seen instant.
    """
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    events: List[EntranceEvent] = []
    for prev, cur in zip(observations, observations[1:]):
        jump_forward = cur.last_seen_at - prev.last_seen_at
        if jump_forward >= jump_min_ms and age_at_capture(cur) <= young_max_ms:
            events.append(EntranceEvent(at_last_seen=cur.last_seen_at, hour_of_day=hour_in_zone(cur.last_seen_at, zone)))
    return events


def entries_by_hour(
    observations: Sequence[Observation],
    tz: Union[str, ZoneInfo],
    jump_min_ms: int = ENTRANCE_JUMP_MIN_MS,
    young_max_ms: int = ENTRANCE_YOUNG_MAX_MS,
) -> List[HourCount]:
    """Entrance counts for every hour 0..23 of the civil day, zero-filled."""
    counts = [0] * 24
    for event in detect_entrances(observations, tz, jump_min_ms, young_max_ms):
        counts[event.hour_of_day] += 1
    return [HourCount(hour=h, count=c) for h, c in enumerate(counts)]


def last_entrance_at(
    observations: Sequence[Observation],
    young_max_ms: int = ENTRANCE_YOUNG_MAX_MS,
) -> Optional[int]:
    """Latest last-seen instant among observations caught while still fresh.

    This does not require a forward jump, so it can differ from the newest
    event in the hourly histogram.
    """
    fresh = [o.last_seen_at for o in observations if age_at_capture(o) <= young_max_ms]
    return max(fresh) if fresh else None
