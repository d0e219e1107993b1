from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Protocol, Union

from .models import Observation


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
Instant = Union[datetime, int]


class ChangeRecord(Protocol):
    captured_at: Instant
    last_seen_at: Instant


def to_epoch_ms(value: Instant) -> int:
    """Integer epoch milliseconds for a datetime (naive means UTC) or an int."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - EPOCH) // timedelta(milliseconds=1)
    return int(value)


def normalize_observations(records: Iterable[ChangeRecord]) -> List[Observation]:
    """Sort records by capture time on a single millisecond timescale.

    Nothing is dropped or merged: duplicates and non-monotonic last-seen
    values are kept as reported. The sort is stable, so records sharing a
    capture time keep their upstream order.
    """
    observations = [
        Observation(captured_at=to_epoch_ms(r.captured_at), last_seen_at=to_epoch_ms(r.last_seen_at))
        for r in records
    ]
    observations.sort(key=lambda o: o.captured_at)
    return observations
