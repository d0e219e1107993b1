from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from ..core.normalize import normalize_observations, to_epoch_ms
from ..core.models import Observation
from .api_client import FetchError, PresenceApiClient
from .models import HeatPoint, LatestStatus, OnlinePeriod


logger = logging.getLogger(__name__)


class SnapshotError(RuntimeError):
    """One of the queries for a snapshot failed; nothing was published."""


@dataclass(frozen=True)
class Snapshot:
    """Immutable result of one (identity, range) fetch."""

    identity: str
    range_from: int
    range_to: int
    observations: Tuple[Observation, ...]
    latest: Optional[LatestStatus] = None
    heatmap: Tuple[HeatPoint, ...] = ()
    periods: Tuple[OnlinePeriod, ...] = ()
    generation: int = field(default=0, compare=False)


def query_range(now: Optional[datetime] = None, days: int = 7) -> Tuple[datetime, datetime]:
    to = now or datetime.now(timezone.utc)
    return to - timedelta(days=days), to


def load_snapshot(
    client: PresenceApiClient,
    identity: str,
    range_from: datetime,
    range_to: datetime,
    generation: int = 0,
) -> Snapshot:
    """Run the four queries for one identity; all succeed or none is used."""
    try:
        latest = client.latest(identity)
        heat = client.heatmap(identity, range_from, range_to)
        periods = client.periods(identity, range_from, range_to)
        changes = client.last_seen_changes(identity, range_from, range_to)
    except FetchError as exc:
        logger.error("snapshot rejected", extra={"ident": identity, "error": str(exc)})
        raise SnapshotError(str(exc)) from exc

    return Snapshot(
        identity=identity,
        range_from=to_epoch_ms(range_from),
        range_to=to_epoch_ms(range_to),
        observations=tuple(normalize_observations(changes)),
        latest=latest,
        heatmap=tuple(heat),
        periods=tuple(periods),
        generation=generation,
    )


class SnapshotStore:
    """Recent snapshots keyed by generation; per client, newer fetches win.

    A fetch calls :meth:`begin` with its client id for a generation number
    before it starts and :meth:`publish` when it completes. Each client only
    ever sees its own newest generation: a result overtaken by a later
    :meth:`begin` from the same client is dropped, and renderers use
    :meth:`is_current` to discard work done on an older snapshot. Other
    clients are unaffected. At most ``capacity`` snapshots are held, least
    recently used first out.
    """

    def __init__(self, capacity: int = 16) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._lock = threading.RLock()
        self._generation = 0
        self._latest: Dict[str, int] = {}
        self._owners: Dict[int, str] = {}
        self._snapshots: "OrderedDict[int, Snapshot]" = OrderedDict()

    def begin(self, client: str = "") -> int:
        with self._lock:
            self._generation += 1
            self._latest[client] = self._generation
            self._owners[self._generation] = client
            self._trim()
            return self._generation

    def publish(self, generation: int, snapshot: Snapshot) -> bool:
        with self._lock:
            client = self._owners.get(generation)
            if client is None or self._latest.get(client) != generation:
                logger.info("discarding superseded snapshot",
                            extra={"generation": generation, "client": client})
                return False
            self._snapshots[generation] = snapshot
            self._snapshots.move_to_end(generation)
            self._trim()
            return True

    def get(self, generation: int) -> Optional[Snapshot]:
        with self._lock:
            snap = self._snapshots.get(generation)
            if snap is not None:
                self._snapshots.move_to_end(generation)
            return snap

    def is_current(self, generation: int) -> bool:
        with self._lock:
            client = self._owners.get(generation)
            return (
                generation in self._snapshots
                and client is not None
                and self._latest.get(client) == generation
            )

    def _trim(self) -> None:
        while len(self._snapshots) > self.capacity:
            self._snapshots.popitem(last=False)
        # owners of generations that can no longer be published or read
        live = set(self._snapshots) | set(self._latest.values())
        for gen in [g for g in self._owners if g not in live]:
            del self._owners[gen]
