from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

from ..config import EntranceConfig, TimelineConfig
from .bands import BandedSeries, overview_series, split_bands
from .entrances import entries_by_hour, last_entrance_at
from .models import HourCount, Observation, Sample, SeriesPoint
from .resample import build_samples
from .scale import signed_max
from .stabilize import stabilize
from .window import WindowState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineView:
    """Everything the renderer needs for one snapshot and one window state."""

    visible_from: int
    visible_to: int
    signed_max: int
    overview: List[SeriesPoint]
    bands: BandedSeries

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EntranceView:
    entries_by_hour: List[HourCount]
    last_entrance_at: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def cut_window(stable: Sequence[Sample], visible_from: int, visible_to: int) -> List[Sample]:
    """Kept samples inside the window, anchored at its left edge.

    When the value held at ``visible_from`` was kept earlier, that sample is
    carried in and re-stamped at ``visible_from`` so the bands start at the
    edge like the overview does.
    """
    inside = [s for s in stable if visible_from <= s.t <= visible_to]
    if inside and inside[0].t == visible_from:
        return inside
    anchor: Optional[Sample] = None
    for s in stable:
        if s.t > visible_from:
            break
        anchor = s
    if anchor is None:
        return inside
    return [replace(anchor, t=visible_from)] + inside


def compute_timeline(
    observations: Sequence[Observation],
    range_from: int,
    range_to: int,
    window: WindowState,
    settings: Optional[TimelineConfig] = None,
) -> TimelineView:
    """Resample, stabilize, window, scale and band one snapshot.

    The whole range is stabilized before the window is cut out, so which
    points survive does not depend on where the window starts.
    """
    cfg = settings or TimelineConfig()
    samples = build_samples(observations, range_from, range_to, cfg.sample_step_ms)
    stable = stabilize(samples, cfg.jitter_min, cfg.hysteresis_ms)

    bounds = window.bounds(range_from, range_to)
    windowed = [s for s in samples if s.age_minutes is not None and bounds.contains(s.t)]
    stable_windowed = cut_window(stable, bounds.visible_from, bounds.visible_to)

    view = TimelineView(
        visible_from=bounds.visible_from,
        visible_to=bounds.visible_to,
        signed_max=signed_max(s.age_minutes for s in windowed),
        overview=overview_series(windowed),
        bands=split_bands(stable_windowed, cfg.band_strategy),
    )
    logger.debug(
        "timeline recomputed",
        extra={
            "samples": len(samples),
            "windowed": len(windowed),
            "kept": len(stable_windowed),
            "signed_max": view.signed_max,
        },
    )
    return view


def compute_entrances(
    observations: Sequence[Observation],
    tz: str,
    settings: Optional[EntranceConfig] = None,
) -> EntranceView:
    cfg = settings or EntranceConfig()
    return EntranceView(
        entries_by_hour=entries_by_hour(observations, tz, cfg.jump_min_ms, cfg.young_max_ms),
        last_entrance_at=last_entrance_at(observations, cfg.young_max_ms),
    )
