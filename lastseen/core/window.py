from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Sequence

from .constants import DEFAULT_WIDTH_HOURS, HOUR_MS, WIDTH_MENU_HOURS
from .models import Window


def clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


@dataclass(frozen=True)
class WindowState:
    """Zoom level and requested right edge of the visible window.

    The state is never corrected: ``end`` may lie anywhere after repeated
    pans, and only :meth:`bounds` clamps it into the data range. Operations
    return a new state so the interactive shell owns every change.
    """

    width_ms: int
    end: int

    @classmethod
    def initial(cls, range_to: int, width_hours: int = DEFAULT_WIDTH_HOURS) -> "WindowState":
        return cls(width_ms=width_hours * HOUR_MS, end=range_to)

    @property
    def width_hours(self) -> float:
        return self.width_ms / HOUR_MS

    def pan(self, delta_ms: int) -> "WindowState":
        return replace(self, end=self.end + delta_ms)

    def set_width(
        self,
        hours: int,
        range_to: int,
        menu: Sequence[int] = WIDTH_MENU_HOURS,
    ) -> "WindowState":
        if hours not in menu:
            raise ValueError(f"width {hours}h is not one of {list(menu)}")
        return WindowState(width_ms=hours * HOUR_MS, end=range_to)

    def bounds(self, range_from: int, range_to: int) -> Window:
        clamped_end = clamp(self.end, range_from + self.width_ms, range_to)
        return Window(visible_from=max(range_from, clamped_end - self.width_ms), visible_to=clamped_end)

    def to_dict(self) -> Dict[str, int]:
        return {"width_ms": self.width_ms, "end": self.end}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WindowState":
        return cls(width_ms=int(data["width_ms"]), end=int(data["end"]))
