"""Wire records returned by the upstream presence API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class LastSeenChange(_Wire):
    captured_at: datetime
    last_seen_at: datetime


class LatestStatus(_Wire):
    captured_at: Optional[datetime] = None
    is_online: Optional[bool] = None
    kind: Optional[str] = None
    last_seen_at: Optional[datetime] = None


class HeatPoint(_Wire):
    hour_kyiv: int
    online_points: int


class OnlinePeriod(_Wire):
    online_from: datetime
    online_to: datetime
    duration_sec: float
