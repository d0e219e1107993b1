"""Named pipeline constants shared by every call site."""

from __future__ import annotations

MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS

SAMPLE_STEP_MS = 5 * MINUTE_MS
JITTER_MIN = 0.5
HYSTERESIS_MS = 90_000

ENTRANCE_JUMP_MIN_MS = 4 * MINUTE_MS
ENTRANCE_YOUNG_MAX_MS = 20 * MINUTE_MS

# Upper edges (minutes) of Fresh, Warm and Stale; Cold is open-ended.
FRESH_MAX_MIN = 15
WARM_MAX_MIN = 30
STALE_MAX_MIN = 60

WIDTH_MENU_HOURS = (6, 24, 72, 168)
DEFAULT_WIDTH_HOURS = 6
PAN_STEP_MS = HOUR_MS
WHEEL_PAN_STEP_MS = 30 * MINUTE_MS

SCALE_PERCENTILE = 0.9
SCALE_HEADROOM_MIN = 10
SCALE_GRID_MIN = 5
SCALE_MIN = 15
SCALE_MAX = 180

# Offset of a synthetic closing point before a bucket transition.
CLOSING_EPSILON_MS = 1
# Keeps a clamped closing value off the lower edge of its bucket.
CLOSING_VALUE_EPSILON_MIN = 0.01

DEFAULT_TIMEZONE = "Europe/Kyiv"
DEFAULT_RANGE_DAYS = 7
