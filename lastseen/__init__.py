"""Last-seen staleness timeline package.

Turns a sparse log of ``(captured_at, last_seen_at)`` observations for one
tracked contact into a windowed, bucketed, sign-encoded staleness series and an
hourly histogram of inferred entrances, and renders both on a Dash dashboard.
"""

__all__ = [
    "config",
    "core",
    "data",
    "web",
    "utils",
]
