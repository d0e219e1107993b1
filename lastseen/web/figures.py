from __future__ import annotations

from typing import List, Optional, Sequence

import pandas as pd
import plotly.graph_objs as go

from ..core.constants import FRESH_MAX_MIN, WARM_MAX_MIN
from ..core.models import Bucket, HourCount, SeriesPoint
from ..core.pipeline import TimelineView
from ..data.models import HeatPoint

# ───────────────────────────── styling ──────────────────────────────
COLORS = {
    'bg': '#0b0f14',
    'grid': '#ffffff14',
    'text_primary': '#e5e7eb',
    'text_secondary': '#9ca3af',
    'overview_line': 'rgba(156,163,175,0.25)',
    'overview_fill': 'rgba(156,163,175,0.08)',
    'zero': 'rgba(255,255,255,0.19)',
}

BAND_STYLE = {
    Bucket.FRESH: ("0–15 min", '#22c55e'),
    Bucket.WARM: ("15–30 min", '#eab308'),
    Bucket.STALE: ("30–60 min", '#f59e0b'),
    Bucket.COLD: ("60+ min", '#ef4444'),
}


def to_local_times(ts_ms: Sequence[int], tz: str) -> pd.DatetimeIndex:
    return pd.to_datetime(list(ts_ms), unit="ms", utc=True).tz_convert(tz)


def format_local(ts_ms: Optional[int], tz: str, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if ts_ms is None:
        return "—"
    return pd.Timestamp(ts_ms, unit="ms", tz="UTC").tz_convert(tz).strftime(fmt)


def _hover_text(points: List[SeriesPoint], tz: str) -> List[str]:
    seen = to_local_times([p.last_seen_at for p in points], tz).strftime("%Y-%m-%d %H:%M")
    return [
        "" if p.value is None else f"age {abs(int(p.value))} min since {s}"
        for p, s in zip(points, seen)
    ]


def _base_layout(fig: go.Figure) -> None:
    fig.update_layout(
        plot_bgcolor=COLORS['bg'],
        paper_bgcolor=COLORS['bg'],
        font=dict(color=COLORS['text_primary'], size=12),
        margin=dict(l=54, r=8, t=10, b=30),
        legend=dict(orientation="h", y=-0.15, font=dict(color=COLORS['text_secondary'])),
        hovermode="x unified",
    )


def empty_figure(message: str = "No data available") -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        xref="paper", yref="paper",
        x=0.5, y=0.5, showarrow=False,
        font=dict(color=COLORS['text_secondary']),
    )
    _base_layout(fig)
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    return fig


def timeline_figure(view: TimelineView, tz: str) -> go.Figure:
    """Signed staleness chart: overview underlay plus four step-drawn bands."""
    fig = go.Figure()
    top = view.signed_max

    # Reference bands: up is recent, down is stale.
    fig.add_hrect(y0=0, y1=FRESH_MAX_MIN, fillcolor="#16a34a", opacity=0.07, line_width=0)
    fig.add_hrect(y0=FRESH_MAX_MIN, y1=WARM_MAX_MIN, fillcolor="#eab308", opacity=0.06, line_width=0)
    fig.add_hrect(y0=-FRESH_MAX_MIN, y1=-WARM_MAX_MIN, fillcolor="#f59e0b", opacity=0.06, line_width=0)
    fig.add_hrect(y0=-WARM_MAX_MIN, y1=-top, fillcolor="#ef4444", opacity=0.06, line_width=0)
    fig.add_hline(y=0, line_color=COLORS['zero'], line_width=1)

    if view.overview:
        fig.add_trace(go.Scatter(
            x=to_local_times([p.t for p in view.overview], tz),
            y=[p.value for p in view.overview],
            mode="lines",
            name="overview",
            line=dict(color=COLORS['overview_line'], width=1, shape="hv"),
            fill="tozeroy",
            fillcolor=COLORS['overview_fill'],
            hoverinfo="skip",
            showlegend=False,
        ))

    for bucket, points in view.bands.by_bucket().items():
        label, color = BAND_STYLE[bucket]
        fig.add_trace(go.Scatter(
            x=to_local_times([p.t for p in points], tz),
            y=[p.value for p in points],
            mode="lines",
            name=label,
            line=dict(color=color, width=2.5, shape="hv"),
            connectgaps=False,
            text=_hover_text(points, tz),
            hovertemplate="%{text}<extra></extra>",
        ))

    _base_layout(fig)
    wide = (view.visible_to - view.visible_from) > 24 * 3_600_000
    fig.update_xaxes(
        range=list(to_local_times([view.visible_from, view.visible_to], tz)),
        gridcolor=COLORS['grid'],
        tickformat="%m-%d %H:%M" if wide else "%d %H:%M",
        tickfont=dict(color=COLORS['text_secondary']),
    )
    step = 15 if top <= 60 else 30
    ticks = [v for v in range(-top, top + 1) if v % step == 0]
    fig.update_yaxes(
        range=[-top, top],
        gridcolor=COLORS['grid'],
        tickvals=ticks,
        ticktext=[f"{abs(v)} min" for v in ticks],
        tickfont=dict(color=COLORS['text_secondary']),
        zeroline=False,
    )
    return fig


def entries_figure(entries: Sequence[HourCount], heat: Sequence[HeatPoint] = ()) -> go.Figure:
    """Bar chart of entrances per hour of the civil day.

    Upstream online points per hour, when given, are overlaid as a line on a
    secondary axis; hours the upstream did not report count as zero.
    """
    fig = go.Figure(go.Bar(
        x=[e.hour for e in entries],
        y=[e.count for e in entries],
        name="entrances",
        marker_color='#22c55e',
        hovertemplate="%{x}:00 — %{y} entrances<extra></extra>",
    ))
    if heat:
        online = [0] * 24
        for point in heat:
            if 0 <= point.hour_kyiv < 24:
                online[point.hour_kyiv] += point.online_points
        fig.add_trace(go.Scatter(
            x=list(range(24)),
            y=online,
            name="online points",
            mode="lines",
            yaxis="y2",
            line=dict(color=COLORS['text_secondary'], width=1.5, shape="spline"),
            hovertemplate="%{x}:00 — %{y} online points<extra></extra>",
        ))
        fig.update_layout(yaxis2=dict(overlaying="y", side="right", rangemode="tozero", showgrid=False,
                                      tickfont=dict(color=COLORS['text_secondary'])))
    _base_layout(fig)
    fig.update_xaxes(
        tickvals=list(range(0, 24, 3)),
        ticktext=[f"{h}:00" for h in range(0, 24, 3)],
        gridcolor=COLORS['grid'],
    )
    fig.update_yaxes(gridcolor=COLORS['grid'], rangemode="tozero")
    return fig
