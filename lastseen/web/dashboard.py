from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import dash
import dash_bootstrap_components as dbc
import plotly.graph_objs as go
from dash import Dash, Input, Output, ctx, dcc, html
from dash.dependencies import ALL, State
from dash.exceptions import PreventUpdate

from ..config import AppConfig, load_config
from ..core.kpis import summarize
from ..core.normalize import to_epoch_ms
from ..core.pipeline import compute_entrances, compute_timeline
from ..core.window import WindowState
from ..data.api_client import PresenceApiClient
from ..data.identity import apply_identity
from ..data.snapshot import Snapshot, SnapshotError, SnapshotStore, load_snapshot, query_range
from ..utils.logging import bind
from .figures import BAND_STYLE, COLORS, empty_figure, entries_figure, format_local, timeline_figure


logger = logging.getLogger(__name__)

ASSETS = Path(__file__).parent / "assets"

CARD_STYLE = {
    "border": "1px solid rgba(255,255,255,0.1)",
    "borderRadius": "16px",
    "padding": "16px 8px",
    "marginBottom": "24px",
}


def _width_label(hours: int) -> str:
    return f"{hours}h" if hours < 72 or hours % 24 else f"{hours // 24}d"


class DashboardApp:
    def __init__(
        self,
        config: AppConfig,
        app: Dash | None = None,
        client: PresenceApiClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.tz = config.runtime.timezone
        self.client = client or PresenceApiClient.from_config(config)
        self.snapshots = SnapshotStore(config.runtime.snapshot_cache_size)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        if app is None:
            self.app: Dash = dash.Dash(__name__, external_stylesheets=[dbc.themes.DARKLY], assets_folder=str(ASSETS))
        else:
            self.app = app
        self.app.title = "Last seen"
        # evaluated per page load, so every tab gets its own client id
        self.app.layout = self.serve_layout
        self._callbacks()

    # ───────────────────────────── layout ─────────────────────────────
    def serve_layout(self) -> html.Div:
        tl = self.config.runtime.timeline
        return html.Div([
            dcc.Store(id="ident", storage_type="local", data=self.config.env.DEFAULT_IDENT),
            dcc.Store(id="client-id", data=uuid.uuid4().hex),
            dcc.Store(id="snapshot-gen"),
            dcc.Store(id="window-state"),
            dcc.Store(id="wheel-pan"),

            html.Div([
                html.Div([
                    html.H1("Last seen", style={"fontSize": "1.8rem", "fontWeight": 600}),
                    html.P(
                        f"Period: last {self.config.runtime.range_days} days ({self.tz})",
                        style={"color": COLORS['text_secondary']},
                    ),
                ]),
                html.Div([
                    dcc.Input(id="ident-input", type="text", placeholder="@username or phone", debounce=False,
                              style={"padding": "8px 12px", "borderRadius": "12px", "marginRight": "8px"}),
                    dbc.Button("↵", id="ident-apply", color="secondary", title="Apply and reload"),
                ], style={"display": "flex", "alignItems": "end"}),
            ], style={"display": "flex", "justifyContent": "space-between", "flexWrap": "wrap", "gap": "16px",
                      "marginBottom": "24px"}),

            html.Div(id="error-banner"),

            dbc.Row([
                dbc.Col(html.Div([
                    html.H2("Status now", style={"fontSize": "1.1rem"}),
                    html.Div(id="status"),
                ], style=CARD_STYLE), md=4),
                dbc.Col(html.Div([
                    html.H2(f"Entrances by hour ({self.tz})", style={"fontSize": "1.1rem"}),
                    html.Div(id="last-entrance", style={"color": COLORS['text_secondary']}),
                    dcc.Graph(id="entries-graph", figure=empty_figure(), style={"height": "224px"},
                              config={"displayModeBar": False}),
                ], style=CARD_STYLE), md=8),
            ]),

            html.Div(id="kpis"),

            html.Div([
                html.Div([
                    html.Span("Range:", style={"color": COLORS['text_secondary'], "marginRight": "8px"}),
                    *[
                        dbc.Button(_width_label(h), id={"type": "width-btn", "hours": h}, size="sm",
                                   color="light", outline=h != tl.default_width_hours,
                                   style={"marginRight": "4px"})
                        for h in tl.width_menu_hours
                    ],
                ], style={"display": "flex", "justifyContent": "flex-end", "alignItems": "center"}),
                html.H2("When last seen", style={"fontSize": "1.1rem"}),
                html.Div([
                    dbc.Button("← 1h", id="pan-back", size="sm", color="light", outline=True,
                               style={"marginRight": "4px"}),
                    dbc.Button("1h →", id="pan-forward", size="sm", color="light", outline=True),
                ], style={"marginBottom": "8px"}),
                dcc.Loading(dcc.Graph(id="timeline-graph", figure=empty_figure(), style={"height": "320px"},
                                      config={"displayModeBar": False})),
                html.Div([
                    html.Span([
                        html.Span(style={"display": "inline-block", "width": "12px", "height": "12px",
                                         "borderRadius": "2px", "background": color, "marginRight": "4px"}),
                        label,
                    ], style={"marginRight": "12px"})
                    for label, color in BAND_STYLE.values()
                ], style={"fontSize": "0.8rem", "color": COLORS['text_secondary']}),
            ], style=CARD_STYLE),

            html.Footer(f"API: {self.config.env.API_BASE}", style={"color": COLORS['text_secondary']}),
        ], style={"maxWidth": "1024px", "margin": "0 auto", "padding": "16px"})

    # ───────────────────────────── callbacks ─────────────────────────────
    def _callbacks(self) -> None:
        @self.app.callback(
            Output("ident", "data"),
            Input("ident-apply", "n_clicks"),
            Input("ident-input", "n_submit"),
            State("ident-input", "value"),
            State("ident", "data"),
            prevent_initial_call=True,
        )
        def on_apply(_clicks: int | None, _submits: int | None, value: str | None, current: str | None) -> str:
            nxt = apply_identity(value, current or "")
            if nxt is None:
                raise PreventUpdate
            return nxt

        @self.app.callback(Output("ident-input", "value"), Input("ident", "data"))
        def sync_input(ident: str | None) -> str:
            return ident or ""

        @self.app.callback(
            Output("snapshot-gen", "data"), Output("error-banner", "children"),
            Input("ident", "data"),
            State("client-id", "data"),
        )
        def on_ident(ident: str | None, client: str | None):
            return self.load(ident or "", client or "")

        @self.app.callback(
            Output("window-state", "data"),
            Output({"type": "width-btn", "hours": ALL}, "outline"),
            Input("snapshot-gen", "data"),
            Input({"type": "width-btn", "hours": ALL}, "n_clicks"),
            Input("pan-back", "n_clicks"),
            Input("pan-forward", "n_clicks"),
            Input("wheel-pan", "data"),
            State("window-state", "data"),
        )
        def on_window(gen: int | None, _widths: list, _back: int | None, _fwd: int | None,
                      wheel: dict | None, state: dict | None):
            trigger = ctx.triggered_id
            if isinstance(trigger, dict):
                trigger = ("width", int(trigger["hours"]))
            elif trigger == "wheel-pan":
                if not wheel:
                    raise PreventUpdate
                trigger = ("wheel", 1 if wheel.get("direction", 0) > 0 else -1)
            new_state = self.update_window(trigger, state, gen)
            if new_state is None:
                raise PreventUpdate
            width = int(WindowState.from_dict(new_state).width_hours)
            return new_state, [h != width for h in self.config.runtime.timeline.width_menu_hours]

        @self.app.callback(
            Output("timeline-graph", "figure"), Input("snapshot-gen", "data"), Input("window-state", "data"),
        )
        def on_timeline(gen: int | None, state: dict | None) -> go.Figure:
            return self.render_timeline(gen, state)

        @self.app.callback(
            Output("status", "children"),
            Output("entries-graph", "figure"),
            Output("last-entrance", "children"),
            Output("kpis", "children"),
            Input("snapshot-gen", "data"),
        )
        def on_summary(gen: int | None):
            return self.render_summary(gen)

    # ───────────────────────────── handlers ─────────────────────────────
    def load(self, ident: str, client: str = "") -> Tuple[Optional[int], Any]:
        """Fetch a snapshot for ``ident`` on behalf of one browser tab.

        Returns (generation, error banner). A newer load from the same
        ``client`` supersedes this one; loads from other clients do not.
        """
        if not ident:
            return None, None
        log = bind(logger, ident=ident, client=client)
        gen = self.snapshots.begin(client)
        range_from, range_to = query_range(self._clock(), self.config.runtime.range_days)
        try:
            snap = load_snapshot(self.client, ident, range_from, range_to, generation=gen)
        except SnapshotError as exc:
            log.warning("snapshot failed", extra={"generation": gen})
            return None, dbc.Alert(f"Error: {exc}", color="danger")
        if not self.snapshots.publish(gen, snap):
            raise PreventUpdate
        log.info("snapshot loaded", extra={"generation": gen, "observations": len(snap.observations)})
        return gen, None

    def _current(self, gen: Optional[int]) -> Optional[Snapshot]:
        if gen is None or not self.snapshots.is_current(gen):
            return None
        return self.snapshots.get(gen)

    def update_window(
        self, trigger: Any, state: Optional[Dict[str, Any]], gen: Optional[int] = None
    ) -> Optional[Dict[str, int]]:
        """Apply a window control to the snapshot the caller holds.

        ``trigger`` is "snapshot-gen", "pan-back", "pan-forward",
        ``("width", hours)`` or ``("wheel", ±1)``.
        """
        snap = self.snapshots.get(gen) if gen is not None else None
        if snap is None:
            return None
        tl = self.config.runtime.timeline
        if state is None or trigger == "snapshot-gen" or trigger is None:
            return WindowState.initial(snap.range_to, tl.default_width_hours).to_dict()
        current = WindowState.from_dict(state)
        if trigger == "pan-back":
            return current.pan(-tl.pan_step_ms).to_dict()
        if trigger == "pan-forward":
            return current.pan(tl.pan_step_ms).to_dict()
        if isinstance(trigger, tuple) and trigger[0] == "wheel":
            return current.pan(trigger[1] * tl.wheel_step_ms).to_dict()
        if isinstance(trigger, tuple) and trigger[0] == "width":
            return current.set_width(trigger[1], snap.range_to, tl.width_menu_hours).to_dict()
        return None

    def render_timeline(self, gen: Optional[int], state: Optional[Dict[str, Any]]) -> go.Figure:
        snap = self._current(gen)
        if snap is None or state is None:
            return empty_figure()
        view = compute_timeline(
            snap.observations, snap.range_from, snap.range_to,
            WindowState.from_dict(state), self.config.runtime.timeline,
        )
        if not self.snapshots.is_current(snap.generation):
            # this tab started a newer load while the view was computed
            raise PreventUpdate
        if not view.overview:
            return empty_figure("No observations in this window")
        return timeline_figure(view, self.tz)

    def render_summary(self, gen: Optional[int]) -> Tuple[Any, go.Figure, str, Any]:
        snap = self._current(gen)
        if snap is None:
            return html.Div("—"), empty_figure(), "", None
        entrances = compute_entrances(snap.observations, self.tz, self.config.runtime.entrance)
        last = entrances.last_entrance_at
        return (
            self._status(snap),
            entries_figure(entrances.entries_by_hour, snap.heatmap),
            f"Last entrance: {format_local(last, self.tz)}",
            self._kpis(snap),
        )

    def _status(self, snap: Snapshot) -> Any:
        latest = snap.latest
        if latest is None:
            return html.Div("—")
        online = bool(latest.is_online)
        captured = to_epoch_ms(latest.captured_at) if latest.captured_at else None
        seen = to_epoch_ms(latest.last_seen_at) if latest.last_seen_at else None
        return html.Div([
            html.Div("Online" if online else (latest.kind or "Offline"),
                     style={"fontSize": "1.25rem", "color": "#34d399" if online else COLORS['text_primary']}),
            html.Div(f"Updated: {format_local(captured, self.tz)} ({self.tz})",
                     style={"color": COLORS['text_secondary']}),
            html.Div(f"Seen: {format_local(seen, self.tz)}", style={"color": COLORS['text_secondary']}),
        ])

    def _kpis(self, snap: Snapshot) -> Any:
        latest_seen = None
        if snap.latest is not None and snap.latest.last_seen_at is not None:
            latest_seen = to_epoch_ms(snap.latest.last_seen_at)
        k = summarize(snap.observations, latest_seen, [p.duration_sec for p in snap.periods])
        now_ms = to_epoch_ms(self._clock())
        cards: List[Tuple[str, str]] = [
            ("Now", format_local(now_ms, self.tz, "%H:%M")),
            ("Last appearance", format_local(k.latest_last_seen_at, self.tz)),
            ("Since last appearance",
             "—" if k.minutes_since_last_seen is None else f"{k.minutes_since_last_seen} min"),
            ("Observation points", str(k.observations)),
            ("Online periods", f"{k.online_periods} ({k.online_minutes} min)"),
        ]
        return dbc.Row([
            dbc.Col(html.Div([
                html.Div(title, style={"fontSize": "0.75rem", "color": COLORS['text_secondary']}),
                html.Div(value, style={"fontSize": "1.1rem"}),
            ], style={**CARD_STYLE, "padding": "12px"}), xs=6, md=True)
            for title, value in cards
        ])


def build_dash_app(config: AppConfig | None = None) -> Dash:
    cfg = config or load_config()
    d = DashboardApp(cfg)
    return d.app
