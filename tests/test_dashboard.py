from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import dash
import dash_bootstrap_components as dbc
import pytest
from dash.exceptions import PreventUpdate

from lastseen.config import AppConfig, RuntimeConfig
from lastseen.core.constants import HOUR_MS
from lastseen.core.normalize import to_epoch_ms
from lastseen.data.api_client import PresenceApiClient
from lastseen.web.dashboard import DashboardApp

NOW = datetime(2024, 6, 8, 0, 0, tzinfo=timezone.utc)


def _changes() -> List[Dict[str, str]]:
    out = []
    for k in range(1, 200):
        captured = NOW - timedelta(minutes=7 * k)
        seen = captured - timedelta(minutes=(k * 11) % 70)
        out.append({"captured_at": captured.isoformat(), "last_seen_at": seen.isoformat()})
    return out


def _routes(**overrides: Any) -> Dict[str, Any]:
    routes: Dict[str, Any] = {
        "/latest": (200, {"captured_at": NOW.isoformat(), "is_online": False, "kind": "offline",
                          "last_seen_at": (NOW - timedelta(minutes=3)).isoformat()}),
        "/heatmap": (200, [{"hour_kyiv": 12, "online_points": 3}]),
        "/periods": (200, [{"online_from": NOW.isoformat(), "online_to": NOW.isoformat(), "duration_sec": 120}]),
        "/lastseen/changes": (200, _changes()),
    }
    routes.update(overrides)
    return routes


def make_dashboard(session) -> DashboardApp:  # type: ignore[no-untyped-def]
    cfg = AppConfig(env={"API_BASE": "http://api.test"}, runtime=RuntimeConfig(max_retries=1))
    client = PresenceApiClient("http://api.test", max_retries=1, backoff_base_sec=0.0, backoff_cap_sec=0.0,
                               session=session)
    return DashboardApp(cfg, app=dash.Dash(__name__), client=client, clock=lambda: NOW)


def test_load_and_render(make_session) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes()))
    gen, banner = d.load("@john")
    assert gen == 1 and banner is None

    state = d.update_window("snapshot-gen", None, gen)
    assert state == {"width_ms": 6 * HOUR_MS, "end": to_epoch_ms(NOW)}

    fig = d.render_timeline(gen, state)
    assert len(fig.data) == 5

    status, entries, last_entrance, kpis = d.render_summary(gen)
    assert len(entries.data[0].x) == 24
    assert entries.data[1].name == "online points"
    assert entries.data[1].y[12] == 3
    assert last_entrance.startswith("Last entrance: ")
    assert kpis is not None


def test_window_controls(make_session) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes()))
    assert d.update_window("snapshot-gen", None, None) is None  # nothing loaded yet
    gen, _ = d.load("@john")
    state = d.update_window(None, None, gen)
    back = d.update_window("pan-back", state, gen)
    assert back["end"] == state["end"] - HOUR_MS
    forward = d.update_window("pan-forward", back, gen)
    assert forward == state
    wide = d.update_window(("width", 24), back, gen)
    assert wide == {"width_ms": 24 * HOUR_MS, "end": to_epoch_ms(NOW)}
    with pytest.raises(ValueError):
        d.update_window(("width", 5), state, gen)


def test_wheel_pans_half_an_hour_per_tick(make_session) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes()))
    gen, _ = d.load("@john")
    state = d.update_window("snapshot-gen", None, gen)
    earlier = d.update_window(("wheel", -1), state, gen)
    assert earlier["end"] == state["end"] - HOUR_MS // 2
    assert d.update_window(("wheel", 1), earlier, gen) == state


def test_failed_load_shows_error_and_drops_old_snapshot(make_session) -> None:  # type: ignore[no-untyped-def]
    routes = _routes()
    routes["/periods"] = [(200, []), (500, {})]
    d = make_dashboard(make_session(routes))
    gen, _ = d.load("@john")
    failed_gen, banner = d.load("@john")
    assert failed_gen is None
    assert isinstance(banner, dbc.Alert)
    state = d.update_window("snapshot-gen", None, gen)
    assert len(d.render_timeline(gen, state).data) == 0


def test_superseded_snapshot_renders_nothing(make_session) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes()))
    first, _ = d.load("@john", "tab")
    second, _ = d.load("@ann", "tab")
    state = d.update_window("snapshot-gen", None, second)
    assert len(d.render_timeline(first, state).data) == 0
    assert len(d.render_timeline(second, state).data) == 5
    status, entries, _, kpis = d.render_summary(first)
    assert len(entries.data) == 0 and kpis is None


def test_tabs_keep_their_own_snapshots(make_session) -> None:  # type: ignore[no-untyped-def]
    routes = _routes()
    routes["/lastseen/changes"] = [(200, _changes()), (200, _changes()[:20])]
    d = make_dashboard(make_session(routes))
    gen_a, _ = d.load("@alice", "tab-a")
    gen_b, _ = d.load("@bob", "tab-b")

    state_a = d.update_window("snapshot-gen", None, gen_a)
    state_b = d.update_window("snapshot-gen", None, gen_b)
    assert len(d.render_timeline(gen_a, state_a).data) == 5
    assert len(d.render_timeline(gen_b, state_b).data) == 5
    assert d.snapshots.get(gen_a).identity == "@alice"
    assert d.snapshots.get(gen_b).identity == "@bob"
    assert len(d.snapshots.get(gen_a).observations) != len(d.snapshots.get(gen_b).observations)
    assert d.render_summary(gen_a)[3] is not None


def test_window_uses_the_callers_snapshot(make_session) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes()))
    gen_a, _ = d.load("@alice", "tab-a")
    later = NOW + timedelta(hours=5)
    d._clock = lambda: later
    gen_b, _ = d.load("@bob", "tab-b")
    assert d.update_window("snapshot-gen", None, gen_a)["end"] == to_epoch_ms(NOW)
    assert d.update_window("snapshot-gen", None, gen_b)["end"] == to_epoch_ms(later)


def test_empty_identity_does_not_fetch(make_session) -> None:  # type: ignore[no-untyped-def]
    session = make_session(_routes())
    d = make_dashboard(session)
    assert d.load("") == (None, None)
    assert session.calls == []


def test_empty_change_log_renders_placeholder(make_session) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes(**{"/lastseen/changes": (200, [])})))
    gen, _ = d.load("@john")
    fig = d.render_timeline(gen, d.update_window("snapshot-gen", None, gen))
    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No observations in this window"


def test_render_discards_work_when_superseded_mid_compute(make_session, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes()))
    gen, _ = d.load("@john", "tab")
    state = d.update_window("snapshot-gen", None, gen)

    import lastseen.web.dashboard as module

    real = module.compute_timeline

    def slow_compute(*args, **kwargs):  # type: ignore[no-untyped-def]
        d.snapshots.begin("tab")
        return real(*args, **kwargs)

    monkeypatch.setattr(module, "compute_timeline", slow_compute)
    with pytest.raises(PreventUpdate):
        d.render_timeline(gen, state)


def test_layout_gives_each_page_load_a_client_id(make_session) -> None:  # type: ignore[no-untyped-def]
    d = make_dashboard(make_session(_routes()))

    def client_id(layout) -> str:  # type: ignore[no-untyped-def]
        return next(c.data for c in layout.children if getattr(c, "id", None) == "client-id")

    assert client_id(d.serve_layout()) != client_id(d.serve_layout())
