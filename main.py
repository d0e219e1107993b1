from __future__ import annotations

from typing import Optional

import typer

from lastseen.config import load_config
from lastseen.core.pipeline import compute_entrances, compute_timeline
from lastseen.core.window import WindowState
from lastseen.data.api_client import PresenceApiClient
from lastseen.data.identity import normalize_identity
from lastseen.data.snapshot import SnapshotError, load_snapshot, query_range
from lastseen.utils.logging import setup_logging
from lastseen.web.figures import format_local
from lastseen.web.server import serve as serve_web


app = typer.Typer(add_completion=False)


@app.command()
def serve(host: Optional[str] = typer.Option(None), port: Optional[int] = typer.Option(None)) -> None:
    cfg = load_config()
    setup_logging(cfg.env.LOG_LEVEL)
    serve_web(host=host, port=port)


@app.command()
def summary(
    ident: str = typer.Argument(..., help="Contact: @username or phone"),
    width_hours: Optional[int] = typer.Option(None, help="Window width; one of the configured menu"),
) -> None:
    """Fetch one snapshot and print the timeline window and entrance histogram.

    Runs the same pipeline as the dashboard, for the window ending at the
    end of the query range.
    """
    cfg = load_config()
    setup_logging(cfg.env.LOG_LEVEL)
    tz = cfg.runtime.timezone
    tl = cfg.runtime.timeline

    identity = normalize_identity(ident)
    if not identity:
        raise typer.BadParameter("identity is empty")

    client = PresenceApiClient.from_config(cfg)
    range_from, range_to = query_range(days=cfg.runtime.range_days)
    try:
        snap = load_snapshot(client, identity, range_from, range_to)
    except SnapshotError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    window = WindowState.initial(snap.range_to, tl.default_width_hours)
    if width_hours is not None:
        try:
            window = window.set_width(width_hours, snap.range_to, tl.width_menu_hours)
        except ValueError as exc:
            raise typer.BadParameter(str(exc))

    view = compute_timeline(snap.observations, snap.range_from, snap.range_to, window, tl)
    entrances = compute_entrances(snap.observations, tz, cfg.runtime.entrance)

    typer.echo(f"{identity}: {len(snap.observations)} observations")
    typer.echo(f"window: {format_local(view.visible_from, tz)} .. {format_local(view.visible_to, tz)} ({tz})")
    typer.echo(f"axis: ±{view.signed_max} min")
    for bucket, points in view.bands.by_bucket().items():
        typer.echo(f"  {bucket.value:<6} {sum(1 for p in points if p.value is not None)} points")
    typer.echo("entrances by hour:")
    for hc in entrances.entries_by_hour:
        typer.echo(f"  {hc.hour:02d}:00 {'#' * hc.count} {hc.count}")
    typer.echo(f"last entrance: {format_local(entrances.last_entrance_at, tz)}")


if __name__ == "__main__":
    app()
