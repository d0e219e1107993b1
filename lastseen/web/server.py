from __future__ import annotations

from typing import Optional

from ..config import load_config
from .dashboard import build_dash_app


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    cfg = load_config()
    app = build_dash_app(cfg)
    app.run(
        host=host or cfg.env.DASH_HOST,
        port=cfg.env.DASH_PORT if port is None else port,
        debug=False,
    )

if __name__ == "__main__":  # pragma: no cover
    serve()
