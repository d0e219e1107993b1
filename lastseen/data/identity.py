from __future__ import annotations

import re
from typing import Optional


_WS = re.compile(r"\s+")


def normalize_identity(text: Optional[str]) -> str:
    """Canonical contact identity: ``@username`` or a bare phone/id.

    Whitespace is removed everywhere; a leading ``@`` is kept as is.
    """
    v = (text or "").strip()
    if not v:
        return ""
    if v.startswith("@"):
        return "@" + _WS.sub("", v[1:])
    return _WS.sub("", v)


def apply_identity(candidate: Optional[str], current: str) -> Optional[str]:
    """Return the identity to switch to, or None when nothing should change."""
    cleaned = normalize_identity(candidate)
    if not cleaned or cleaned == current:
        return None
    return cleaned
