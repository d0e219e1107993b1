from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest


class FakeResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Stands in for requests.Session; routes map a URL suffix to replies.

    A reply is ``(status, payload)`` or an exception to raise. A list of
    replies is consumed one per call, the last one repeating.
    """

    def __init__(self, routes: Dict[str, Any]) -> None:
        self.routes = routes
        self.calls: List[Tuple[str, Optional[Dict[str, str]]]] = []

    def get(self, url: str, params: Optional[Dict[str, str]] = None, timeout: Any = None) -> FakeResponse:
        self.calls.append((url, params))
        for suffix, replies in self.routes.items():
            if not url.endswith(suffix):
                continue
            reply = replies
            if isinstance(replies, list):
                reply = replies.pop(0) if len(replies) > 1 else replies[0]
            if isinstance(reply, Exception):
                raise reply
            status, payload = reply
            return FakeResponse(status, payload)
        return FakeResponse(404, {"detail": "not found"})


@pytest.fixture
def make_session():
    def _make(routes: Dict[str, Any]) -> FakeSession:
        return FakeSession(routes)

    return _make
