from __future__ import annotations

from datetime import datetime, timezone

import pytest
import requests

from lastseen.data.api_client import FetchError, PresenceApiClient, to_iso

FROM = datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)
TO = datetime(2024, 6, 8, 0, 0, tzinfo=timezone.utc)


def make_client(session) -> PresenceApiClient:  # type: ignore[no-untyped-def]
    return PresenceApiClient(
        "http://api.test/", max_retries=3, backoff_base_sec=0.0, backoff_cap_sec=0.0, session=session
    )


def test_to_iso() -> None:
    assert to_iso(FROM) == "2024-06-01T00:00:00.000Z"
    assert to_iso(datetime(2024, 6, 1, 3, 0)) == "2024-06-01T03:00:00.000Z"


def test_last_seen_changes_skips_malformed_records(make_session) -> None:  # type: ignore[no-untyped-def]
    session = make_session({
        "/lastseen/changes": (200, [
            {"captured_at": "2024-06-01T09:10:00Z", "last_seen_at": "2024-06-01T09:08:00Z"},
            {"captured_at": "2024-06-01T09:00:00Z"},
            {"captured_at": "2024-06-01T09:00:00Z", "last_seen_at": "not a date"},
            {"captured_at": "2024-06-01T09:00:00Z", "last_seen_at": "2024-06-01T08:59:00Z", "extra": 1},
        ]),
    })
    changes = make_client(session).last_seen_changes("@john", FROM, TO)
    assert len(changes) == 2
    url, params = session.calls[0]
    assert url == "http://api.test/contacts/%40john/lastseen/changes"
    assert params == {"from": "2024-06-01T00:00:00.000Z", "to": "2024-06-08T00:00:00.000Z"}


def test_latest_heatmap_periods(make_session) -> None:  # type: ignore[no-untyped-def]
    session = make_session({
        "/latest": (200, {"captured_at": "2024-06-01T09:10:00Z", "is_online": False, "kind": "recently",
                          "last_seen_at": None}),
        "/heatmap": (200, [{"hour_kyiv": 9, "online_points": 4}]),
        "/periods": (200, [{"online_from": "2024-06-01T09:00:00Z", "online_to": "2024-06-01T09:05:00Z",
                            "duration_sec": 300}]),
    })
    client = make_client(session)
    latest = client.latest("123")
    assert latest.kind == "recently" and latest.last_seen_at is None
    assert client.heatmap("123", FROM, TO)[0].online_points == 4
    assert client.periods("123", FROM, TO)[0].duration_sec == 300


def test_client_error_is_not_retried(make_session) -> None:  # type: ignore[no-untyped-def]
    session = make_session({"/latest": (404, {"detail": "no such contact"})})
    with pytest.raises(FetchError):
        make_client(session).latest("@nobody")
    assert len(session.calls) == 1


def test_server_error_is_retried(make_session) -> None:  # type: ignore[no-untyped-def]
    session = make_session({"/latest": [(503, {}), (200, {"is_online": True})]})
    assert make_client(session).latest("@john").is_online is True
    assert len(session.calls) == 2


def test_transport_error_gives_up_after_max_retries(make_session) -> None:  # type: ignore[no-untyped-def]
    session = make_session({"/latest": requests.ConnectionError("refused")})
    with pytest.raises(FetchError):
        make_client(session).latest("@john")
    assert len(session.calls) == 3


def test_unusable_payloads(make_session) -> None:  # type: ignore[no-untyped-def]
    session = make_session({
        "/lastseen/changes": (200, {"not": "a list"}),
        "/heatmap": (200, [{"hour_kyiv": "nine"}]),
        "/latest": (200, ValueError("bad json")),
    })
    client = make_client(session)
    with pytest.raises(FetchError):
        client.last_seen_changes("@john", FROM, TO)
    with pytest.raises(FetchError):
        client.heatmap("@john", FROM, TO)
    with pytest.raises(FetchError):
        client.latest("@john")
