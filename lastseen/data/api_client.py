from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

import requests
from pydantic import BaseModel, ValidationError

from ..config import AppConfig
from ..utils.retry import with_retries
from .models import HeatPoint, LastSeenChange, LatestStatus, OnlinePeriod


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class FetchError(RuntimeError):
    """An upstream query failed or returned something unusable."""


class _Retryable(Exception):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


def to_iso(ts: datetime) -> str:
    """UTC ISO 8601 with millisecond precision and a ``Z`` suffix."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PresenceApiClient:
    """Client for the contact presence API.

    Transport errors and 5xx responses are retried with backoff; anything
    else that goes wrong surfaces as :class:`FetchError`.
    """

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 10,
        max_retries: int = 3,
        backoff_base_sec: float = 0.5,
        backoff_cap_sec: float = 5.0,
        session: Optional[Any] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.backoff_base_sec = backoff_base_sec
        self.backoff_cap_sec = backoff_cap_sec
        if session is None:
            session = requests.Session()
            session.headers.update({"Accept": "application/json"})
        self.session = session

    @classmethod
    def from_config(cls, config: AppConfig, session: Optional[Any] = None) -> "PresenceApiClient":
        rt = config.runtime
        return cls(
            base_url=config.env.API_BASE,
            timeout_sec=rt.network_timeout_sec,
            max_retries=rt.max_retries,
            backoff_base_sec=rt.backoff_base_sec,
            backoff_cap_sec=rt.backoff_cap_sec,
            session=session,
        )

    # ───────────────────────────── endpoints ─────────────────────────────
    def latest(self, ident: str) -> LatestStatus:
        data = self._get_json(f"/contacts/{quote(ident, safe='')}/latest")
        return self._parse_one(LatestStatus, data)

    def heatmap(self, ident: str, range_from: datetime, range_to: datetime) -> List[HeatPoint]:
        data = self._get_json(f"/contacts/{quote(ident, safe='')}/heatmap", self._range(range_from, range_to))
        return self._parse_list(HeatPoint, data)

    def periods(self, ident: str, range_from: datetime, range_to: datetime) -> List[OnlinePeriod]:
        data = self._get_json(f"/contacts/{quote(ident, safe='')}/periods", self._range(range_from, range_to))
        return self._parse_list(OnlinePeriod, data)

    def last_seen_changes(self, ident: str, range_from: datetime, range_to: datetime) -> List[LastSeenChange]:
        """Fetch the last-seen change log; malformed records are skipped.

        Order is whatever the server returns; callers sort.
        """
        data = self._get_json(
            f"/contacts/{quote(ident, safe='')}/lastseen/changes", self._range(range_from, range_to)
        )
        if not isinstance(data, list):
            raise FetchError("lastseen/changes: expected a JSON list")
        out: List[LastSeenChange] = []
        rejected = 0
        for item in data:
            try:
                out.append(LastSeenChange.model_validate(item))
            except ValidationError:
                rejected += 1
        if rejected:
            logger.warning("rejected malformed last-seen records", extra={"ident": ident, "rejected": rejected})
        return out

    # ───────────────────────────── transport ─────────────────────────────
    @staticmethod
    def _range(range_from: datetime, range_to: datetime) -> Dict[str, str]:
        return {"from": to_iso(range_from), "to": to_iso(range_to)}

    def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}{path}"

        def attempt() -> Any:
            try:
                resp = self.session.get(url, params=params, timeout=self.timeout_sec)
            except (requests.ConnectionError, requests.Timeout) as exc:
                raise _Retryable(str(exc)) from exc
            if resp.status_code >= 500:
                raise _Retryable(f"HTTP {resp.status_code}", status=resp.status_code)
            if resp.status_code >= 400:
                raise FetchError(f"HTTP {resp.status_code} for {path}")
            try:
                return resp.json()
            except ValueError as exc:
                raise FetchError(f"invalid JSON from {path}") from exc

        logger.debug("fetching", extra={"url": url})
        try:
            return with_retries(
                attempt,
                max_attempts=max(1, self.max_retries),
                base_seconds=self.backoff_base_sec,
                cap_seconds=self.backoff_cap_sec,
                retry_on=(_Retryable,),
            )
        except _Retryable as exc:
            logger.error("fetch failed", extra={"url": url, "error": str(exc)})
            raise FetchError(f"{path}: {exc}") from exc

    @staticmethod
    def _parse_one(model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise FetchError(f"unexpected {model.__name__} payload") from exc

    @staticmethod
    def _parse_list(model: Type[M], data: Any) -> List[M]:
        if not isinstance(data, list):
            raise FetchError(f"expected a JSON list of {model.__name__}")
        return [PresenceApiClient._parse_one(model, item) for item in data]
