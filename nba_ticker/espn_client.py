# nba_ticker/espn_client.py
"""
Thin HTTP client wrapper for ESPN basketball endpoints.

Methods are blocking; the request pipeline runs them in worker threads, and
each worker thread gets its own requests.Session.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional

import requests

from .errors import RateLimited, RequestFailed

DEFAULT_HEADERS = {
    "User-Agent": "nba-ticker/1.0",
    "Accept": "application/json",
}


class ESPNClient:
    """A minimal client for retrieving JSON from the ESPN site API."""

    def __init__(
        self,
        base_url: str,
        standings_base_url: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Store the base URLs and session settings.

        An injected session is used for every call from every thread (tests
        pass fakes here); otherwise sessions are created lazily per thread.
        """
        self.base_url = base_url.rstrip("/")
        self.standings_base_url = (standings_base_url or base_url).rstrip("/")
        self.timeout = timeout
        self._shared_session = session
        self._local = threading.local()
        if session is not None:
            session.headers.update(DEFAULT_HEADERS)

    @property
    def session(self) -> requests.Session:
        """The session for the calling thread."""
        if self._shared_session is not None:
            return self._shared_session
        s = getattr(self._local, "session", None)
        if s is None:
            s = requests.Session()
            s.headers.update(DEFAULT_HEADERS)
            self._local.session = s
        return s

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a GET request and return parsed JSON.

        Raises:
            RateLimited on HTTP 429.
            RequestFailed on other non-2xx responses, network errors, timeouts
            and bodies that are not JSON.
        """
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            raise RequestFailed(f"GET {url} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise RequestFailed(f"GET {url} failed: {exc}") from exc

        if r.status_code == 429:
            raise RateLimited(f"GET {url} returned 429 Too Many Requests")

        try:
            r.raise_for_status()
        except requests.HTTPError as exc:
            raise RequestFailed(
                f"GET {url} returned HTTP {r.status_code}", status_code=r.status_code
            ) from exc

        try:
            return r.json()
        except ValueError as exc:
            raise RequestFailed(f"GET {url} returned a non-JSON body") from exc

    def scoreboard(self, dates: Optional[str] = None) -> Dict[str, Any]:
        """Fetch the scoreboard for a day (YYYYMMDD) or range (YYYYMMDD-YYYYMMDD)."""
        params = {"dates": dates} if dates else None
        return self.get_json(f"{self.base_url}/scoreboard", params=params)

    def standings(self, group: str) -> Dict[str, Any]:
        """Fetch the standings payload for one numeric conference group."""
        return self.get_json(f"{self.standings_base_url}/standings", params={"group": group})

    def summary(self, event_id: str) -> Dict[str, Any]:
        """Fetch the box score summary for an event id."""
        return self.get_json(f"{self.base_url}/summary", params={"event": event_id})
