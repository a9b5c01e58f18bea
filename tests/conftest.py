"""Shared fakes and payload builders for nba_ticker tests."""
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import requests


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records delays and advances a FakeClock."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.calls: List[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, bad_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


Route = Union[Any, List[Any], Callable[[Optional[dict]], Any]]


class FakeSession:
    """
    Stand-in for requests.Session keyed by the last URL path segment.

    A route value may be a payload, a FakeResponse, an exception to raise, a
    list consumed one item per call, or a callable taking the query params.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes = routes or {}
        self.headers: Dict[str, str] = {}
        self.calls: List[tuple] = []

    def calls_to(self, endpoint: str) -> List[Optional[dict]]:
        return [params for url, params in self.calls if url.endswith("/" + endpoint)]

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        endpoint = url.rsplit("/", 1)[-1]
        route = self.routes[endpoint]
        if isinstance(route, list):
            result = route.pop(0) if len(route) > 1 else route[0]
        elif callable(route):
            result = route(params)
        else:
            result = route
        if isinstance(result, Exception):
            raise result
        if isinstance(result, FakeResponse):
            return result
        return FakeResponse(200, result)


def make_competitor(team_id: str, abbr: str, name: str, home_away: Optional[str],
                    score: Optional[str] = None, record: Optional[str] = None) -> Dict[str, Any]:
    c: Dict[str, Any] = {
        "team": {
            "id": team_id,
            "name": name.split()[-1],
            "displayName": name,
            "abbreviation": abbr,
            "logo": f"https://a.espncdn.com/i/teamlogos/nba/500/{abbr.lower()}.png",
            "color": "007a33",
            "alternateColor": "ffffff",
        },
    }
    if home_away is not None:
        c["homeAway"] = home_away
    if score is not None:
        c["score"] = score
    if record is not None:
        c["records"] = [{"summary": record}]
    return c


def make_event(event_id: str, when: str, status: str = "STATUS_SCHEDULED",
               home: tuple = ("2", "BOS", "Boston Celtics"),
               away: tuple = ("20", "PHI", "Philadelphia 76ers"),
               scores: Optional[tuple] = None, tagged: bool = True,
               period: int = 0, clock: str = "0:00") -> Dict[str, Any]:
    """Build a scoreboard event; scores is (home, away)."""
    home_c = make_competitor(*home, home_away="home" if tagged else None,
                             score=scores[0] if scores else None, record="50-30")
    away_c = make_competitor(*away, home_away="away" if tagged else None,
                             score=scores[1] if scores else None, record="45-35")
    competitors = [home_c, away_c] if tagged else [away_c, home_c]
    return {
        "id": event_id,
        "date": when,
        "name": f"{away[2]} at {home[2]}",
        "status": {
            "period": period,
            "displayClock": clock,
            "type": {"name": status, "state": "pre"},
        },
        "competitions": [
            {
                "id": event_id,
                "competitors": competitors,
                "venue": {"fullName": "TD Garden"},
            }
        ],
    }


def make_standings_entry(team_id: str, name: str, abbr: str, wins: Optional[int],
                         losses: Optional[int], pct: Optional[float] = None) -> Dict[str, Any]:
    stats = []
    if wins is not None:
        stats.append({"name": "wins", "value": float(wins), "displayValue": str(wins)})
    if losses is not None:
        stats.append({"name": "losses", "value": float(losses), "displayValue": str(losses)})
    if pct is None and wins is not None and losses is not None and (wins + losses):
        pct = wins / (wins + losses)
    if pct is not None:
        stats.append({"name": "winPercent", "value": pct, "displayValue": f"{pct:.3f}".lstrip("0")})
    return {
        "team": {
            "id": team_id,
            "displayName": name,
            "name": name.split()[-1],
            "abbreviation": abbr,
            "logos": [{"href": f"https://a.espncdn.com/i/teamlogos/nba/500/{abbr.lower()}.png"}],
        },
        "stats": stats,
    }


def make_standings_payload(group: str, name: str, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "name": "National Basketball Association",
        "season": {"year": 2024, "type": 2},
        "children": [
            {
                "id": group,
                "name": name,
                "abbreviation": "East" if group == "5" else "West",
                "standings": {"entries": entries},
            }
        ],
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep(clock):
    return RecordingSleep(clock)
