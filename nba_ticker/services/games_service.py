# nba_ticker/services/games_service.py
"""
Scoreboard logic.

Responsibilities:
  - fetch scoreboard payloads one window (several days) at a time
  - cache them per window key with stale-while-revalidate semantics
  - normalize raw events into Game models for a single local day
  - keep served game statuses from moving backwards
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence

from dateutil import parser as date_parser
from dateutil import tz
from loguru import logger

from ..cache import SWRCache
from ..errors import NormalizationSkipped, ValidationFailed
from ..espn_client import ESPNClient
from ..models import Game, GameStatus, Score, Team, TeamRecord
from ..pipeline import RequestPipeline
from ..schemas import validate_scoreboard
from ..windows import CacheWindow, DateLike, local_day, resolve_window, window_key_for


STATUS_MAP: Dict[str, GameStatus] = {
    "STATUS_SCHEDULED": GameStatus.SCHEDULED,
    "STATUS_POSTPONED": GameStatus.SCHEDULED,
    "STATUS_CANCELED": GameStatus.SCHEDULED,
    "STATUS_IN_PROGRESS": GameStatus.IN_PROGRESS,
    "STATUS_HALFTIME": GameStatus.IN_PROGRESS,
    "STATUS_END_OF_PERIOD": GameStatus.IN_PROGRESS,
    "STATUS_FINAL": GameStatus.FINAL,
    "STATUS_FINAL_OT": GameStatus.FINAL,
}


def safe_int(v, default=0) -> int:
    """Convert a value to int safely; return default on failures."""
    try:
        return int(v)
    except Exception:
        return default


def get_nested(obj: Any, path: list, default=None):
    """Safely walk nested dict keys / list indexes by path; return default if missing."""
    cur = obj
    for k in path:
        if isinstance(cur, dict):
            cur = cur.get(k)
        elif isinstance(cur, list) and isinstance(k, int):
            cur = cur[k] if -len(cur) <= k < len(cur) else None
        else:
            return default
    return cur if cur is not None else default


# -------------------------
# Normalization
# -------------------------

def map_status(name: Optional[str]) -> GameStatus:
    """Map the provider status vocabulary onto GameStatus; unknown names are scheduled."""
    return STATUS_MAP.get(name or "", GameStatus.SCHEDULED)


def merge_events(*event_lists: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Concatenate raw event lists, keeping the first occurrence of each event id.

    Overlapping window fetches (or a target day plus the previous day) return
    the same event more than once.
    """
    seen: set[str] = set()
    out: List[Dict[str, Any]] = []
    for events in event_lists:
        for ev in events or ():
            if not isinstance(ev, dict):
                continue
            ev_id = ev.get("id")
            key = str(ev_id) if ev_id is not None else None
            if key is not None:
                if key in seen:
                    continue
                seen.add(key)
            out.append(ev)
    return out


def _parse_record(competitor: Dict[str, Any]) -> Optional[TeamRecord]:
    """Parse the first record summary like '50-30' into a TeamRecord."""
    summary = get_nested(competitor, ["records", 0, "summary"])
    if not isinstance(summary, str) or "-" not in summary:
        return None
    parts = summary.split("-")
    return TeamRecord(wins=safe_int(parts[0]), losses=safe_int(parts[1]))


def _parse_team(competitor: Dict[str, Any]) -> Team:
    t = competitor.get("team")
    if not isinstance(t, dict) or t.get("id") in (None, ""):
        raise NormalizationSkipped("competitor without team id")

    display_name = t.get("displayName") or t.get("name") or t.get("abbreviation") or "TBD"
    return Team(
        id=str(t["id"]),
        name=t.get("name") or display_name,
        display_name=display_name,
        abbreviation=t.get("abbreviation") or "",
        logo=t.get("logo") or get_nested(t, ["logos", 0, "href"], ""),
        color=t.get("color") or "000000",
        alternate_color=t.get("alternateColor") or "ffffff",
        record=_parse_record(competitor),
    )


def _sides(competitors: List[Dict[str, Any]]) -> tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Return (away, home) competitors.

    Uses the homeAway tag; without it the first entry is away, the second home.
    """
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    if home is None or away is None:
        return competitors[0], competitors[1]
    return away, home


def parse_event(event: Dict[str, Any], viewer_tz: tzinfo) -> Game:
    """
    Build a Game from one raw scoreboard event.

    Raises:
        NormalizationSkipped: the event lacks an id, a start time or competition data.
    """
    ev_id = event.get("id")
    if ev_id in (None, ""):
        raise NormalizationSkipped("event without id")

    competition = get_nested(event, ["competitions", 0])
    if not isinstance(competition, dict):
        raise NormalizationSkipped(f"event {ev_id}: missing competition data")

    competitors = [c for c in (competition.get("competitors") or []) if isinstance(c, dict)]
    if len(competitors) < 2:
        raise NormalizationSkipped(f"event {ev_id}: fewer than two competitors")

    try:
        start = date_parser.isoparse(str(event.get("date")))
    except (TypeError, ValueError, OverflowError) as exc:
        raise NormalizationSkipped(f"event {ev_id}: bad date {event.get('date')!r}") from exc
    if start.tzinfo is None:
        start = start.replace(tzinfo=tz.UTC)

    away_c, home_c = _sides(competitors)
    status_node = next(
        (s for s in (event.get("status"), competition.get("status")) if isinstance(s, dict)),
        {},
    )

    score = None
    if home_c.get("score") is not None and away_c.get("score") is not None:
        score = Score(home=safe_int(home_c.get("score")), away=safe_int(away_c.get("score")))

    period = status_node.get("period")
    return Game(
        id=str(ev_id),
        date=start.astimezone(viewer_tz),
        status=map_status(get_nested(status_node, ["type", "name"])),
        home_team=_parse_team(home_c),
        away_team=_parse_team(away_c),
        score=score,
        period=safe_int(period) if period is not None else None,
        display_clock=status_node.get("displayClock"),
        venue=get_nested(competition, ["venue", "fullName"]),
    )


def normalize_scoreboard(payload: Any, target_date: DateLike, viewer_tz: tzinfo) -> List[Game]:
    """
    Turn a raw scoreboard payload into the games played on target_date.

    Only events whose start time falls on target_date's calendar day in
    viewer_tz are kept. Malformed events are dropped; duplicate ids keep their
    first occurrence. Output is ordered by start time, then id.
    """
    try:
        validate_scoreboard(payload)
    except ValidationFailed as exc:
        logger.warning(f"{exc}; falling back to best-effort parsing")

    events = payload.get("events") if isinstance(payload, dict) else None
    if not isinstance(events, list):
        return []

    day = local_day(target_date, viewer_tz)
    games: List[Game] = []
    for ev in merge_events(events):
        try:
            game = parse_event(ev, viewer_tz)
        except NormalizationSkipped as exc:
            logger.debug(f"skipping scoreboard event: {exc}")
            continue
        if game.date.date() != day:
            continue
        games.append(game)

    games.sort(key=lambda g: (g.date, g.id))
    return games


def _priority_tier(game: Game, favorite_team_id: Optional[str]) -> int:
    has_favorite = favorite_team_id is not None and favorite_team_id in (
        game.home_team.id,
        game.away_team.id,
    )
    if game.status is GameStatus.IN_PROGRESS:
        tier = 1
    elif game.status is GameStatus.SCHEDULED:
        tier = 2
    else:
        tier = 3
    return tier if has_favorite else tier + 3


def sort_games_by_priority(games: Sequence[Game], favorite_team_id: Optional[str]) -> List[Game]:
    """
    Order games for display.

    Favorite team first (live, scheduled, final), then everyone else in the
    same status order; start time breaks ties.
    """
    return sorted(games, key=lambda g: (_priority_tier(g, favorite_team_id), g.date))


# -------------------------
# Service
# -------------------------

@dataclass
class GamesService:
    """Service responsible for windowed scoreboard fetches and normalized game lists."""

    client: ESPNClient
    pipeline: RequestPipeline
    cache: SWRCache
    tz_name: str
    fresh_seconds: float = 120.0
    radius_days: int = 2

    _windows: Dict[str, CacheWindow] = field(default_factory=dict, init=False, repr=False)
    _served: Dict[str, Game] = field(default_factory=dict, init=False, repr=False)

    @property
    def app_tz(self) -> tzinfo:
        """Return the viewer timezone object used for all local-day conversions."""
        return tz.gettz(self.tz_name) or tz.UTC

    def today(self) -> date:
        """Return the current calendar day in the viewer timezone."""
        return datetime.now(tz=self.app_tz).date()

    def cached_windows(self) -> List[CacheWindow]:
        """Windows that currently hold a cached payload."""
        return [w for key, w in self._windows.items() if self.cache.has_value(key)]

    def window_for(self, day: DateLike) -> CacheWindow:
        """Return the window that will serve day (a cached covering window when one exists)."""
        return resolve_window(local_day(day, self.app_tz), self.cached_windows(), self.radius_days)

    async def _fetch_window(self, window: CacheWindow) -> Dict[str, Any]:
        """Fetch one window's scoreboard through the request pipeline."""
        dates = window.dates_param
        payload = await self.pipeline.request(
            lambda: self.client.scoreboard(dates),
            label=f"scoreboard {dates}",
        )
        logger.debug(f"fetched scoreboard window {dates}")
        return payload

    async def _window_payload(self, window: CacheWindow) -> Dict[str, Any]:
        self._windows[window.key] = window
        return await self.cache.get_or_set(
            key=window.key,
            ttl_seconds=self.fresh_seconds,
            loader=lambda: self._fetch_window(window),
        )

    def _guard_status(self, games: List[Game]) -> List[Game]:
        """Replace any game whose status regressed with the previously served record."""
        out: List[Game] = []
        for g in games:
            prev = self._served.get(g.id)
            if prev is not None and g.status.rank < prev.status.rank:
                logger.debug(f"game {g.id}: ignoring status regression {prev.status.value} -> {g.status.value}")
                out.append(prev)
                continue
            self._served[g.id] = g
            out.append(g)
        return out

    async def get_scores(self, day: DateLike) -> List[Game]:
        """
        Return normalized games for the viewer-local calendar day.

        Served from the cached window covering day when possible; a stale window
        is returned as-is while it refreshes in the background.
        """
        target = local_day(day, self.app_tz)
        window = self.window_for(target)
        payload = await self._window_payload(window)
        return self._guard_status(normalize_scoreboard(payload, target, self.app_tz))

    async def refresh_scores(self, day: DateLike) -> List[Game]:
        """Invalidate only the window serving day, then read it again."""
        target = local_day(day, self.app_tz)
        window = self.window_for(target)
        self.cache.invalidate(window.key)
        logger.info(f"scores refresh requested for {target.isoformat()} (window {window.key})")
        payload = await self._window_payload(window)
        return self._guard_status(normalize_scoreboard(payload, target, self.app_tz))

    async def prefetch_window(self, day: DateLike) -> CacheWindow:
        """Make sure the canonical window anchored on day is cached and fresh."""
        window = window_key_for(day, self.app_tz, self.radius_days)
        self._windows[window.key] = window
        await self.cache.warm(
            key=window.key,
            ttl_seconds=self.fresh_seconds,
            loader=lambda: self._fetch_window(window),
        )
        return window
