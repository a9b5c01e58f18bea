# nba_ticker/services/standings_service.py
"""
Standings logic.

Responsibilities:
  - fetch one standings payload per conference group, in parallel
  - extract wins / losses / win percentage per team
  - rank each conference and compute games behind the leader
  - cache the assembled Standings with stale-while-revalidate semantics
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..cache import SWRCache
from ..errors import NormalizationSkipped, RequestFailed, ValidationFailed
from ..espn_client import ESPNClient
from ..models import Conference, Season, StandingEntry, StandingStat, Standings, Team
from ..pipeline import RequestPipeline
from ..schemas import validate_standings
from .games_service import get_nested

STANDINGS_KEY = "standings"


def safe_float(v, default=0.0) -> float:
    """Convert a value to float safely; return default on failures."""
    try:
        return float(v)
    except Exception:
        return default


def games_behind(leader_wins: float, leader_losses: float, wins: float, losses: float) -> float:
    """((leaderWins - wins) + (losses - leaderLosses)) / 2"""
    return ((leader_wins - wins) + (losses - leader_losses)) / 2


def format_games_behind(gb: float) -> str:
    """'-' for the leader (zero), '6' for whole numbers, '6.5' otherwise."""
    if gb == 0:
        return "-"
    if float(gb).is_integer():
        return str(int(gb))
    return f"{gb:.1f}"


def format_win_percent(pct: float) -> str:
    """Format like '.610' (or '1.000')."""
    text = f"{pct:.3f}"
    return text[1:] if text.startswith("0") else text


def _stat_map(entry: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    stats = entry.get("stats")
    if not isinstance(stats, list):
        return {}
    return {s.get("name"): s for s in stats if isinstance(s, dict) and s.get("name")}


def _parse_team(entry: Dict[str, Any]) -> Team:
    t = entry.get("team")
    if not isinstance(t, dict) or t.get("id") in (None, ""):
        raise NormalizationSkipped("standings entry without team id")
    display_name = t.get("displayName") or t.get("name") or t.get("abbreviation") or "TBD"
    return Team(
        id=str(t["id"]),
        name=t.get("name") or display_name,
        display_name=display_name,
        abbreviation=t.get("abbreviation") or "",
        logo=get_nested(t, ["logos", 0, "href"], "") or t.get("logo") or "",
        color=t.get("color") or "000000",
        alternate_color=t.get("alternateColor") or "FFFFFF",
    )


def parse_team_record(entry: Dict[str, Any]) -> Tuple[Team, float, float, float, StandingStat, StandingStat, StandingStat]:
    """
    Extract the team and its wins / losses / winPercent stats from one entry.

    Missing stats default to 0 / "0" / ".000".

    Raises:
        NormalizationSkipped: the entry has no usable team.
    """
    team = _parse_team(entry)
    stats = _stat_map(entry)

    def pick(name: str, fmt) -> Tuple[float, str]:
        s = stats.get(name)
        value = safe_float(s.get("value"), 0.0) if s is not None else 0.0
        display = s.get("displayValue") if s is not None else None
        if not isinstance(display, str) or not display:
            display = fmt(value)
        return value, display

    wins, wins_display = pick("wins", lambda v: str(int(v)))
    losses, losses_display = pick("losses", lambda v: str(int(v)))
    pct, pct_display = pick("winPercent", format_win_percent)

    return (
        team,
        wins,
        losses,
        pct,
        StandingStat("wins", wins, wins_display),
        StandingStat("losses", losses, losses_display),
        StandingStat("winPercent", pct, pct_display),
    )


def rank_conference(conf_id: str, name: str, abbreviation: str, raw_entries: Sequence[Any]) -> Conference:
    """
    Build a ranked Conference from raw standings entries.

    Entries without a usable team are dropped. Order is winPercent descending,
    then more wins, then fewer losses.
    """
    rows = []
    for raw in raw_entries:
        if not isinstance(raw, dict):
            continue
        try:
            rows.append(parse_team_record(raw))
        except NormalizationSkipped as exc:
            logger.debug(f"{name}: skipping standings entry: {exc}")

    rows.sort(key=lambda r: (-r[3], -r[1], r[2]))

    entries: List[StandingEntry] = []
    if rows:
        leader_wins, leader_losses = rows[0][1], rows[0][2]
        for team, wins, losses, _pct, w_stat, l_stat, p_stat in rows:
            gb = games_behind(leader_wins, leader_losses, wins, losses)
            entries.append(
                StandingEntry(
                    team=team,
                    stats=(w_stat, l_stat, p_stat, StandingStat("gamesBehind", gb, format_games_behind(gb))),
                )
            )

    return Conference(id=str(conf_id), name=name, abbreviation=abbreviation, entries=tuple(entries))


def _conference_node(payload: Dict[str, Any], group: str) -> Optional[Dict[str, Any]]:
    """
    Locate the node holding standings.entries for a group.

    The group endpoint answers either with the conference at the top level or
    wrapped in children[].
    """
    children = payload.get("children")
    if isinstance(children, list) and children:
        nodes = [c for c in children if isinstance(c, dict)]
        for c in nodes:
            if str(c.get("id")) == str(group):
                return c
        for c in nodes:
            if isinstance(get_nested(c, ["standings", "entries"]), list):
                return c
        return None
    if isinstance(get_nested(payload, ["standings", "entries"]), list):
        return payload
    return None


def _parse_season(payload: Dict[str, Any]) -> Optional[Season]:
    season = payload.get("season")
    if not isinstance(season, dict) or season.get("year") is None:
        return None
    try:
        return Season(year=int(season["year"]), type=int(season.get("type") or 2))
    except (TypeError, ValueError):
        return None


@dataclass
class StandingsService:
    """Service responsible for returning ranked conference standings."""

    client: ESPNClient
    pipeline: RequestPipeline
    cache: SWRCache
    groups: Sequence[Tuple[str, str]]
    standings_ttl: float = 300.0

    async def _fetch_group(self, group: str) -> Dict[str, Any]:
        return await self.pipeline.request(
            lambda: self.client.standings(group),
            label=f"standings group {group}",
        )

    def _build_conference(self, group: str, fallback_name: str, payload: Any) -> Optional[Conference]:
        """Validate and rank one group payload; None when the shape is unusable."""
        if not isinstance(payload, dict):
            logger.warning(f"standings group {group}: payload is not an object")
            return None
        try:
            validate_standings(payload)
        except ValidationFailed as exc:
            logger.warning(f"standings group {group}: {exc}")

        node = _conference_node(payload, group)
        if node is None:
            logger.warning(f"standings group {group}: no entries in payload")
            return None

        return rank_conference(
            conf_id=str(node.get("id") or group),
            name=node.get("name") or fallback_name,
            abbreviation=node.get("abbreviation") or "",
            raw_entries=get_nested(node, ["standings", "entries"], []),
        )

    async def compute_standings(self) -> Standings:
        """
        Fetch every conference group in parallel and assemble ranked standings.

        A failing group is left out; when every group fails the result is an
        empty Standings rather than an exception.
        """
        results = await asyncio.gather(
            *(self._fetch_group(group) for group, _ in self.groups),
            return_exceptions=True,
        )

        conferences: List[Conference] = []
        season: Optional[Season] = None
        for (group, name), result in zip(self.groups, results):
            if isinstance(result, Exception):
                logger.warning(f"standings group {group} ({name}) unavailable: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            conf = self._build_conference(group, name, result)
            if conf is not None:
                conferences.append(conf)
                season = season or _parse_season(result)

        standings = Standings(
            conferences=tuple(conferences),
            season=season,
            generated_at=datetime.now(timezone.utc),
        )
        if standings.is_empty:
            logger.warning("standings unavailable for every conference group")
        return standings

    async def _load(self) -> Standings:
        """Cache loader; an empty result is a failure so it never replaces cached data."""
        standings = await self.compute_standings()
        if standings.is_empty:
            raise RequestFailed("standings unavailable for every conference group", label=STANDINGS_KEY)
        return standings

    async def get_standings(self) -> Standings:
        """
        Return cached standings, refreshing in the background once stale.

        With nothing cached and every group failing, returns an empty Standings.
        """
        try:
            return await self.cache.get_or_set(
                key=STANDINGS_KEY,
                ttl_seconds=self.standings_ttl,
                loader=self._load,
            )
        except RequestFailed as exc:
            logger.warning(f"serving empty standings: {exc}")
            return Standings(generated_at=datetime.now(timezone.utc))

    async def refresh_standings(self) -> Standings:
        """Invalidate cached standings and recompute them."""
        self.cache.invalidate(STANDINGS_KEY)
        logger.info("standings refresh requested")
        return await self.get_standings()

    async def prefetch(self) -> Standings:
        """Warm the standings cache, waiting for the fetch if stale. Failures propagate."""
        return await self.cache.warm(
            key=STANDINGS_KEY,
            ttl_seconds=self.standings_ttl,
            loader=self._load,
        )
