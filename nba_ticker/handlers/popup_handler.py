# nba_ticker/handlers/popup_handler.py
"""
Handler/controller exposing the calls the popup UI makes.

Keeps the Flask routes thin by concentrating service orchestration and JSON
serialization here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..models import Game, Standings
from ..rate_limit import RateLimitMonitor, RateLimitStatus
from ..services.boxscore_service import BoxScoreService
from ..services.games_service import GamesService, sort_games_by_priority
from ..services.standings_service import StandingsService
from ..windows import DateLike


@dataclass
class PopupHandler:
    """Orchestrates games, standings and box score services for the UI."""

    games_service: GamesService
    standings_service: StandingsService
    boxscore_service: BoxScoreService
    monitor: RateLimitMonitor

    async def get_scores(self, day: Optional[DateLike] = None, favorite_team_id: Optional[str] = None) -> List[Game]:
        """
        Return games for a viewer-local day (today when omitted).

        With a favorite team, its games come first.
        """
        games = await self.games_service.get_scores(day or self.games_service.today())
        if favorite_team_id:
            return sort_games_by_priority(games, favorite_team_id)
        return games

    async def refresh_scores(self, day: Optional[DateLike] = None, favorite_team_id: Optional[str] = None) -> List[Game]:
        """Invalidate the window serving day and return fresh games."""
        games = await self.games_service.refresh_scores(day or self.games_service.today())
        if favorite_team_id:
            return sort_games_by_priority(games, favorite_team_id)
        return games

    async def get_standings(self) -> Standings:
        return await self.standings_service.get_standings()

    async def refresh_standings(self) -> Standings:
        return await self.standings_service.refresh_standings()

    async def get_box_score(self, game_id: str) -> Dict[str, Any]:
        return await self.boxscore_service.get_box_score(game_id)

    def get_rate_limit_status(self) -> RateLimitStatus:
        return self.monitor.get_status()


# -------------------------
# JSON serialization
# -------------------------

def game_to_dict(g: Game) -> Dict[str, Any]:
    """Serialize a Game model into JSON-safe primitives."""
    out = asdict(g)
    out["date"] = g.date.isoformat()
    out["status"] = g.status.value
    return out


def standings_to_dict(s: Standings) -> Dict[str, Any]:
    """Serialize Standings into JSON-safe primitives, keeping conference/entry order."""
    return {
        "generatedAt": s.generated_at.isoformat() if s.generated_at else None,
        "isEmpty": s.is_empty,
        "season": asdict(s.season) if s.season else None,
        "conferences": [
            {
                "id": c.id,
                "name": c.name,
                "abbreviation": c.abbreviation,
                "standings": [
                    {
                        "team": asdict(e.team),
                        "stats": [
                            {"name": st.name, "value": st.value, "displayValue": st.display_value}
                            for st in e.stats
                        ],
                    }
                    for e in c.entries
                ],
            }
            for c in s.conferences
        ],
    }


def rate_limit_to_dict(status: RateLimitStatus, summary: str = "") -> Dict[str, Any]:
    """Serialize a RateLimitStatus snapshot."""
    return {
        "isLimited": status.is_limited,
        "requestsInWindow": status.requests_in_window,
        "maxRequests": status.max_requests,
        "windowSeconds": status.window_seconds,
        "timeUntilReset": round(status.time_until_reset, 3),
        "totalRetries": status.total_retries,
        "summary": summary,
    }
