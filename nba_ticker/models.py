# nba_ticker/models.py
"""
Domain models for the popup.

Every successful fetch produces fresh frozen instances; nothing here is
mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence


class GameStatus(str, Enum):
    """Three-state lifecycle of a game. Declaration order is the only legal progression."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [GameStatus.SCHEDULED, GameStatus.IN_PROGRESS, GameStatus.FINAL]


@dataclass(frozen=True)
class TeamRecord:
    """Season win-loss record shown next to a team on the scoreboard."""
    wins: int
    losses: int


@dataclass(frozen=True)
class Team:
    """A team as it appears in one payload. Identity is by id."""
    id: str
    name: str
    display_name: str
    abbreviation: str
    logo: str = ""
    color: str = "000000"
    alternate_color: str = "ffffff"
    record: Optional[TeamRecord] = None


@dataclass(frozen=True)
class Score:
    home: int
    away: int


@dataclass(frozen=True)
class Game:
    """A normalized scoreboard event for display/JSON output."""
    id: str
    date: datetime          # viewer-local start time
    status: GameStatus
    home_team: Team
    away_team: Team
    score: Optional[Score] = None
    period: Optional[int] = None
    display_clock: Optional[str] = None
    venue: Optional[str] = None


@dataclass(frozen=True)
class StandingStat:
    """One named statistic with its raw value and display string."""
    name: str
    value: float
    display_value: str


@dataclass(frozen=True)
class StandingEntry:
    """A team row; stats are ordered wins, losses, winPercent, gamesBehind."""
    team: Team
    stats: Sequence[StandingStat]

    def stat(self, name: str) -> Optional[StandingStat]:
        for s in self.stats:
            if s.name == name:
                return s
        return None


@dataclass(frozen=True)
class Conference:
    """A conference; entry order is the ranking."""
    id: str
    name: str
    abbreviation: str
    entries: Sequence[StandingEntry]


@dataclass(frozen=True)
class Season:
    year: int
    type: int


@dataclass(frozen=True)
class Standings:
    """
    Ranked standings for all conferences.

    is_empty distinguishes "no data available" from a result still loading.
    """
    conferences: Sequence[Conference] = field(default_factory=tuple)
    season: Optional[Season] = None
    generated_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not any(c.entries for c in self.conferences)
