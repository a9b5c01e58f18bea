# nba_ticker/schemas.py
"""
Expected shapes of ESPN payloads.

These models only check structure; the services keep reading the raw dicts so
that a payload failing validation can still be parsed best-effort.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ValidationFailed


class _Loose(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ------------------------------------------------------------------
# Scoreboard
# ------------------------------------------------------------------
class TeamSchema(_Loose):
    id: Union[str, int]
    name: Optional[str] = None
    display_name: str = Field(alias="displayName")
    abbreviation: str
    logo: Optional[str] = None
    color: Optional[str] = None
    alternate_color: Optional[str] = Field(default=None, alias="alternateColor")


class RecordSchema(_Loose):
    summary: str


class CompetitorSchema(_Loose):
    team: TeamSchema
    home_away: Optional[str] = Field(default=None, alias="homeAway")
    score: Optional[str] = None
    records: Optional[List[RecordSchema]] = None


class VenueSchema(_Loose):
    full_name: Optional[str] = Field(default=None, alias="fullName")


class CompetitionSchema(_Loose):
    competitors: List[CompetitorSchema]
    venue: Optional[VenueSchema] = None


class StatusTypeSchema(_Loose):
    name: str


class StatusSchema(_Loose):
    type: StatusTypeSchema
    period: Optional[int] = None
    display_clock: Optional[str] = Field(default=None, alias="displayClock")


class EventSchema(_Loose):
    id: str
    date: str
    status: StatusSchema
    competitions: List[CompetitionSchema]


class ScoreboardResponse(_Loose):
    events: List[EventSchema] = Field(default_factory=list)


# ------------------------------------------------------------------
# Standings
# ------------------------------------------------------------------
class StandingsTeamSchema(_Loose):
    id: Union[str, int]
    display_name: str = Field(alias="displayName")
    abbreviation: Optional[str] = None


class StatSchema(_Loose):
    name: str
    value: Optional[Union[float, str]] = None
    display_value: Optional[str] = Field(default=None, alias="displayValue")


class StandingsRecordSchema(_Loose):
    team: StandingsTeamSchema
    stats: List[StatSchema]


class StandingsBlockSchema(_Loose):
    entries: List[StandingsRecordSchema]


class ConferenceSchema(_Loose):
    id: Optional[Union[str, int]] = None
    name: str
    standings: StandingsBlockSchema


class StandingsResponse(_Loose):
    children: List[ConferenceSchema] = Field(default_factory=list)
    standings: Optional[StandingsBlockSchema] = None


# ------------------------------------------------------------------
# Box score summary
# ------------------------------------------------------------------
class SummaryResponse(_Loose):
    boxscore: Dict[str, Any]
    header: Optional[Dict[str, Any]] = None


def _validate(model: type[BaseModel], payload: Any, what: str) -> BaseModel:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()[:5]
        )
        raise ValidationFailed(f"{what} payload failed validation: {issues}") from exc


def validate_scoreboard(payload: Any) -> ScoreboardResponse:
    return _validate(ScoreboardResponse, payload, "scoreboard")


def validate_standings(payload: Any) -> StandingsResponse:
    return _validate(StandingsResponse, payload, "standings")


def validate_summary(payload: Any) -> SummaryResponse:
    return _validate(SummaryResponse, payload, "summary")
