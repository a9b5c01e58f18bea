# nba_ticker/config.py
"""
Configuration for the NBA scores popup backend.

This module centralizes all tunable settings (viewer timezone, API base URLs,
rate limits, cache freshness windows, prefetch intervals and the conference
groups used for standings).
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import List, Tuple


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, returning default on missing/invalid values."""
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable, returning default on missing/invalid values."""
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean-ish environment variable (1/true/yes/on)."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_pairs(name: str, default: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """
    Read a semicolon-delimited ID=NAME list.

    Example:
      CONFERENCE_GROUPS="5=Eastern Conference;6=Western Conference"

    Returns default if unset or malformed.
    """
    raw = os.getenv(name)
    if not raw:
        return default

    pairs: List[Tuple[str, str]] = []
    for part in raw.split(";"):
        part = part.strip()
        if not part or "=" not in part:
            continue
        key, val = part.split("=", 1)
        key = key.strip()
        val = val.strip()
        if key and val:
            pairs.append((key, val))

    return pairs or default


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable app configuration.

    Window radius and prefetch intervals were tuned by hand; they are exposed
    here so they can be adjusted without code changes.
    """

    # Core settings
    tz: str = os.getenv("TZ", "America/New_York")
    espn_api_base: str = os.getenv(
        "ESPN_API_BASE", "https://site.api.espn.com/apis/site/v2/sports/basketball/nba"
    )
    espn_standings_base: str = os.getenv(
        "ESPN_STANDINGS_BASE", "https://site.api.espn.com/apis/v2/sports/basketball/nba"
    )
    request_timeout_seconds: float = _env_float("REQUEST_TIMEOUT_SECONDS", 10.0)

    # Rate limiting
    rate_limit_max_requests: int = _env_int("RATE_LIMIT_MAX_REQUESTS", 30)
    rate_limit_window_seconds: float = _env_float("RATE_LIMIT_WINDOW_SECONDS", 60.0)
    rate_limit_retry_delay_seconds: float = _env_float("RATE_LIMIT_RETRY_DELAY_SECONDS", 1.0)
    rate_limit_max_retries: int = _env_int("RATE_LIMIT_MAX_RETRIES", 3)

    # Cache controls
    scores_window_radius_days: int = _env_int("SCORES_WINDOW_RADIUS_DAYS", 2)
    scores_fresh_seconds: float = _env_float("SCORES_FRESH_SECONDS", 120.0)
    standings_fresh_seconds: float = _env_float("STANDINGS_FRESH_SECONDS", 300.0)
    boxscore_fresh_seconds: float = _env_float("BOXSCORE_FRESH_SECONDS", 30.0)

    # Prefetch
    prefetch_enabled: bool = _env_flag("PREFETCH_ENABLED", True)
    scores_prefetch_interval_seconds: float = _env_float("SCORES_PREFETCH_INTERVAL_SECONDS", 120.0)
    standings_prefetch_interval_seconds: float = _env_float("STANDINGS_PREFETCH_INTERVAL_SECONDS", 600.0)
    prefetch_adjacent_windows: int = _env_int("PREFETCH_ADJACENT_WINDOWS", 1)

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Standings groups: ESPN numeric group id -> display name
    conference_groups: List[Tuple[str, str]] = field(default_factory=lambda: [
        ("5", "Eastern Conference"),
        ("6", "Western Conference"),
    ])

    def __post_init__(self):
        """
        Override defaults from optional env vars.

        Supported env options:
          - CONFERENCE_GROUPS (semicolon ID=NAME;ID=NAME)
        """
        # dataclass frozen => use object.__setattr__
        object.__setattr__(
            self,
            "conference_groups",
            _env_pairs("CONFERENCE_GROUPS", list(self.conference_groups)),
        )
