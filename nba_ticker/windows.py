# nba_ticker/windows.py
"""
Windowed cache keys for scoreboard fetches.

A window is a span of calendar days centred on an anchor day in the viewer's
timezone: [anchor - radius, anchor + radius]. One scoreboard request covers the
whole window, so navigating a couple of days either way is served from cache.
Adjacent windows overlap; each is keyed and cached on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional, Union

DEFAULT_RADIUS_DAYS = 2

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class CacheWindow:
    """A contiguous span of local calendar days fetched and cached as one unit."""
    anchor: date
    start: date
    end: date
    key: str

    @property
    def dates_param(self) -> str:
        """Provider date-range parameter, e.g. '20240313-20240317'."""
        return f"{self.start:%Y%m%d}-{self.end:%Y%m%d}"

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end


def local_day(value: DateLike, tz: Optional[tzinfo]) -> date:
    """
    Floor a date/datetime to the viewer's calendar day.

    Aware datetimes are converted into tz first; naive datetimes are taken as
    already expressed in viewer-local wall time.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None and tz is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def window_key(start: date) -> str:
    return f"scores:{start.isoformat()}"


def window_key_for(value: DateLike, tz: Optional[tzinfo] = None,
                   radius_days: int = DEFAULT_RADIUS_DAYS) -> CacheWindow:
    """Return the canonical window anchored on value's local day."""
    anchor = local_day(value, tz)
    start = anchor - timedelta(days=radius_days)
    end = anchor + timedelta(days=radius_days)
    return CacheWindow(anchor=anchor, start=start, end=end, key=window_key(start))


def resolve_window(day: date, cached: Iterable[CacheWindow],
                   radius_days: int = DEFAULT_RADIUS_DAYS) -> CacheWindow:
    """
    Pick the window that should serve day.

    Prefers an already cached window covering day (anchored on day first, then
    the nearest anchor, earlier anchor on ties); otherwise the canonical window
    for day.
    """
    canonical = window_key_for(day, None, radius_days)
    covering = [w for w in cached if w.covers(day)]
    if not covering:
        return canonical
    for w in covering:
        if w.key == canonical.key:
            return w
    covering.sort(key=lambda w: (abs((w.anchor - day).days), w.anchor))
    return covering[0]
