# nba_ticker/scheduler.py
"""
Background prefetching.

Two independent loops keep the caches warm ahead of the UI: score windows on a
short interval, standings on a long one. Prefetching is best-effort; errors are
logged and the next cycle runs as usual.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import List, Optional

from loguru import logger

from .services.games_service import GamesService
from .services.standings_service import StandingsService


class PrefetchScheduler:
    """Runs the score-window and standings prefetch cycles on the event loop."""

    def __init__(
        self,
        games: GamesService,
        standings: StandingsService,
        scores_interval: float = 120.0,
        standings_interval: float = 600.0,
        adjacent_windows: int = 1,
    ) -> None:
        self.games = games
        self.standings = standings
        self.scores_interval = scores_interval
        self.standings_interval = standings_interval
        self.adjacent_windows = max(0, int(adjacent_windows))
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def anchor_days(self):
        """Anchor days to warm: today plus adjacent, non-overlapping windows on each side."""
        today = self.games.today()
        span = 2 * self.games.radius_days + 1
        return [
            today + timedelta(days=k * span)
            for k in range(-self.adjacent_windows, self.adjacent_windows + 1)
        ]

    async def run_scores_cycle(self) -> int:
        """Warm the score windows; returns how many were warmed successfully."""
        anchors = self.anchor_days()
        results = await asyncio.gather(
            *(self.games.prefetch_window(day) for day in anchors),
            return_exceptions=True,
        )
        ok = 0
        for day, result in zip(anchors, results):
            if isinstance(result, Exception):
                logger.warning(f"score prefetch for window around {day.isoformat()} failed: {result}")
            else:
                ok += 1
        return ok

    async def run_standings_cycle(self) -> bool:
        """Warm the standings cache; returns False when the cycle failed."""
        try:
            await self.standings.prefetch()
        except Exception as exc:
            logger.warning(f"standings prefetch failed: {exc}")
            return False
        return True

    async def _loop(self, name: str, cycle, interval: float) -> None:
        while True:
            try:
                await cycle()
            except Exception as exc:
                logger.exception(f"{name} prefetch cycle crashed: {exc}")
            await asyncio.sleep(interval)

    def start(self) -> None:
        """Start both loops on the running event loop; each cycle runs once immediately."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._loop("scores", self.run_scores_cycle, self.scores_interval)),
            loop.create_task(self._loop("standings", self.run_standings_cycle, self.standings_interval)),
        ]
        logger.info(
            f"prefetch started (scores every {self.scores_interval:.0f}s, "
            f"standings every {self.standings_interval:.0f}s)"
        )

    async def stop(self) -> None:
        """Cancel both loops and wait for them to finish."""
        tasks, self._tasks = self._tasks, []
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("prefetch stopped")


def build_scheduler(games: GamesService, standings: StandingsService, cfg) -> Optional[PrefetchScheduler]:
    """Build a scheduler from AppConfig, or None when prefetching is disabled."""
    if not cfg.prefetch_enabled:
        return None
    return PrefetchScheduler(
        games=games,
        standings=standings,
        scores_interval=cfg.scores_prefetch_interval_seconds,
        standings_interval=cfg.standings_prefetch_interval_seconds,
        adjacent_windows=cfg.prefetch_adjacent_windows,
    )
