# nba_ticker/services/boxscore_service.py
"""
Box score summaries.

The payload is handed to the UI as-is; validation only decides whether to log a
warning or to fall back to an empty object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from loguru import logger

from ..cache import SWRCache
from ..errors import ValidationFailed
from ..espn_client import ESPNClient
from ..pipeline import RequestPipeline
from ..schemas import validate_summary


@dataclass
class BoxScoreService:
    """Service responsible for fetching and caching per-game summaries."""

    client: ESPNClient
    pipeline: RequestPipeline
    cache: SWRCache
    boxscore_ttl: float = 30.0

    async def _fetch(self, game_id: str) -> Dict[str, Any]:
        payload = await self.pipeline.request(
            lambda: self.client.summary(game_id),
            label=f"summary {game_id}",
        )
        if not isinstance(payload, dict):
            logger.warning(f"summary {game_id}: unusable payload of type {type(payload).__name__}")
            return {}
        try:
            validate_summary(payload)
        except ValidationFailed as exc:
            logger.warning(f"summary {game_id}: {exc}; returning raw payload")
        return payload

    async def get_box_score(self, game_id: str) -> Dict[str, Any]:
        """Return the (possibly stale) summary payload for a game."""
        game_id = str(game_id).strip()
        return await self.cache.get_or_set(
            key=f"boxscore:{game_id}",
            ttl_seconds=self.boxscore_ttl,
            loader=lambda: self._fetch(game_id),
        )
