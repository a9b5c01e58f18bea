"""
Services package exports.
"""
from .boxscore_service import BoxScoreService
from .games_service import GamesService
from .standings_service import StandingsService

__all__ = ["BoxScoreService", "GamesService", "StandingsService"]
