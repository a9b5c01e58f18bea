# app.py
"""
Flask entrypoint for the NBA scores popup backend.

Routes (JSON):
  - GET  /api/scores?date=YYYYMMDD&favorite=<team id>
  - POST /api/scores/refresh?date=YYYYMMDD
  - GET  /api/standings
  - POST /api/standings/refresh
  - GET  /api/boxscore/<game_id>
  - GET  /api/rate-limit
  - GET  /health

Errors come back as {"error": {"type": ..., "message": ...}}:
  - 429 when the provider kept rate limiting after retries
  - 502 for other upstream failures
  - 400 for bad query parameters

Run with gunicorn using the factory: gunicorn "app:create_app()"
"""

from __future__ import annotations

import atexit
import os
from datetime import date, datetime
from typing import Any, Dict, Optional

import requests
from flask import Flask, jsonify, request

from nba_ticker.cache import SWRCache
from nba_ticker.config import AppConfig
from nba_ticker.errors import RateLimited, TickerError
from nba_ticker.espn_client import ESPNClient
from nba_ticker.handlers.popup_handler import (
    PopupHandler,
    game_to_dict,
    rate_limit_to_dict,
    standings_to_dict,
)
from nba_ticker.logging_setup import configure_logging
from nba_ticker.pipeline import RequestPipeline
from nba_ticker.rate_limit import RateLimitMonitor
from nba_ticker.runtime import LoopRuntime
from nba_ticker.scheduler import build_scheduler
from nba_ticker.services.boxscore_service import BoxScoreService
from nba_ticker.services.games_service import GamesService
from nba_ticker.services.standings_service import StandingsService


class BadRequest(ValueError):
    """Invalid query input."""


def create_app(cfg: Optional[AppConfig] = None, session: Optional[requests.Session] = None) -> Flask:
    """
    App factory.

    Builds shared dependencies (client, rate limit monitor, pipeline, cache and
    services) once per process and starts the background event loop that owns
    them, along with the prefetch scheduler when enabled.
    """
    cfg = cfg or AppConfig()
    configure_logging(cfg.log_level)

    client = ESPNClient(
        cfg.espn_api_base,
        standings_base_url=cfg.espn_standings_base,
        timeout=cfg.request_timeout_seconds,
        session=session,
    )
    monitor = RateLimitMonitor(
        max_requests=cfg.rate_limit_max_requests,
        window_seconds=cfg.rate_limit_window_seconds,
        retry_delay=cfg.rate_limit_retry_delay_seconds,
        max_retries=cfg.rate_limit_max_retries,
    )
    pipeline = RequestPipeline(monitor)
    cache = SWRCache()

    games = GamesService(
        client=client,
        pipeline=pipeline,
        cache=cache,
        tz_name=cfg.tz,
        fresh_seconds=cfg.scores_fresh_seconds,
        radius_days=cfg.scores_window_radius_days,
    )
    standings = StandingsService(
        client=client,
        pipeline=pipeline,
        cache=cache,
        groups=cfg.conference_groups,
        standings_ttl=cfg.standings_fresh_seconds,
    )
    boxscores = BoxScoreService(
        client=client,
        pipeline=pipeline,
        cache=cache,
        boxscore_ttl=cfg.boxscore_fresh_seconds,
    )
    handler = PopupHandler(
        games_service=games,
        standings_service=standings,
        boxscore_service=boxscores,
        monitor=monitor,
    )
    scheduler = build_scheduler(games, standings, cfg)

    async def on_start():
        if scheduler is not None:
            scheduler.start()

    async def on_stop():
        if scheduler is not None:
            await scheduler.stop()

    runtime = LoopRuntime(on_start=on_start, on_stop=on_stop)
    runtime.start()
    atexit.register(runtime.stop)

    # Upper bound for one UI call: every retry backoff plus the request timeouts.
    call_timeout = cfg.request_timeout_seconds * (cfg.rate_limit_max_retries + 2) + (
        cfg.rate_limit_retry_delay_seconds * (2 ** cfg.rate_limit_max_retries)
    ) + cfg.rate_limit_window_seconds

    app = Flask(__name__)
    app.extensions["nba_ticker"] = {"runtime": runtime, "handler": handler, "scheduler": scheduler}

    # -------------------------
    # Shared parsing helpers
    # -------------------------

    def parse_date() -> Optional[date]:
        """
        Parse ?date= as YYYYMMDD or YYYY-MM-DD.

        Missing means "today" in the viewer timezone.
        """
        raw = (request.args.get("date") or "").strip()
        if not raw:
            return None
        for fmt in ("%Y%m%d", "%Y-%m-%d"):
            try:
                return datetime.strptime(raw, fmt).date()
            except ValueError:
                continue
        raise BadRequest(f"invalid date {raw!r}; expected YYYYMMDD or YYYY-MM-DD")

    def parse_favorite() -> Optional[str]:
        raw = (request.args.get("favorite") or "").strip()
        return raw or None

    def scores_payload(day: Optional[date], games) -> Dict[str, Any]:
        return {
            "date": (day or handler.games_service.today()).isoformat(),
            "games": [game_to_dict(g) for g in games],
        }

    # -------------------------
    # Errors
    # -------------------------

    @app.errorhandler(BadRequest)
    def bad_request(exc: BadRequest):
        return jsonify({"error": {"type": "bad_request", "message": str(exc)}}), 400

    @app.errorhandler(TickerError)
    def ticker_error(exc: TickerError):
        status = 429 if isinstance(exc, RateLimited) else 502
        return jsonify({"error": {"type": exc.kind, "message": str(exc)}}), status

    # -------------------------
    # Scores
    # -------------------------

    @app.get("/api/scores")
    def api_scores():
        """Games for one viewer-local day, favorite team first when given."""
        day = parse_date()
        games = runtime.run(handler.get_scores(day, parse_favorite()), timeout=call_timeout)
        return jsonify(scores_payload(day, games))

    @app.post("/api/scores/refresh")
    def api_scores_refresh():
        """Invalidate the window serving ?date= and return fresh games."""
        day = parse_date()
        games = runtime.run(handler.refresh_scores(day, parse_favorite()), timeout=call_timeout)
        return jsonify(scores_payload(day, games))

    # -------------------------
    # Standings
    # -------------------------

    @app.get("/api/standings")
    def api_standings():
        standings = runtime.run(handler.get_standings(), timeout=call_timeout)
        return jsonify(standings_to_dict(standings))

    @app.post("/api/standings/refresh")
    def api_standings_refresh():
        standings = runtime.run(handler.refresh_standings(), timeout=call_timeout)
        return jsonify(standings_to_dict(standings))

    # -------------------------
    # Box score + status
    # -------------------------

    @app.get("/api/boxscore/<game_id>")
    def api_boxscore(game_id: str):
        if not game_id.strip().isdigit():
            raise BadRequest(f"invalid game id {game_id!r}")
        payload = runtime.run(handler.get_box_score(game_id), timeout=call_timeout)
        return jsonify(payload)

    @app.get("/api/rate-limit")
    def api_rate_limit():
        """Polled by the popup's status indicator."""
        status = runtime.run(_status(handler), timeout=5)
        return jsonify(rate_limit_to_dict(status, handler.monitor.describe()))

    @app.get("/health")
    def health():
        """Simple health endpoint for Docker/monitoring checks."""
        return {"ok": True, "loop": runtime.running}

    return app


async def _status(handler: PopupHandler):
    # Read on the loop thread so the monitor is never touched concurrently.
    return handler.get_rate_limit_status()


if __name__ == "__main__":
    # Dev server (not for production).
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "8000")), debug=False)
