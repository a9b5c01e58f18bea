import importlib

import pytest

from nba_ticker import config


@pytest.fixture
def reload_config(monkeypatch):
    """Reload nba_ticker.config after env changes; class defaults are read at import."""
    def _reload():
        return importlib.reload(config)

    yield _reload

    monkeypatch.undo()
    importlib.reload(config)


def test_defaults(monkeypatch, reload_config):
    for name in ("TZ", "RATE_LIMIT_MAX_REQUESTS", "SCORES_WINDOW_RADIUS_DAYS", "PREFETCH_ENABLED",
                 "CONFERENCE_GROUPS", "SCORES_PREFETCH_INTERVAL_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    cfg = reload_config().AppConfig()

    assert cfg.tz == "America/New_York"
    assert cfg.rate_limit_max_requests == 30
    assert cfg.rate_limit_max_retries == 3
    assert cfg.scores_window_radius_days == 2
    assert cfg.scores_prefetch_interval_seconds == 120.0
    assert cfg.standings_prefetch_interval_seconds == 600.0
    assert cfg.prefetch_enabled is True
    assert cfg.conference_groups == [("5", "Eastern Conference"), ("6", "Western Conference")]


def test_env_overrides(monkeypatch, reload_config):
    monkeypatch.setenv("TZ", "America/Los_Angeles")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "10")
    monkeypatch.setenv("RATE_LIMIT_RETRY_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("SCORES_WINDOW_RADIUS_DAYS", "3")
    monkeypatch.setenv("PREFETCH_ENABLED", "off")
    monkeypatch.setenv("CONFERENCE_GROUPS", "5=East; 6=West;bogus")

    cfg = reload_config().AppConfig()

    assert cfg.tz == "America/Los_Angeles"
    assert cfg.rate_limit_max_requests == 10
    assert cfg.rate_limit_retry_delay_seconds == 0.25
    assert cfg.scores_window_radius_days == 3
    assert cfg.prefetch_enabled is False
    assert cfg.conference_groups == [("5", "East"), ("6", "West")]


def test_invalid_numbers_fall_back_to_defaults(monkeypatch, reload_config):
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "lots")
    monkeypatch.setenv("STANDINGS_FRESH_SECONDS", "")

    cfg = reload_config().AppConfig()

    assert cfg.rate_limit_max_requests == 30
    assert cfg.standings_fresh_seconds == 300.0


def test_malformed_conference_groups_keep_defaults(monkeypatch, reload_config):
    monkeypatch.setenv("CONFERENCE_GROUPS", "nothing-useful")

    cfg = reload_config().AppConfig()

    assert cfg.conference_groups == [("5", "Eastern Conference"), ("6", "Western Conference")]
