import asyncio

import pytest

from conftest import (
    FakeClock,
    FakeResponse,
    FakeSession,
    make_standings_entry,
    make_standings_payload,
)

from nba_ticker.cache import SWRCache
from nba_ticker.errors import RequestFailed
from nba_ticker.espn_client import ESPNClient
from nba_ticker.pipeline import RequestPipeline
from nba_ticker.rate_limit import RateLimitMonitor
from nba_ticker.services import games_service, standings_service
from nba_ticker.services.games_service import get_nested
from nba_ticker.services.standings_service import (
    StandingsService,
    format_games_behind,
    format_win_percent,
    games_behind,
    rank_conference,
)

GROUPS = [("5", "Eastern Conference"), ("6", "Western Conference")]

EAST = [
    make_standings_entry("2", "Boston Celtics", "BOS", 50, 30),
    make_standings_entry("18", "New York Knicks", "NY", 57, 25),
    make_standings_entry("20", "Philadelphia 76ers", "PHI", 41, 41),
]
WEST = [
    make_standings_entry("25", "Oklahoma City Thunder", "OKC", 57, 25),
    make_standings_entry("7", "Denver Nuggets", "DEN", 57, 25, pct=0.695),
    make_standings_entry("13", "Los Angeles Lakers", "LAL", 47, 35),
]


def _service(routes, clock=None) -> StandingsService:
    client = ESPNClient("https://espn.test/site/nba", standings_base_url="https://espn.test/v2/nba",
                        session=FakeSession({"standings": routes}))
    pipeline = RequestPipeline(RateLimitMonitor(max_requests=100))
    return StandingsService(
        client=client,
        pipeline=pipeline,
        cache=SWRCache(time_fn=clock or FakeClock()),
        groups=GROUPS,
        standings_ttl=300.0,
    )


def _by_group(payloads):
    def route(params):
        return payloads[params["group"]]
    return route


def _stat(entry, name):
    return entry.stat(name)


# -------------------------
# Pure helpers
# -------------------------

def test_games_behind_formula_and_display():
    gb = games_behind(leader_wins=57, leader_losses=25, wins=50, losses=30)

    assert gb == 6.0
    assert format_games_behind(gb) == "6"
    assert format_games_behind(games_behind(57, 25, 50, 31)) == "6.5"
    assert format_games_behind(0.0) == "-"


def test_win_percent_display():
    assert format_win_percent(0.6097) == ".610"
    assert format_win_percent(0.0) == ".000"
    assert format_win_percent(1.0) == "1.000"


def test_rank_conference_orders_by_win_percent_with_leader_at_zero():
    conf = rank_conference("5", "Eastern Conference", "East", EAST)

    assert [e.team.abbreviation for e in conf.entries] == ["NY", "BOS", "PHI"]
    leader = conf.entries[0]
    assert _stat(leader, "gamesBehind").value == 0
    assert _stat(leader, "gamesBehind").display_value == "-"

    boston = conf.entries[1]
    assert _stat(boston, "gamesBehind").value == 6.0
    assert _stat(boston, "gamesBehind").display_value == "6"

    gbs = [_stat(e, "gamesBehind").value for e in conf.entries]
    pcts = [_stat(e, "winPercent").value for e in conf.entries]
    assert gbs == sorted(gbs)
    assert pcts == sorted(pcts, reverse=True)
    assert [s.name for s in leader.stats] == ["wins", "losses", "winPercent", "gamesBehind"]


def test_ties_on_win_percent_prefer_more_wins_then_fewer_losses():
    entries = [
        make_standings_entry("1", "Team One", "ONE", 10, 10, pct=0.5),
        make_standings_entry("2", "Team Two", "TWO", 20, 20, pct=0.5),
        make_standings_entry("3", "Team Three", "THR", 20, 19, pct=0.5),
    ]

    conf = rank_conference("6", "Western Conference", "West", entries)

    assert [e.team.id for e in conf.entries] == ["3", "2", "1"]


def test_missing_stats_default_and_do_not_fail_batch():
    entries = [
        make_standings_entry("18", "New York Knicks", "NY", 57, 25),
        make_standings_entry("99", "Expansion Team", "EXP", None, None),
    ]

    conf = rank_conference("5", "Eastern Conference", "East", entries)

    expansion = conf.entries[-1]
    assert expansion.team.id == "99"
    assert (_stat(expansion, "wins").value, _stat(expansion, "wins").display_value) == (0, "0")
    assert (_stat(expansion, "losses").value, _stat(expansion, "losses").display_value) == (0, "0")
    assert _stat(expansion, "winPercent").display_value == ".000"


def test_entries_without_team_are_excluded():
    broken = {"stats": [{"name": "wins", "value": 60}]}
    no_id = make_standings_entry("", "Nameless", "NA", 10, 10)

    conf = rank_conference("5", "Eastern Conference", "East", EAST + [broken, no_id, "junk"])

    assert len(conf.entries) == 3


def test_standings_share_the_games_path_helper():
    assert standings_service.get_nested is games_service.get_nested

    payload = {"children": [{"standings": {"entries": ["x"]}}]}
    assert get_nested(payload, ["children", 0, "standings", "entries"]) == ["x"]
    assert get_nested(payload, ["children", 3, "standings"], default=[]) == []
    assert get_nested(payload, ["children", "0"], default="?") == "?"


def test_empty_conference_has_no_entries():
    conf = rank_conference("5", "Eastern Conference", "East", [])

    assert conf.entries == ()


# -------------------------
# Service
# -------------------------

def test_compute_standings_fetches_every_group():
    service = _service(_by_group({
        "5": make_standings_payload("5", "Eastern Conference", EAST),
        "6": make_standings_payload("6", "Western Conference", WEST),
    }))

    standings = asyncio.run(service.compute_standings())

    assert [c.name for c in standings.conferences] == ["Eastern Conference", "Western Conference"]
    assert standings.season.year == 2024
    assert not standings.is_empty
    west = standings.conferences[1]
    assert [e.team.abbreviation for e in west.entries] == ["OKC", "DEN", "LAL"]
    assert [_stat(e, "gamesBehind").display_value for e in west.entries] == ["-", "-", "10"]
    assert sorted(p["group"] for p in service.client.session.calls_to("standings")) == ["5", "6"]


def test_one_failing_group_is_left_out():
    service = _service(_by_group({
        "5": make_standings_payload("5", "Eastern Conference", EAST),
        "6": FakeResponse(500, {}),
    }))

    standings = asyncio.run(service.get_standings())

    assert [c.id for c in standings.conferences] == ["5"]


def test_top_level_entries_and_configured_name_fallback():
    payload = {"standings": {"entries": EAST}}
    service = _service(_by_group({"5": payload, "6": {"children": []}}))

    standings = asyncio.run(service.compute_standings())

    assert [c.name for c in standings.conferences] == ["Eastern Conference"]
    assert standings.conferences[0].id == "5"
    assert standings.season is None


def test_all_groups_failing_gives_explicit_empty_result():
    service = _service(FakeResponse(503, {}))

    standings = asyncio.run(service.get_standings())

    assert standings.is_empty
    assert standings.conferences == ()
    assert standings.generated_at is not None


def test_empty_result_is_not_cached():
    routes = [FakeResponse(503), FakeResponse(503), _by_group({
        "5": make_standings_payload("5", "Eastern Conference", EAST),
        "6": make_standings_payload("6", "Western Conference", WEST),
    })]

    def route(params):
        result = routes[0] if len(routes) == 1 else routes.pop(0)
        return result(params) if callable(result) else result

    service = _service(route)

    async def scenario():
        first = await service.get_standings()
        second = await service.get_standings()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.is_empty
    assert not second.is_empty


def test_failed_prefetch_keeps_cached_standings():
    clock = FakeClock()
    payloads = {
        "5": make_standings_payload("5", "Eastern Conference", EAST),
        "6": make_standings_payload("6", "Western Conference", WEST),
    }
    healthy = {"up": True}

    def route(params):
        return payloads[params["group"]] if healthy["up"] else FakeResponse(502)

    service = _service(route, clock=clock)

    async def scenario():
        cached = await service.prefetch()
        clock.advance(301)
        healthy["up"] = False
        with pytest.raises(RequestFailed):
            await service.prefetch()
        return cached, service.cache.peek("standings")

    cached, after = asyncio.run(scenario())

    assert after is cached


def test_refresh_standings_refetches():
    service = _service(_by_group({
        "5": make_standings_payload("5", "Eastern Conference", EAST),
        "6": make_standings_payload("6", "Western Conference", WEST),
    }))

    async def scenario():
        await service.get_standings()
        await service.get_standings()
        await service.refresh_standings()

    asyncio.run(scenario())

    assert len(service.client.session.calls_to("standings")) == 4
