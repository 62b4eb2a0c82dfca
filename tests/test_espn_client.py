"""Tests for the ESPN fantasy client (request shape and bundle assembly)."""

import json

import httpx
import pytest

from conftest import HOUR_MS, LEAGUE_ID, NOW, SEASON_ID, raw_league_settings, standard_bundle
from fantasy_gm.core.config import Settings
from fantasy_gm.core.errors import ConfigurationError
from fantasy_gm.core.http import ExternalAPIError
from fantasy_gm.core.types import TransactionType
from fantasy_gm.providers.espn import EspnClient, parse_transactions

LEAGUE_PATH = f"/apis/v3/games/fba/seasons/{SEASON_ID}/segments/0/leagues/{LEAGUE_ID}"


def make_client(handler) -> EspnClient:
    return EspnClient(
        league_id=LEAGUE_ID,
        season_id=SEASON_ID,
        espn_s2="secret-s2",
        swid="{SWID}",
        requests_per_minute=60000,
        max_retries=0,
        transport=httpx.MockTransport(handler),
    )


def raw_transaction(team_id, items, proposed, status="EXECUTED", tx_type="FREEAGENT"):
    return {
        "id": f"tx-{team_id}-{proposed}",
        "teamId": team_id,
        "type": tx_type,
        "status": status,
        "proposedDate": proposed,
        "items": [{"type": item_type, "playerId": player_id} for item_type, player_id in items],
    }


def league_handler(transactions=None, schedule_status=200):
    """Serve the standard league by ESPN view."""
    bundle = standard_bundle()

    def handler(request: httpx.Request) -> httpx.Response:
        views = request.url.params.get_list("view")
        path = request.url.path

        if path == f"/apis/v3/games/fba/seasons/{SEASON_ID}":
            if schedule_status != 200:
                return httpx.Response(schedule_status, text="error")
            return httpx.Response(200, json={"settings": {"proTeams": bundle.pro_teams}})

        assert path == LEAGUE_PATH
        if "mSettings" in views:
            return httpx.Response(200, json=raw_league_settings())
        if "mRoster" in views:
            return httpx.Response(200, json={"teams": bundle.teams})
        if "mMatchup" in views:
            return httpx.Response(200, json={"schedule": bundle.matchups})
        if "kona_player_info" in views:
            return httpx.Response(200, json=bundle.free_agents)
        if "mTransactions2" in views:
            return httpx.Response(200, json={"transactions": transactions or []})
        return httpx.Response(404, text="unknown view")

    return handler


class TestConfiguration:
    def test_from_settings_requires_credentials(self):
        settings = Settings(_env_file=None, espn_league_id=LEAGUE_ID, espn_s2=None, espn_swid="x")
        with pytest.raises(ConfigurationError, match="ESPN_S2"):
            EspnClient.from_settings(settings)

    def test_from_settings(self, settings):
        client = EspnClient.from_settings(settings)
        assert client.league_id == LEAGUE_ID
        assert client.season_id == SEASON_ID
        assert client.is_configured()


class TestRequests:
    async def test_cookies_and_views_are_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["cookie"] = request.headers["cookie"]
            seen["views"] = request.url.params.get_list("view")
            return httpx.Response(200, json=raw_league_settings())

        async with make_client(handler) as client:
            league = await client.get_league_settings()

        assert seen["cookie"] == "espn_s2=secret-s2; SWID={SWID}"
        assert seen["views"] == ["mSettings", "mStatus"]
        assert league.id == LEAGUE_ID
        assert league.scoring_period_id == 80
        assert league.current_matchup_period == 12

    async def test_free_agent_filter_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["filter"] = json.loads(request.headers["x-fantasy-filter"])
            seen["scoring_period"] = request.url.params.get("scoringPeriodId")
            return httpx.Response(200, json={"players": [{"id": 1, "player": {"id": 1}}]})

        async with make_client(handler) as client:
            result = await client.get_free_agents(limit=25, scoring_period_id=80)

        players_filter = seen["filter"]["players"]
        assert players_filter["filterStatus"]["value"] == ["FREEAGENT", "WAIVERS"]
        assert players_filter["limit"] == 25
        assert players_filter["sortPercOwned"]["sortAsc"] is False
        assert seen["scoring_period"] == "80"
        assert len(result["players"]) == 1

    async def test_player_info_uses_filter_ids(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["filter"] = json.loads(request.headers["x-fantasy-filter"])
            return httpx.Response(200, json=[{"id": 7, "fullName": "Someone"}])

        async with make_client(handler) as client:
            players = await client.get_player_info([7, 8])

        assert seen["path"].endswith(f"/seasons/{SEASON_ID}/players")
        assert seen["filter"]["players"]["filterIds"]["value"] == [7, 8]
        assert players == [{"id": 7, "fullName": "Someone"}]

    async def test_player_info_without_ids_skips_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with make_client(handler) as client:
            assert await client.get_player_info([]) == []

    async def test_required_feed_errors_propagate(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="unauthorized")

        async with make_client(handler) as client:
            with pytest.raises(ExternalAPIError):
                await client.get_league_settings()


class TestOptionalFeeds:
    async def test_schedule_failure_returns_empty(self):
        async with make_client(league_handler(schedule_status=500)) as client:
            assert await client.get_pro_team_schedule() == []

    async def test_transactions_failure_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="error")

        async with make_client(handler) as client:
            assert await client.get_recent_transactions(now=NOW) == []

    async def test_empty_bodies_return_empty(self):
        async with make_client(lambda request: httpx.Response(200, content=b"")) as client:
            assert await client.get_pro_team_schedule() == []
            assert await client.get_recent_transactions(now=NOW) == []

    async def test_empty_optional_feeds_do_not_fail_bundle(self):
        serve_league = league_handler()

        def handler(request: httpx.Request) -> httpx.Response:
            views = request.url.params.get_list("view")
            if request.url.path.endswith(f"/seasons/{SEASON_ID}") or "mTransactions2" in views:
                return httpx.Response(200, content=b"")
            return serve_league(request)

        async with make_client(handler) as client:
            bundle = await client.fetch_league_bundle()

        assert bundle.pro_teams == []
        assert bundle.transactions == []
        assert len(bundle.teams) == 2


class TestFetchLeagueBundle:
    async def test_bundle_contains_every_feed(self):
        transactions = [raw_transaction(2, [("DROP", 202)], NOW - HOUR_MS)]

        async with make_client(league_handler(transactions)) as client:
            bundle = await client.fetch_league_bundle()

        assert bundle.settings.scoring_period_id == 80
        assert [team["id"] for team in bundle.teams] == [1, 2]
        assert len(bundle.matchups) == 1
        assert len(bundle.free_agents["players"]) == 5
        assert {team["abbrev"] for team in bundle.pro_teams} == {"LAL", "GSW", "MIL", "BOS"}
        assert bundle.team_watchlist(1) == [303]
        assert bundle.team_watchlist(99) == []

    async def test_bundle_survives_missing_schedule(self):
        async with make_client(league_handler(schedule_status=503)) as client:
            bundle = await client.fetch_league_bundle()

        assert bundle.pro_teams == []
        assert len(bundle.teams) == 2


class TestParseTransactions:
    def test_only_recent_executed_waiver_moves(self):
        cutoff = NOW - 24 * HOUR_MS
        raw = [
            raw_transaction(2, [("ADD", 301), ("DROP", 202)], NOW - HOUR_MS),
            raw_transaction(3, [("ADD", 302)], NOW - HOUR_MS, status="PENDING"),
            raw_transaction(3, [("ADD", 303)], NOW - HOUR_MS, tx_type="TRADE_ACCEPT"),
            raw_transaction(4, [("DROP", 304)], NOW - 30 * HOUR_MS),
            raw_transaction(5, [("LINEUP", 305), ("ADD", 305)], NOW - 2 * HOUR_MS, tx_type="WAIVER"),
        ]

        transactions = parse_transactions(raw, cutoff)

        assert [(tx.team_id, tx.type, tx.player_id) for tx in transactions] == [
            (2, TransactionType.ADD, 301),
            (2, TransactionType.DROP, 202),
            (5, TransactionType.ADD, 305),
        ]
        assert transactions[0].timestamp == NOW - HOUR_MS
