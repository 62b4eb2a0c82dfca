"""
Pytest configuration for fantasy-gm tests.

Provides raw ESPN payload builders, a standard league bundle, the
normalized snapshot built from it, settings and in-memory storage.

Standard league (league 12345, season 2026, week 12, scoring period 80):
- Team 1 "Hoop Dreams" (mine): LeBron (LAL), Reaves (LAL), Curry (GSW),
  bench: Pritchard (BOS), Portis (MIL)
- Team 2 "Rival Squad": Anthony Davis (LAL), Jayson Tatum (BOS)
- Free agents: Vincent (LAL), Christie (LAL), Looney (GSW),
  Kornet (BOS, OUT), Hauser (BOS, DTD)
- Schedule from TODAY: LAL 4 games, GSW 3, MIL 3, BOS 2
"""

import asyncio
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import pytest

from fantasy_gm.core.config import Settings
from fantasy_gm.core.models import LeagueSnapshot
from fantasy_gm.core.types import PlayerStatus
from fantasy_gm.normalize import build_league_snapshot
from fantasy_gm.providers.espn import LeagueBundle, LeagueSettings
from fantasy_gm.storage import InMemoryBackend, SnapshotStore

LEAGUE_ID = 12345
SEASON_ID = 2026
MY_TEAM_ID = 1
SCORING_PERIOD = 80
WEEK = 12

TODAY = date(2026, 1, 12)
NOW = int(datetime(2026, 1, 12, 15, 0, tzinfo=timezone.utc).timestamp() * 1000)
HOUR_MS = 60 * 60 * 1000

# Pro team id -> day offsets (from TODAY) with a game
GAME_DAYS = {
    13: [0, 2, 4, 6],  # LAL
    9: [1, 3, 5],  # GSW
    15: [1, 4, 6],  # MIL
    2: [0, 3],  # BOS
}


# =============================================================================
# Raw ESPN payload builders
# =============================================================================


def raw_player(
    player_id: int,
    name: str,
    pro_team_id: int,
    slots: Optional[list[int]] = None,
    projected_avg: Optional[float] = 25.0,
    season_avg: Optional[float] = 25.0,
    injury_status: Optional[str] = None,
    percent_owned: float = 50.0,
    percent_change: float = 0.0,
) -> dict[str, Any]:
    first, _, last = name.partition(" ")
    stats = []
    if season_avg is not None:
        stats.append({"statSourceId": 0, "appliedAverage": season_avg, "stats": {"40": 30.0}})
    if projected_avg is not None:
        stats.append(
            {"statSourceId": 1, "appliedAverage": projected_avg, "appliedTotal": projected_avg * 70}
        )
    return {
        "id": player_id,
        "fullName": name,
        "firstName": first,
        "lastName": last,
        "proTeamId": pro_team_id,
        "eligibleSlots": slots if slots is not None else [0, 5, 11, 12],
        "injured": injury_status is not None,
        "injuryStatus": injury_status,
        "ownership": {
            "percentOwned": percent_owned,
            "percentChange": percent_change,
            "percentStarted": percent_owned / 2,
        },
        "stats": stats,
    }


def raw_roster_entry(player: dict[str, Any], lineup_slot_id: int = 0) -> dict[str, Any]:
    return {
        "playerId": player["id"],
        "lineupSlotId": lineup_slot_id,
        "acquisitionDate": NOW - 30 * 24 * HOUR_MS,
        "playerPoolEntry": {"player": player, "appliedStatTotal": 1000.0},
    }


def raw_team(
    team_id: int,
    name: str,
    nickname: str,
    abbrev: str,
    entries: list[dict[str, Any]],
    wins: int = 0,
    losses: int = 0,
    watch_list: Optional[list[int]] = None,
) -> dict[str, Any]:
    return {
        "id": team_id,
        "abbrev": abbrev,
        "name": name,
        "nickname": nickname,
        "owners": [f"{{OWNER-{team_id}}}"],
        "record": {
            "overall": {
                "wins": wins,
                "losses": losses,
                "ties": 0,
                "pointsFor": 5000.0,
                "pointsAgainst": 4800.0,
            }
        },
        "roster": {"entries": entries},
        "watchList": watch_list or [],
    }


def raw_pro_team(pro_team_id: int, abbrev: str, day_offsets: list[int]) -> dict[str, Any]:
    return {
        "id": pro_team_id,
        "abbrev": abbrev,
        "proGamesByScoringPeriod": {
            str(SCORING_PERIOD + offset): [{"id": pro_team_id * 1000 + offset}] for offset in day_offsets
        },
    }


def raw_league_settings(scoring_period: int = SCORING_PERIOD, week: int = WEEK) -> dict[str, Any]:
    return {
        "id": LEAGUE_ID,
        "seasonId": SEASON_ID,
        "scoringPeriodId": scoring_period,
        "status": {"currentMatchupPeriod": week, "isActive": True},
        "settings": {"name": "Test League"},
    }


def standard_players() -> dict[int, dict[str, Any]]:
    return {
        101: raw_player(101, "LeBron James", 13, [2, 3, 5, 6, 11, 12], 45.0, 44.0, percent_owned=100.0),
        102: raw_player(102, "Austin Reaves", 13, [0, 1, 5, 11, 12], 28.0, 27.0, percent_owned=90.0),
        103: raw_player(103, "Stephen Curry", 9, [0, 1, 5, 11, 12], 42.0, 41.0, percent_owned=100.0),
        104: raw_player(104, "Payton Pritchard", 2, [0, 1, 5, 11, 12], 18.0, 20.0, percent_change=-6.0),
        105: raw_player(105, "Bobby Portis", 15, [3, 4, 6, 11, 12], 17.0, 17.0),
        201: raw_player(201, "Anthony Davis", 13, [3, 4, 6, 11, 12], 48.0, 47.0, percent_owned=100.0),
        202: raw_player(202, "Jayson Tatum", 2, [2, 3, 6, 11, 12], 44.0, 44.0, percent_owned=100.0),
        301: raw_player(301, "Gabe Vincent", 13, [0, 1, 5, 11, 12], 20.0, 16.0, percent_owned=10.0, percent_change=12.0),
        302: raw_player(302, "Max Christie", 13, [1, 2, 5, 6, 11, 12], 15.0, 15.0, percent_owned=5.0),
        303: raw_player(303, "Kevon Looney", 9, [4, 11, 12], 18.0, 20.0, percent_owned=8.0),
        304: raw_player(304, "Luke Kornet", 2, [4, 11, 12], 25.0, 22.0, injury_status="OUT", percent_owned=3.0),
        305: raw_player(305, "Sam Hauser", 2, [2, 3, 6, 11, 12], 19.0, 18.0, injury_status="DAY_TO_DAY"),
    }


def standard_bundle() -> LeagueBundle:
    p = standard_players()
    teams = [
        raw_team(
            MY_TEAM_ID,
            "Hoop",
            "Dreams",
            "HOOP",
            [
                raw_roster_entry(p[101], 2),
                raw_roster_entry(p[102], 0),
                raw_roster_entry(p[103], 1),
                raw_roster_entry(p[104], 12),
                raw_roster_entry(p[105], 12),
            ],
            wins=8,
            losses=3,
            watch_list=[303],
        ),
        raw_team(
            2,
            "Rival",
            "Squad",
            "RIV",
            [raw_roster_entry(p[201], 4), raw_roster_entry(p[202], 2)],
            wins=5,
            losses=6,
        ),
    ]
    matchups = [
        {
            "id": 1,
            "matchupPeriodId": WEEK,
            "home": {"teamId": MY_TEAM_ID, "totalPoints": 812.5, "totalPointsLive": 830.0},
            "away": {"teamId": 2, "totalPoints": 790.0},
        }
    ]
    free_agents = {"players": [{"id": pid, "player": p[pid]} for pid in (301, 302, 303, 304, 305)]}
    pro_teams = [
        raw_pro_team(13, "LAL", GAME_DAYS[13]),
        raw_pro_team(9, "GSW", GAME_DAYS[9]),
        raw_pro_team(15, "MIL", GAME_DAYS[15]),
        raw_pro_team(2, "BOS", GAME_DAYS[2]),
    ]
    return LeagueBundle(
        settings=LeagueSettings.from_response(raw_league_settings()),
        teams=teams,
        matchups=matchups,
        free_agents=free_agents,
        pro_teams=pro_teams,
        transactions=[],
    )


def set_player_status(
    snapshot: LeagueSnapshot,
    player_id: int,
    status: PlayerStatus,
    note: Optional[str] = None,
) -> LeagueSnapshot:
    """Copy of ``snapshot`` with one player's status changed everywhere it appears."""
    updated = snapshot.model_copy(deep=True)
    for player in updated.all_players():
        if player.id == player_id:
            player.status = status
            player.injury_note = note
    if player_id in updated.status_index:
        updated.status_index[player_id].status = status
        updated.status_index[player_id].injury_note = note
    return updated


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def bundle() -> LeagueBundle:
    return standard_bundle()


@pytest.fixture
def snapshot(bundle: LeagueBundle) -> LeagueSnapshot:
    return build_league_snapshot(bundle, MY_TEAM_ID, now=NOW, today=TODAY)


@pytest.fixture
def with_status() -> Callable[..., LeagueSnapshot]:
    return set_player_status


@pytest.fixture
def make_raw_player() -> Callable[..., dict[str, Any]]:
    return raw_player


@pytest.fixture
def make_raw_pro_team() -> Callable[..., dict[str, Any]]:
    return raw_pro_team


@pytest.fixture
def raw_settings() -> dict[str, Any]:
    return raw_league_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        espn_league_id=LEAGUE_ID,
        espn_season=SEASON_ID,
        espn_s2="test-s2",
        espn_swid="{TEST-SWID}",
        espn_my_team_id=MY_TEAM_ID,
        telegram_bot_token=None,
        telegram_chat_id=None,
        app_base_url=None,
        redis_url=None,
        cron_secret=None,
    )


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend) -> SnapshotStore:
    return SnapshotStore(backend, LEAGUE_ID, SEASON_ID)


# =============================================================================
# Fakes for the refresh service's collaborators
# =============================================================================


class FakeEspn:
    """Stands in for EspnClient; serves a prepared bundle."""

    def __init__(self, bundle: Optional[LeagueBundle] = None, error: Optional[Exception] = None):
        self.bundle = bundle or standard_bundle()
        self.error = error
        self.player_info: list[dict[str, Any]] = []
        self.transactions: list[Any] = []
        self.player_info_requests: list[list[int]] = []
        self.fetch_calls = 0

    async def fetch_league_bundle(self, free_agent_limit=50, transaction_lookback_hours=24):
        self.fetch_calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.bundle

    async def get_player_info(self, player_ids):
        self.player_info_requests.append(player_ids)
        return self.player_info

    async def get_recent_transactions(self, lookback_hours=24, now=None):
        return self.transactions

    async def close(self):
        pass


class FakeNotifier:
    """Stands in for TelegramNotifier; records what would have been sent."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.smart_alerts: list[Any] = []
        self.quiet_summaries: list[Any] = []
        self.briefings: list[Any] = []

    def is_configured(self):
        return self.configured

    async def send_smart_alerts(self, alerts, week):
        self.smart_alerts.append((alerts, week))
        return True

    async def send_quiet_summary(self, week, top_waiver_name, top_waiver_games):
        self.quiet_summaries.append((week, top_waiver_name, top_waiver_games))
        return True

    async def send_daily_briefing(self, briefing):
        self.briefings.append(briefing)
        return True

    async def close(self):
        pass
