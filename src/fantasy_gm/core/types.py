"""
Core types and constants for Fantasy GM.

This module provides:
- Status, priority and alert enums
- ESPN position / lineup slot lookups
- NBA pro team reference data
"""

from enum import Enum


class PlayerStatus(str, Enum):
    """Normalized injury / availability status."""

    ACTIVE = "ACTIVE"
    DAY_TO_DAY = "DAY_TO_DAY"
    OUT = "OUT"
    INJURY_RESERVE = "INJURY_RESERVE"
    SUSPENSION = "SUSPENSION"
    DOUBTFUL = "DOUBTFUL"
    QUESTIONABLE = "QUESTIONABLE"
    PROBABLE = "PROBABLE"


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class SmartAlertType(str, Enum):
    """Kinds of actionable notifications produced from a diff."""

    ROSTER_INJURY = "ROSTER_INJURY"
    ROSTER_RETURN = "ROSTER_RETURN"
    TEAMMATE_INJURY = "TEAMMATE_INJURY"
    TEAMMATE_RETURN = "TEAMMATE_RETURN"
    WATCHLIST_OPPORTUNITY = "WATCHLIST_OPPORTUNITY"
    HOT_WAIVER_ADD = "HOT_WAIVER_ADD"
    WEEKLY_SUMMARY = "WEEKLY_SUMMARY"


class TransactionType(str, Enum):
    ADD = "ADD"
    DROP = "DROP"
    TRADE = "TRADE"


class RosterChangeType(str, Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"


# Statuses that mean the player will not play
OUT_STATUSES: frozenset[PlayerStatus] = frozenset(
    {PlayerStatus.OUT, PlayerStatus.INJURY_RESERVE, PlayerStatus.SUSPENSION}
)

# May or may not play
QUESTIONABLE_STATUSES: frozenset[PlayerStatus] = frozenset(
    {PlayerStatus.DAY_TO_DAY, PlayerStatus.QUESTIONABLE}
)

# ESPN injuryStatus values (long and short forms) -> normalized status
ESPN_STATUS_CODES: dict[str, PlayerStatus] = {
    **{status.value: status for status in PlayerStatus},
    "D": PlayerStatus.DAY_TO_DAY,
    "O": PlayerStatus.OUT,
    "IR": PlayerStatus.INJURY_RESERVE,
    "SSPD": PlayerStatus.SUSPENSION,
}

POSITION_MAP: dict[int, str] = {
    0: "PG",
    1: "SG",
    2: "SF",
    3: "PF",
    4: "C",
    5: "G",
    6: "F",
    7: "SG/SF",
    8: "G/F",
    9: "PF/C",
    10: "F/C",
    11: "UTIL",
}

LINEUP_SLOT_MAP: dict[int, str] = {
    **POSITION_MAP,
    12: "BE",
    13: "IR",
}

BENCH_SLOT_ID = 12
PRIMARY_POSITION_SLOTS = range(0, 5)

# ESPN stat id for games played inside a stat split
GAMES_PLAYED_STAT_ID = "40"

# statSourceId values in player stat splits
STAT_SOURCE_ACTUAL = 0
STAT_SOURCE_PROJECTED = 1

# statSplitTypeId of actual-stat splits -> PlayerSeasonStats field
ACTUAL_SPLIT_FIELDS: dict[int, str] = {
    0: "season_avg",
    1: "last7_avg",
    2: "last15_avg",
    3: "last30_avg",
}

ESPN_VIEWS: dict[str, str] = {
    "settings": "mSettings",
    "teams": "mTeam",
    "roster": "mRoster",
    "matchup": "mMatchup",
    "matchup_score": "mMatchupScore",
    "scoreboard": "mScoreboard",
    "schedule": "mSchedule",
    "status": "mStatus",
    "standings": "mStandings",
    "players": "kona_player_info",
    "pending_transactions": "mPendingTransactions",
    "transactions": "mTransactions2",
    "pro_team_schedules": "proTeamSchedules_wl",
    "player_pool": "players_wl",
}

NBA_TEAMS: dict[int, dict[str, str]] = {
    1: {"abbrev": "ATL", "name": "Atlanta Hawks"},
    2: {"abbrev": "BOS", "name": "Boston Celtics"},
    3: {"abbrev": "NOP", "name": "New Orleans Pelicans"},
    4: {"abbrev": "CHI", "name": "Chicago Bulls"},
    5: {"abbrev": "CLE", "name": "Cleveland Cavaliers"},
    6: {"abbrev": "DAL", "name": "Dallas Mavericks"},
    7: {"abbrev": "DEN", "name": "Denver Nuggets"},
    8: {"abbrev": "DET", "name": "Detroit Pistons"},
    9: {"abbrev": "GSW", "name": "Golden State Warriors"},
    10: {"abbrev": "HOU", "name": "Houston Rockets"},
    11: {"abbrev": "IND", "name": "Indiana Pacers"},
    12: {"abbrev": "LAC", "name": "LA Clippers"},
    13: {"abbrev": "LAL", "name": "Los Angeles Lakers"},
    14: {"abbrev": "MIA", "name": "Miami Heat"},
    15: {"abbrev": "MIL", "name": "Milwaukee Bucks"},
    16: {"abbrev": "MIN", "name": "Minnesota Timberwolves"},
    17: {"abbrev": "BKN", "name": "Brooklyn Nets"},
    18: {"abbrev": "NYK", "name": "New York Knicks"},
    19: {"abbrev": "ORL", "name": "Orlando Magic"},
    20: {"abbrev": "PHI", "name": "Philadelphia 76ers"},
    21: {"abbrev": "PHX", "name": "Phoenix Suns"},
    22: {"abbrev": "POR", "name": "Portland Trail Blazers"},
    23: {"abbrev": "SAC", "name": "Sacramento Kings"},
    24: {"abbrev": "SAS", "name": "San Antonio Spurs"},
    25: {"abbrev": "OKC", "name": "Oklahoma City Thunder"},
    26: {"abbrev": "UTA", "name": "Utah Jazz"},
    27: {"abbrev": "WAS", "name": "Washington Wizards"},
    28: {"abbrev": "TOR", "name": "Toronto Raptors"},
    29: {"abbrev": "MEM", "name": "Memphis Grizzlies"},
    30: {"abbrev": "CHA", "name": "Charlotte Hornets"},
}


def get_team_abbrev(pro_team_id: int) -> str | None:
    """Return the NBA team abbreviation for an ESPN pro team id."""
    team = NBA_TEAMS.get(pro_team_id)
    return team["abbrev"] if team else None
