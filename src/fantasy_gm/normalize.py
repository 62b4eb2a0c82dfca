"""
Normalization of raw ESPN responses into the snapshot models.

All functions here are pure: they take decoded ESPN JSON (dicts) and
return pydantic models from ``core.models``.
"""

import logging
import time
from datetime import date
from typing import Any, Optional

from .core.models import (
    FreeAgentEntry,
    LeagueSnapshot,
    Matchup,
    Ownership,
    Player,
    PlayerSeasonStats,
    RosterEntry,
    StatusSnapshot,
    Team,
    TeamRecord,
)
from .core.types import (
    ACTUAL_SPLIT_FIELDS,
    ESPN_STATUS_CODES,
    GAMES_PLAYED_STAT_ID,
    LINEUP_SLOT_MAP,
    POSITION_MAP,
    PRIMARY_POSITION_SLOTS,
    STAT_SOURCE_ACTUAL,
    STAT_SOURCE_PROJECTED,
    PlayerStatus,
    get_team_abbrev,
)
from .providers.espn import LeagueBundle
from .schedule import ScheduleIndex, build_schedule_index, games_for_team

logger = logging.getLogger(__name__)

# Number of free agents kept in a snapshot
TOP_FREE_AGENTS = 50

# Free-agent snapshot score weights
FA_PROJECTION_WEIGHT = 0.55
FA_GAMES_WEIGHT = 0.25
FA_TREND_WEIGHT = 0.20
TREND_CAP = 20.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# =============================================================================
# Players
# =============================================================================


def map_player_status(raw: dict[str, Any]) -> PlayerStatus:
    """Map ESPN ``injured`` / ``injuryStatus`` to a normalized status."""
    injury_status = raw.get("injuryStatus")
    if not raw.get("injured") and not injury_status:
        return PlayerStatus.ACTIVE
    return ESPN_STATUS_CODES.get(injury_status or "ACTIVE", PlayerStatus.ACTIVE)


def positions_from_slots(eligible_slots: list[int]) -> list[str]:
    """Unique primary positions (PG..C) in first-seen order."""
    positions: list[str] = []
    for slot in eligible_slots:
        if slot in PRIMARY_POSITION_SLOTS:
            position = POSITION_MAP[slot]
            if position not in positions:
                positions.append(position)
    return positions


def extract_player_stats(raw: dict[str, Any]) -> Optional[PlayerSeasonStats]:
    """
    Pull averages out of ESPN stat splits.

    Actual splits (statSourceId 0) fill the season or last-N averages by
    statSplitTypeId; projected splits (statSourceId 1) fill the projection.
    """
    splits = raw.get("stats") or []
    values: dict[str, Any] = {}

    for split in splits:
        source = split.get("statSourceId")
        if source == STAT_SOURCE_ACTUAL and split.get("appliedAverage") is not None:
            field = ACTUAL_SPLIT_FIELDS.get(split.get("statSplitTypeId", 0))
            if field is None:
                continue
            values[field] = split["appliedAverage"]
            if field == "season_avg":
                games_played = (split.get("stats") or {}).get(GAMES_PLAYED_STAT_ID)
                if games_played is not None:
                    values["games_played"] = int(games_played)
        elif source == STAT_SOURCE_PROJECTED:
            if split.get("appliedAverage") is not None:
                values["projected_avg"] = split["appliedAverage"]
            if split.get("appliedTotal") is not None:
                values["projected_total"] = split["appliedTotal"]

    return PlayerSeasonStats(**values) if values else None


def transform_ownership(raw: Optional[dict[str, Any]]) -> Optional[Ownership]:
    if not raw:
        return None
    return Ownership(
        percent_owned=raw.get("percentOwned", 0.0),
        percent_change=raw.get("percentChange", 0.0),
        percent_started=raw.get("percentStarted", 0.0),
    )


def transform_player(raw: dict[str, Any]) -> Player:
    eligible_slots = raw.get("eligibleSlots") or []
    return Player(
        id=raw["id"],
        name=raw.get("fullName", ""),
        first_name=raw.get("firstName", ""),
        last_name=raw.get("lastName", ""),
        nba_team_id=raw.get("proTeamId", 0),
        nba_team_abbrev=get_team_abbrev(raw.get("proTeamId", 0)),
        positions=positions_from_slots(eligible_slots),
        eligible_slots=eligible_slots,
        status=map_player_status(raw),
        injury_note=raw.get("injuryStatus") if raw.get("injured") else None,
        ownership=transform_ownership(raw.get("ownership")),
        stats=extract_player_stats(raw),
    )


# =============================================================================
# Rosters, teams and matchups
# =============================================================================


def transform_roster_entry(raw: dict[str, Any]) -> Optional[RosterEntry]:
    """Roster entry, or None when ESPN omitted the player pool entry."""
    pool_entry = raw.get("playerPoolEntry") or {}
    if not pool_entry.get("player"):
        return None

    slot_id = raw.get("lineupSlotId", -1)
    return RosterEntry(
        player_id=raw["playerId"],
        player=transform_player(pool_entry["player"]),
        lineup_slot=LINEUP_SLOT_MAP.get(slot_id, "UNKNOWN"),
        lineup_slot_id=slot_id,
        acquisition_date=raw.get("acquisitionDate"),
        applied_total=pool_entry.get("appliedStatTotal"),
    )


def transform_team(raw: dict[str, Any], my_team_id: int) -> Team:
    roster_entries = (raw.get("roster") or {}).get("entries") or []
    roster = [entry for entry in map(transform_roster_entry, roster_entries) if entry is not None]

    overall = (raw.get("record") or {}).get("overall")
    record = None
    if overall:
        record = TeamRecord(
            wins=overall.get("wins", 0),
            losses=overall.get("losses", 0),
            ties=overall.get("ties", 0),
            points_for=overall.get("pointsFor", 0.0),
            points_against=overall.get("pointsAgainst", 0.0),
        )

    abbrev = raw.get("abbrev", "")
    name = f"{raw.get('name') or ''} {raw.get('nickname') or ''}".strip() or abbrev

    return Team(
        id=raw["id"],
        abbrev=abbrev,
        name=name,
        nickname=raw.get("nickname"),
        is_my_team=raw["id"] == my_team_id,
        owners=raw.get("owners") or [],
        record=record,
        roster=roster,
    )


def _side_points(side: Optional[dict[str, Any]]) -> Optional[float]:
    if not side:
        return None
    return side.get("totalPointsLive") or side.get("totalPoints") or 0.0


def transform_matchup(raw: dict[str, Any], my_team_id: int) -> Matchup:
    home = raw.get("home") or {}
    away = raw.get("away")
    away_team_id = away.get("teamId") if away else None

    return Matchup(
        id=raw["id"],
        week=raw.get("matchupPeriodId", 0),
        home_team_id=home.get("teamId", 0),
        away_team_id=away_team_id,
        home_points=_side_points(home) or 0.0,
        away_points=_side_points(away),
        is_my_matchup=my_team_id in (home.get("teamId"), away_team_id),
    )


# =============================================================================
# Free agents
# =============================================================================


def score_free_agent(player: Player, schedule_index: ScheduleIndex) -> FreeAgentEntry:
    """Snapshot-time heuristic: projection, schedule volume and trend."""
    games_next7 = games_for_team(schedule_index, player.nba_team_id)
    stats = player.stats
    projected_next7 = stats.projected_avg * games_next7 if stats and stats.projected_avg else 0.0

    recent_trend = 0.0
    if stats and stats.projected_avg and stats.season_avg:
        recent_trend = (stats.projected_avg - stats.season_avg) / stats.season_avg * 100

    score = (
        FA_PROJECTION_WEIGHT * projected_next7
        + FA_GAMES_WEIGHT * (games_next7 * 10)
        + FA_TREND_WEIGHT * clamp(recent_trend, -TREND_CAP, TREND_CAP)
    )

    reason_codes = []
    if games_next7 >= 4:
        reason_codes.append("4+ games next 7 days")
    if recent_trend > 10:
        reason_codes.append("Hot streak")
    if player.ownership and player.ownership.percent_owned > 50:
        reason_codes.append("Widely owned")
    if player.ownership and player.ownership.percent_change > 5:
        reason_codes.append("Rising ownership")

    return FreeAgentEntry(
        player=player,
        score=score,
        projected_points_next7=projected_next7,
        games_next7=games_next7,
        recent_trend=recent_trend,
        reason_codes=reason_codes,
    )


def transform_free_agents(
    response: dict[str, Any],
    schedule_index: ScheduleIndex,
) -> list[FreeAgentEntry]:
    """Score every free agent in a ``kona_player_info`` response, best first."""
    entries = [
        score_free_agent(transform_player(item["player"]), schedule_index)
        for item in response.get("players") or []
        if item.get("player")
    ]
    entries.sort(key=lambda e: e.score, reverse=True)
    return entries


# =============================================================================
# Snapshot
# =============================================================================


def build_status_index(
    teams: list[Team],
    free_agents: list[FreeAgentEntry] | None = None,
) -> dict[int, StatusSnapshot]:
    """Status and note for every rostered player and every tracked free agent."""
    index: dict[int, StatusSnapshot] = {}
    for team in teams:
        for entry in team.roster:
            index[entry.player.id] = StatusSnapshot(
                status=entry.player.status,
                injury_note=entry.player.injury_note,
            )
    for fa in free_agents or []:
        index.setdefault(
            fa.player.id,
            StatusSnapshot(status=fa.player.status, injury_note=fa.player.injury_note),
        )
    return index


def build_league_snapshot(
    bundle: LeagueBundle,
    my_team_id: int,
    now: int | None = None,
    today: date | None = None,
) -> LeagueSnapshot:
    """
    Normalize a fetched bundle into a snapshot.

    Args:
        bundle: Raw ESPN responses for one refresh
        my_team_id: Team id of the assistant's owner
        now: Capture time in epoch ms (defaults to wall clock)
        today: First day of the schedule window
    """
    settings = bundle.settings
    schedule_index = build_schedule_index(
        bundle.pro_teams,
        settings.scoring_period_id,
        days_ahead=7,
        today=today,
    )

    teams = [transform_team(t, my_team_id) for t in bundle.teams]
    matchups = [transform_matchup(m, my_team_id) for m in bundle.matchups]
    free_agents = transform_free_agents(bundle.free_agents, schedule_index)[:TOP_FREE_AGENTS]

    snapshot = LeagueSnapshot(
        fetched_at=now if now is not None else int(time.time() * 1000),
        league_id=settings.id,
        season_id=settings.season_id,
        week=settings.current_matchup_period,
        scoring_period_id=settings.scoring_period_id,
        teams=teams,
        my_team_id=my_team_id,
        matchups=matchups,
        free_agents_top_n=free_agents,
        status_index=build_status_index(teams, free_agents),
        schedule_index=schedule_index,
    )

    logger.debug(
        "Built snapshot for league %d week %d (%d teams, %d free agents)",
        snapshot.league_id,
        snapshot.week,
        len(teams),
        len(free_agents),
    )
    return snapshot
