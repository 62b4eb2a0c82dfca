"""
NBA pro-team schedule index.

ESPN exposes each pro team's games keyed by scoring period, where one
scoring period is one day. The index maps the next ``days_ahead`` periods
onto calendar dates so streaming and waiver heuristics can count games.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from .core.models import NBATeamSchedule
from .core.types import NBA_TEAMS

logger = logging.getLogger(__name__)

ScheduleIndex = dict[int, NBATeamSchedule]

# Game count assumed for every team when the schedule feed is unavailable
DEFAULT_GAMES_PER_WEEK = 3


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def default_schedule_index() -> ScheduleIndex:
    """Index for all 30 NBA teams with the default game count and no day data."""
    return {
        team_id: NBATeamSchedule(
            team_id=team_id,
            team_abbrev=team["abbrev"],
            games_this_week=DEFAULT_GAMES_PER_WEEK,
            games_next_7_days=DEFAULT_GAMES_PER_WEEK,
        )
        for team_id, team in NBA_TEAMS.items()
    }


def build_schedule_index(
    pro_teams: list[dict[str, Any]],
    current_scoring_period: int,
    days_ahead: int = 7,
    today: date | None = None,
) -> ScheduleIndex:
    """
    Build the per-team schedule index for the next ``days_ahead`` days.

    Day offset ``i`` corresponds to scoring period ``current + i`` and to
    the ISO date ``today + i``. A team has a game that day when the period's
    game list is non-empty. Teams without ``proGamesByScoringPeriod`` are
    skipped.

    Args:
        pro_teams: ``settings.proTeams`` from the pro schedule view
        current_scoring_period: Current ESPN scoring period id
        days_ahead: Number of days to cover
        today: First day of the window (defaults to today in UTC)
    """
    if not pro_teams:
        logger.warning("No NBA schedule data available, using defaults")
        return default_schedule_index()

    today = today or utc_today()
    dates = [(today + timedelta(days=i)).isoformat() for i in range(days_ahead)]

    index: ScheduleIndex = {}
    for team in pro_teams:
        games_by_period = team.get("proGamesByScoringPeriod")
        if not games_by_period:
            continue

        games_by_day: dict[str, bool] = {}
        for offset, day in enumerate(dates):
            games = games_by_period.get(str(current_scoring_period + offset))
            games_by_day[day] = bool(games)

        games = sum(games_by_day.values())
        index[team["id"]] = NBATeamSchedule(
            team_id=team["id"],
            team_abbrev=team.get("abbrev", ""),
            games_this_week=games,
            games_next_7_days=games,
            games_by_day=games_by_day,
        )

    return index


def games_for_team(index: ScheduleIndex, nba_team_id: int, default: int = DEFAULT_GAMES_PER_WEEK) -> int:
    """Games in the window for a team; ``default`` when unknown or zero."""
    schedule = index.get(nba_team_id)
    return (schedule.games_next_7_days if schedule else 0) or default


def get_top_schedule_teams(index: ScheduleIndex, limit: int = 10) -> list[NBATeamSchedule]:
    """Teams with the most games in the window."""
    return sorted(index.values(), key=lambda s: s.games_next_7_days, reverse=True)[:limit]


def get_four_game_teams(index: ScheduleIndex) -> list[NBATeamSchedule]:
    """Teams with 4+ games (streaming targets), most games first."""
    teams = [s for s in index.values() if s.games_next_7_days >= 4]
    return sorted(teams, key=lambda s: s.games_next_7_days, reverse=True)


def get_light_schedule_teams(index: ScheduleIndex) -> list[NBATeamSchedule]:
    """Teams with 2 or fewer games, fewest first."""
    teams = [s for s in index.values() if s.games_next_7_days <= 2]
    return sorted(teams, key=lambda s: s.games_next_7_days)


def group_teams_by_games(index: ScheduleIndex) -> dict[str, list[NBATeamSchedule]]:
    groups: dict[str, list[NBATeamSchedule]] = {"four_plus": [], "three": [], "two_or_fewer": []}
    for schedule in index.values():
        if schedule.games_next_7_days >= 4:
            groups["four_plus"].append(schedule)
        elif schedule.games_next_7_days == 3:
            groups["three"].append(schedule)
        else:
            groups["two_or_fewer"].append(schedule)
    return groups
