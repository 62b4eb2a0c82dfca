"""
Injury history tracking.

Keeps a running per-player record of injury events across refreshes so
waiver recommendations can discount injury-prone players. Game counts are
estimates derived from elapsed wall-clock time, not box scores.
"""

import logging
import math
from typing import Optional

from ..core.models import (
    InjuryEvent,
    InjuryHistoryIndex,
    InjuryRiskAssessment,
    LeagueSnapshot,
    PlayerInjuryHistory,
)
from ..core.types import OUT_STATUSES, Priority

logger = logging.getLogger(__name__)

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR

# ~3.5 games every 48 hours of tracking
GAMES_PER_48_HOURS = 3.5
# ~0.5 games per calendar day during the regular season
GAMES_PER_DAY = 0.5

HIGH_RISK_PENALTY = 0.6
MEDIUM_RISK_PENALTY = 0.8
CURRENTLY_INJURED_FACTOR = 0.5


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def estimate_games_missed(start_date: int, end_date: int) -> int:
    """Games missed between two epoch-ms timestamps (at least 1)."""
    days_missed = math.ceil((end_date - start_date) / MS_PER_DAY)
    return max(1, round_half_up(days_missed * GAMES_PER_DAY))


def update_injury_history(
    snapshot: LeagueSnapshot,
    previous: Optional[InjuryHistoryIndex],
) -> InjuryHistoryIndex:
    """
    Fold a snapshot into the injury history.

    Every free agent and rostered player is tracked. The input index is not
    mutated; a new index is returned.
    """
    history: InjuryHistoryIndex = {
        player_id: record.model_copy(deep=True) for player_id, record in (previous or {}).items()
    }
    now = snapshot.fetched_at
    players = [fa.player for fa in snapshot.free_agents_top_n]
    players += [entry.player for team in snapshot.teams for entry in team.roster]

    for player in players:
        injured = player.status in OUT_STATUSES
        record = history.get(player.id)

        if record is None:
            history[player.id] = PlayerInjuryHistory(
                player_id=player.id,
                player_name=player.name,
                nba_team_id=player.nba_team_id,
                total_games_missed=1 if injured else 0,
                total_games_tracked=1,
                injury_events=(
                    [InjuryEvent(start_date=now, status=player.status, note=player.injury_note)]
                    if injured
                    else []
                ),
                currently_injured=injured,
                last_updated=now,
            )
            continue

        hours_since_update = (now - record.last_updated) / MS_PER_HOUR
        games_elapsed = round_half_up(hours_since_update / 48 * GAMES_PER_48_HOURS)
        record.total_games_tracked += max(0, games_elapsed)
        open_event = (
            record.injury_events[-1]
            if record.injury_events and record.injury_events[-1].end_date is None
            else None
        )

        if injured and not record.currently_injured:
            record.injury_events.append(
                InjuryEvent(start_date=now, status=player.status, note=player.injury_note)
            )
            record.currently_injured = True
        elif not injured and record.currently_injured:
            if open_event is not None:
                open_event.end_date = now
                open_event.games_missed = estimate_games_missed(open_event.start_date, now)
                record.total_games_missed += open_event.games_missed
            record.currently_injured = False
        elif injured and open_event is not None:
            if player.injury_note:
                open_event.note = player.injury_note
            if games_elapsed > 0:
                open_event.games_missed += games_elapsed
                record.total_games_missed += games_elapsed

        record.last_updated = now
        record.player_name = player.name
        record.nba_team_id = player.nba_team_id

    return history


def get_injury_risk_assessment(
    player_id: int,
    history: Optional[InjuryHistoryIndex],
) -> InjuryRiskAssessment:
    """Classify a player's injury risk and derive a score multiplier."""
    record = (history or {}).get(player_id)
    if record is None:
        return InjuryRiskAssessment(player_id=player_id)

    games_missed_pct = (
        record.total_games_missed / record.total_games_tracked * 100
        if record.total_games_tracked > 0
        else 0.0
    )
    injury_count = len(record.injury_events)

    risk_level = Priority.LOW
    penalty = 1.0
    if games_missed_pct >= 30 or injury_count >= 4:
        risk_level = Priority.HIGH
        penalty = HIGH_RISK_PENALTY
    elif games_missed_pct >= 15 or injury_count >= 2:
        risk_level = Priority.MEDIUM
        penalty = MEDIUM_RISK_PENALTY

    if record.currently_injured:
        penalty *= CURRENTLY_INJURED_FACTOR

    return InjuryRiskAssessment(
        player_id=player_id,
        risk_level=risk_level,
        games_missed_pct=games_missed_pct,
        injury_count=injury_count,
        is_currently_injured=record.currently_injured,
        score_penalty=penalty,
    )


def get_injury_risk_for_players(
    player_ids: list[int],
    history: Optional[InjuryHistoryIndex],
) -> dict[int, InjuryRiskAssessment]:
    return {player_id: get_injury_risk_assessment(player_id, history) for player_id in player_ids}


def format_injury_risk(assessment: InjuryRiskAssessment) -> str:
    """Short display string; empty for healthy low-risk players."""
    if assessment.risk_level == Priority.LOW and not assessment.is_currently_injured:
        return ""

    parts = []
    if assessment.is_currently_injured:
        parts.append("Currently injured")
    if assessment.games_missed_pct >= 10:
        parts.append(f"{assessment.games_missed_pct:.0f}% games missed")
    if assessment.injury_count >= 2:
        parts.append(f"{assessment.injury_count} injuries this season")
    return " • ".join(parts)
