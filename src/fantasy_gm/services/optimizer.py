"""
Roster optimizer: waiver ranking, drop candidates, streaming plans,
injury opportunities and the daily briefing.

Weights are tuned for streaming leagues, where games played matter more
than per-game quality.
"""

import logging
import time
from datetime import date, timedelta
from typing import Optional

from ..core.errors import TeamNotFoundError
from ..core.models import (
    Beneficiary,
    DailyBriefing,
    DropCandidate,
    FreeAgentEntry,
    InjuryHistoryIndex,
    InjuryOpportunity,
    LeagueSnapshot,
    NBATeamSchedule,
    Player,
    SnapshotDiff,
    StatusChange,
    StreamingSlot,
    Team,
    UpcomingGame,
    WaiverRecommendation,
    WeeklyStreamingPlan,
)
from ..core.types import (
    BENCH_SLOT_ID,
    OUT_STATUSES,
    QUESTIONABLE_STATUSES,
    Confidence,
    PlayerStatus,
    Priority,
)
from ..normalize import clamp
from ..schedule import DEFAULT_GAMES_PER_WEEK, utc_today
from ..snapshot_diff import summarize_diff
from .injuries import format_injury_risk, get_injury_risk_assessment

logger = logging.getLogger(__name__)

WAIVER_WEIGHTS = {
    "projected_points": 0.40,
    "games_next7": 0.45,
    "recent_trend": 0.15,
}

# Per-game projection assumed for players without one
DEFAULT_PROJECTED_AVG = 15.0

SAME_POSITION_BOOST = 1.2
MAX_BENEFICIARIES = 3

# Statuses on my roster that open an injury opportunity
OPPORTUNITY_STATUSES = {PlayerStatus.OUT, PlayerStatus.INJURY_RESERVE, PlayerStatus.DAY_TO_DAY}


def _require_my_team(snapshot: LeagueSnapshot) -> Team:
    team = snapshot.my_team
    if team is None:
        raise TeamNotFoundError(snapshot.my_team_id)
    return team


def _is_unavailable(player: Player) -> bool:
    return player.status in OUT_STATUSES


def _status_label(status: PlayerStatus) -> str:
    return status.value.replace("_", " ")


# =============================================================================
# Waiver wire
# =============================================================================


def score_waiver_candidate(
    player: Player,
    schedule: Optional[NBATeamSchedule],
) -> tuple[float, float, int, float]:
    """
    Score a free agent for the waiver ranking.

    Returns:
        (score, projected_points_next7, games_next7, recent_trend)
    """
    games = (schedule.games_next_7_days if schedule else 0) or DEFAULT_GAMES_PER_WEEK
    stats = player.stats
    projected_avg = (stats.projected_avg if stats else None) or DEFAULT_PROJECTED_AVG
    season_avg = (stats.season_avg if stats else None) or projected_avg

    projected_next7 = projected_avg * games
    trend = (projected_avg - season_avg) / season_avg * 100 if season_avg > 0 else 0.0

    score = (
        WAIVER_WEIGHTS["projected_points"] * projected_next7
        + WAIVER_WEIGHTS["games_next7"] * (games * 10)
        + WAIVER_WEIGHTS["recent_trend"] * clamp(trend, -20, 20)
    )
    return score, projected_next7, games, trend


def generate_waiver_reasons(player: Player, games: int, trend: float) -> list[str]:
    reasons = []

    if games >= 4:
        reasons.append(f"{games} games in next 7 days")
    elif games == 3:
        reasons.append("Average schedule (3 games)")

    if trend > 15:
        reasons.append(f"Hot streak (+{trend:.0f}% vs avg)")
    elif trend > 5:
        reasons.append("Trending up")
    elif trend < -10:
        reasons.append("⚠️ Trending down")

    if player.ownership:
        if player.ownership.percent_owned > 70:
            reasons.append(f"Widely rostered ({player.ownership.percent_owned:.0f}%)")
        if player.ownership.percent_change > 10:
            reasons.append(f"🔥 Rising fast (+{player.ownership.percent_change:.0f}%)")

    if len(player.positions) > 2:
        reasons.append("Multi-position eligible")

    return reasons


def get_waiver_recommendations(
    snapshot: LeagueSnapshot,
    limit: int = 10,
    injury_history: Optional[InjuryHistoryIndex] = None,
) -> list[WaiverRecommendation]:
    """
    Rank the snapshot's top free agents for pickup.

    OUT / IR / suspended players are excluded. When an injury history is
    given, injury-prone players are discounted and flagged.
    """
    ranked: list[WaiverRecommendation] = []

    for fa in snapshot.free_agents_top_n:
        player = fa.player
        if _is_unavailable(player):
            continue

        schedule = snapshot.schedule_index.get(player.nba_team_id)
        score, projected, games, trend = score_waiver_candidate(player, schedule)
        reasons = generate_waiver_reasons(player, games, trend)

        risk = None
        if injury_history is not None:
            risk = get_injury_risk_assessment(player.id, injury_history)
            score *= risk.score_penalty
            if risk.risk_level != Priority.LOW:
                note = format_injury_risk(risk)
                if note:
                    reasons.append(f"⚠️ {note}")
                if risk.risk_level == Priority.HIGH:
                    reasons.append(f"🏥 Injury-prone ({risk.games_missed_pct:.0f}% games missed)")

        questionable = player.status in QUESTIONABLE_STATUSES
        if questionable:
            reasons.insert(0, f"⚠️ {_status_label(player.status)}")

        if questionable:
            confidence = Confidence.LOW
        elif risk is not None and risk.risk_level == Priority.HIGH:
            confidence = Confidence.LOW
        elif risk is not None and risk.risk_level == Priority.MEDIUM:
            confidence = Confidence.MEDIUM
        elif games >= 4 and trend > 5:
            confidence = Confidence.HIGH
        elif games <= 2 or trend < -10:
            confidence = Confidence.LOW
        else:
            confidence = Confidence.MEDIUM

        ranked.append(
            WaiverRecommendation(
                rank=0,
                player=player,
                score=score,
                projected_points_next7=projected,
                games_next7=games,
                recent_trend=trend,
                reasons=reasons,
                confidence=confidence,
            )
        )

    ranked.sort(key=lambda rec: rec.score, reverse=True)
    for rank, rec in enumerate(ranked, start=1):
        rec.rank = rank

    return ranked[:limit]


def get_drop_recommendations(snapshot: LeagueSnapshot, limit: int = 5) -> list[DropCandidate]:
    """Rostered players worth cutting, weakest first."""
    team = snapshot.my_team
    if team is None:
        return []

    candidates: list[DropCandidate] = []
    for entry in team.roster:
        player = entry.player
        schedule = snapshot.schedule_index.get(player.nba_team_id)
        score = 0.0
        reasons = []

        if schedule is not None and schedule.games_next_7_days <= 2:
            score += 20
            reasons.append(f"Only {schedule.games_next_7_days} games next 7 days")

        if player.status in (PlayerStatus.OUT, PlayerStatus.INJURY_RESERVE):
            score += 30
            reasons.append(f"Status: {player.status.value}")

        if player.ownership and player.ownership.percent_change < -5:
            score += 15
            reasons.append("Ownership trending down")

        if entry.lineup_slot_id == BENCH_SLOT_ID:
            score += 10
            reasons.append("Currently benched")

        if reasons:
            candidates.append(DropCandidate(player=player, score=score, reasons=reasons))

    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates[:limit]


# =============================================================================
# Streaming
# =============================================================================


def _find_streaming_add(
    day: str,
    free_agents: list[FreeAgentEntry],
    snapshot: LeagueSnapshot,
    used: set[int],
) -> Optional[FreeAgentEntry]:
    candidates = []
    for fa in free_agents:
        if fa.player.id in used or _is_unavailable(fa.player):
            continue
        schedule = snapshot.schedule_index.get(fa.player.nba_team_id)
        if schedule is not None and schedule.games_by_day.get(day) is True:
            candidates.append(fa)
    return max(candidates, key=lambda fa: fa.score, default=None)


def generate_weekly_streaming_plan(
    snapshot: LeagueSnapshot,
    adds_per_week: int = 5,
    today: Optional[date] = None,
) -> WeeklyStreamingPlan:
    """
    Plan one streaming add per day for the next 7 days.

    Each day picks the best healthy free agent with a game that day and
    pairs it with a not-yet-used bench player to drop.

    Raises:
        TeamNotFoundError: If my team is not in the snapshot
    """
    team = _require_my_team(snapshot)
    today = today or utc_today()
    days = [today + timedelta(days=i) for i in range(7)]

    bench = [entry for entry in team.roster if entry.lineup_slot_id == BENCH_SLOT_ID]
    used: set[int] = set()
    plan: list[StreamingSlot] = []
    adds_used = 0
    games_gained = 0

    for day in days:
        iso_day = day.isoformat()
        day_of_week = day.strftime("%a")

        if adds_used >= adds_per_week:
            plan.append(StreamingSlot(date=iso_day, day_of_week=day_of_week, reason="No adds remaining"))
            continue

        best_add = _find_streaming_add(iso_day, snapshot.free_agents_top_n, snapshot, used)
        if best_add is None:
            plan.append(
                StreamingSlot(
                    date=iso_day,
                    day_of_week=day_of_week,
                    reason="No advantageous streaming options",
                )
            )
            continue

        drop = next((entry for entry in bench if entry.player_id not in used), None)
        if drop is None:
            plan.append(
                StreamingSlot(
                    date=iso_day,
                    day_of_week=day_of_week,
                    reason="No drop candidates available",
                )
            )
            continue

        used.add(best_add.player.id)
        used.add(drop.player_id)
        adds_used += 1
        games_gained += 1
        plan.append(
            StreamingSlot(
                date=iso_day,
                day_of_week=day_of_week,
                recommended_add=best_add.player,
                recommended_drop=drop.player,
                reason=f"Add {best_add.player.name} ({best_add.player.nba_team_abbrev}) for game",
                games_gained=1,
            )
        )

    base_games = (len(team.roster) or 10) * 3
    return WeeklyStreamingPlan(
        week=snapshot.week,
        week_start_date=days[0].isoformat(),
        week_end_date=days[-1].isoformat(),
        total_games_with_streaming=base_games + games_gained,
        total_games_without_streaming=base_games,
        games_gained=games_gained,
        adds_remaining=adds_per_week - adds_used,
        adds_used=adds_used,
        plan=plan,
    )


# =============================================================================
# Injury opportunities
# =============================================================================


def detect_injury_opportunities(
    snapshot: LeagueSnapshot,
    status_changes: list[StatusChange],
) -> list[InjuryOpportunity]:
    """Free agents on the same NBA team as a newly injured player of mine."""
    team = snapshot.my_team
    roster = {entry.player_id: entry.player for entry in team.roster} if team else {}
    opportunities: list[InjuryOpportunity] = []

    for change in status_changes:
        if not change.is_my_player or change.current_status not in OPPORTUNITY_STATUSES:
            continue
        injured = roster.get(change.player_id)
        if injured is None:
            continue

        teammates = [fa for fa in snapshot.free_agents_top_n if fa.player.nba_team_id == injured.nba_team_id]
        if not teammates:
            continue

        beneficiaries = []
        for fa in teammates:
            schedule = snapshot.schedule_index.get(fa.player.nba_team_id)
            score, _, games, _ = score_waiver_candidate(fa.player, schedule)
            same_position = any(pos in injured.positions for pos in fa.player.positions)
            if same_position:
                score *= SAME_POSITION_BOOST

            if same_position and games >= 3:
                confidence = Confidence.HIGH
            elif not same_position or games <= 2:
                confidence = Confidence.LOW
            else:
                confidence = Confidence.MEDIUM

            reasons = []
            if same_position:
                reasons.append("Same position - likely usage boost")
            if games >= 4:
                reasons.append(f"{games} games upcoming")
            if fa.player.ownership and fa.player.ownership.percent_change > 5:
                reasons.append("Rising ownership")

            beneficiaries.append(
                Beneficiary(player=fa.player, score=score, confidence=confidence, reasons=reasons)
            )

        beneficiaries.sort(key=lambda b: b.score, reverse=True)
        opportunities.append(
            InjuryOpportunity(
                injured_player=injured,
                injury_status=change.current_status,
                injury_note=change.injury_note,
                beneficiaries=beneficiaries[:MAX_BENEFICIARIES],
                timestamp=change.timestamp,
            )
        )

    return opportunities


# =============================================================================
# Daily briefing
# =============================================================================


def _upcoming_game(player: Player, snapshot: LeagueSnapshot) -> UpcomingGame:
    schedule = snapshot.schedule_index.get(player.nba_team_id)
    if schedule is None:
        return UpcomingGame(player=player)
    next_game = next((day for day, has_game in sorted(schedule.games_by_day.items()) if has_game), None)
    return UpcomingGame(
        player=player,
        games_next_7_days=schedule.games_next_7_days,
        next_game_date=next_game,
    )


def generate_daily_briefing(
    snapshot: LeagueSnapshot,
    status_changes: list[StatusChange],
    diff: Optional[SnapshotDiff] = None,
    injury_history: Optional[InjuryHistoryIndex] = None,
    now: Optional[int] = None,
) -> DailyBriefing:
    """
    Assemble the daily briefing for my team.

    Raises:
        TeamNotFoundError: If my team is not in the snapshot
    """
    team = _require_my_team(snapshot)

    top_adds = get_waiver_recommendations(snapshot, 5, injury_history)
    opportunities = detect_injury_opportunities(snapshot, status_changes)
    drop_candidates = get_drop_recommendations(snapshot)
    upcoming = [_upcoming_game(entry.player, snapshot) for entry in team.roster]

    my_changes = [c for c in status_changes if c.is_my_player]
    action_items = []

    out_count = sum(
        1 for c in my_changes if c.current_status in (PlayerStatus.OUT, PlayerStatus.INJURY_RESERVE)
    )
    if out_count:
        action_items.append(f"⚠️ {out_count} player(s) now OUT - consider replacements")

    if top_adds and top_adds[0].confidence == Confidence.HIGH:
        best = top_adds[0]
        action_items.append(f"🌟 High-confidence add: {best.player.name} ({best.games_next7} games)")

    if opportunities:
        action_items.append(f"🏥 {len(opportunities)} injury opportunity alert(s)")

    if diff is not None:
        diff_summary = summarize_diff(diff)
    else:
        diff_summary = [f"{len(my_changes)} roster player status change(s)"] if my_changes else []

    return DailyBriefing(
        generated_at=now if now is not None else int(time.time() * 1000),
        week=snapshot.week,
        my_team=team,
        status_changes=status_changes,
        upcoming_games=upcoming,
        action_items=action_items,
        top_waiver_adds=top_adds,
        injury_opportunities=opportunities,
        drop_candidates=drop_candidates,
        diff_summary=diff_summary,
    )
