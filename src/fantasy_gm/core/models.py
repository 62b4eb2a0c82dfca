"""
Pydantic models for normalized league data.

These models are used for:
- The normalized snapshot built from raw ESPN responses
- Persisting snapshots, diffs, injury history and the watchlist as JSON
- API response serialization

Timestamps are epoch milliseconds; dates are ISO ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from pydantic import BaseModel, Field

from .types import (
    Confidence,
    PlayerStatus,
    Priority,
    RosterChangeType,
    SmartAlertType,
    TransactionType,
)


# =============================================================================
# Players, rosters and teams
# =============================================================================


class Ownership(BaseModel):
    """League-wide ownership percentages."""

    percent_owned: float = 0.0
    percent_change: float = 0.0
    percent_started: float = 0.0


class PlayerSeasonStats(BaseModel):
    """Fantasy point averages extracted from ESPN stat splits."""

    season_avg: Optional[float] = None
    projected_avg: Optional[float] = None
    projected_total: Optional[float] = None
    last7_avg: Optional[float] = None
    last15_avg: Optional[float] = None
    last30_avg: Optional[float] = None
    games_played: Optional[int] = None


class Player(BaseModel):
    """Normalized player."""

    id: int
    name: str
    first_name: str = ""
    last_name: str = ""
    nba_team_id: int
    nba_team_abbrev: Optional[str] = None
    positions: list[str] = Field(default_factory=list)
    eligible_slots: list[int] = Field(default_factory=list)
    status: PlayerStatus = PlayerStatus.ACTIVE
    injury_note: Optional[str] = None
    ownership: Optional[Ownership] = None
    stats: Optional[PlayerSeasonStats] = None

    @property
    def projected_avg(self) -> float:
        """Projected fantasy points per game (0 when unknown)."""
        if self.stats and self.stats.projected_avg:
            return self.stats.projected_avg
        return 0.0


class RosterEntry(BaseModel):
    """A player on a fantasy roster."""

    player_id: int
    player: Player
    lineup_slot: str
    lineup_slot_id: int
    acquisition_date: Optional[int] = None
    applied_total: Optional[float] = None


class TeamRecord(BaseModel):
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_for: float = 0.0
    points_against: float = 0.0


class Team(BaseModel):
    """Fantasy team with roster."""

    id: int
    abbrev: str
    name: str
    nickname: Optional[str] = None
    is_my_team: bool = False
    owners: list[str] = Field(default_factory=list)
    record: Optional[TeamRecord] = None
    roster: list[RosterEntry] = Field(default_factory=list)

    def roster_player_ids(self) -> set[int]:
        return {entry.player_id for entry in self.roster}


class FreeAgentEntry(BaseModel):
    """Free agent with the snapshot-time heuristic score."""

    player: Player
    score: float
    projected_points_next7: float = 0.0
    games_next7: int = 0
    recent_trend: float = 0.0
    reason_codes: list[str] = Field(default_factory=list)


class Matchup(BaseModel):
    id: int
    week: int
    home_team_id: int
    away_team_id: Optional[int] = None
    home_points: float = 0.0
    away_points: Optional[float] = None
    is_my_matchup: bool = False


class NBATeamSchedule(BaseModel):
    """Upcoming game counts for one NBA team."""

    team_id: int
    team_abbrev: str
    games_this_week: int = 0
    games_next_7_days: int = 0
    games_by_day: dict[str, bool] = Field(default_factory=dict)


class StatusSnapshot(BaseModel):
    status: PlayerStatus
    injury_note: Optional[str] = None


# =============================================================================
# Snapshot and diff
# =============================================================================


class LeagueSnapshot(BaseModel):
    """Full point-in-time capture of league state."""

    fetched_at: int
    league_id: int
    season_id: int
    week: int
    scoring_period_id: int
    teams: list[Team] = Field(default_factory=list)
    my_team_id: int
    matchups: list[Matchup] = Field(default_factory=list)
    free_agents_top_n: list[FreeAgentEntry] = Field(default_factory=list)
    status_index: dict[int, StatusSnapshot] = Field(default_factory=dict)
    schedule_index: dict[int, NBATeamSchedule] = Field(default_factory=dict)

    @property
    def my_team(self) -> Optional[Team]:
        return next((t for t in self.teams if t.id == self.my_team_id), None)

    def all_players(self) -> Iterator[Player]:
        """Rostered players first, then free agents."""
        for team in self.teams:
            for entry in team.roster:
                yield entry.player
        for fa in self.free_agents_top_n:
            yield fa.player

    def find_player(self, player_id: int) -> Optional[Player]:
        return next((p for p in self.all_players() if p.id == player_id), None)

    def is_on_my_roster(self, player_id: int) -> bool:
        team = self.my_team
        return team is not None and player_id in team.roster_player_ids()

    def team_name(self, team_id: int) -> str:
        team = next((t for t in self.teams if t.id == team_id), None)
        return team.name if team else f"Team #{team_id}"


class StatusChange(BaseModel):
    player_id: int
    player_name: str
    previous_status: PlayerStatus
    current_status: PlayerStatus
    is_my_player: bool = False
    injury_note: Optional[str] = None
    timestamp: int


class RosterChange(BaseModel):
    """A player that joined or left a fantasy roster between snapshots."""

    team_id: int
    player_id: int
    player_name: str
    change: RosterChangeType
    is_my_team: bool = False


class SnapshotDiff(BaseModel):
    status_changes: list[StatusChange] = Field(default_factory=list)
    new_top_waiver_candidates: list[FreeAgentEntry] = Field(default_factory=list)
    removed_top_waiver_candidates: list[FreeAgentEntry] = Field(default_factory=list)
    roster_changes: list[RosterChange] = Field(default_factory=list)
    week_changed: bool = False
    significant_changes: bool = False

    @property
    def my_status_changes(self) -> list[StatusChange]:
        return [c for c in self.status_changes if c.is_my_player]


# =============================================================================
# League activity and watchlist
# =============================================================================


class LeagueTransaction(BaseModel):
    """An executed add/drop by a league member."""

    team_id: int
    team_name: Optional[str] = None
    type: TransactionType
    player_id: int
    player_name: Optional[str] = None
    player_season_avg: Optional[float] = None
    player_team_abbrev: Optional[str] = None
    timestamp: int


class Watchlist(BaseModel):
    player_ids: list[int] = Field(default_factory=list)
    last_updated: int = 0


# =============================================================================
# Injury history
# =============================================================================


class InjuryEvent(BaseModel):
    start_date: int
    end_date: Optional[int] = None
    status: PlayerStatus
    note: Optional[str] = None
    games_missed: int = 0


class PlayerInjuryHistory(BaseModel):
    player_id: int
    player_name: str
    nba_team_id: int
    total_games_missed: int = 0
    total_games_tracked: int = 0
    injury_events: list[InjuryEvent] = Field(default_factory=list)
    currently_injured: bool = False
    last_updated: int


InjuryHistoryIndex = dict[int, PlayerInjuryHistory]


class InjuryRiskAssessment(BaseModel):
    player_id: int
    risk_level: Priority = Priority.LOW
    games_missed_pct: float = 0.0
    injury_count: int = 0
    is_currently_injured: bool = False
    score_penalty: float = 1.0


# =============================================================================
# Recommendations
# =============================================================================


class WaiverRecommendation(BaseModel):
    rank: int
    player: Player
    score: float
    projected_points_next7: float
    games_next7: int
    recent_trend: float
    reasons: list[str] = Field(default_factory=list)
    confidence: Confidence


class DropCandidate(BaseModel):
    player: Player
    score: float
    reasons: list[str] = Field(default_factory=list)


class StreamingSlot(BaseModel):
    date: str
    day_of_week: str
    recommended_add: Optional[Player] = None
    recommended_drop: Optional[Player] = None
    reason: str
    games_gained: int = 0


class WeeklyStreamingPlan(BaseModel):
    week: int
    week_start_date: str
    week_end_date: str
    total_games_with_streaming: int
    total_games_without_streaming: int
    games_gained: int
    adds_remaining: int
    adds_used: int
    plan: list[StreamingSlot] = Field(default_factory=list)


class Beneficiary(BaseModel):
    player: Player
    score: float
    confidence: Confidence
    reasons: list[str] = Field(default_factory=list)


class InjuryOpportunity(BaseModel):
    injured_player: Player
    injury_status: PlayerStatus
    injury_note: Optional[str] = None
    beneficiaries: list[Beneficiary] = Field(default_factory=list)
    timestamp: int


class UpcomingGame(BaseModel):
    player: Player
    games_next_7_days: int = 0
    next_game_date: Optional[str] = None


class DailyBriefing(BaseModel):
    generated_at: int
    week: int
    my_team: Team
    status_changes: list[StatusChange] = Field(default_factory=list)
    upcoming_games: list[UpcomingGame] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    top_waiver_adds: list[WaiverRecommendation] = Field(default_factory=list)
    injury_opportunities: list[InjuryOpportunity] = Field(default_factory=list)
    drop_candidates: list[DropCandidate] = Field(default_factory=list)
    diff_summary: list[str] = Field(default_factory=list)


# =============================================================================
# Alerts
# =============================================================================


class SmartAlert(BaseModel):
    """Classified, prioritized notification."""

    type: SmartAlertType
    priority: Priority
    title: str
    player_name: Optional[str] = None
    team_abbrev: Optional[str] = None
    details: str
    action: Optional[str] = None
    related_players: list[str] = Field(default_factory=list)
    timestamp: int

    def to_log_line(self) -> str:
        return f"{self.priority.value} - {self.title}: {self.details}"


def dump(model: BaseModel | None) -> Optional[dict[str, Any]]:
    """JSON-compatible dict for a model (None passes through)."""
    if model is None:
        return None
    return model.model_dump(mode="json")
