"""
Smart alert classification.

Turns a snapshot diff into alerts about how injuries and returns affect
MY roster and watchlist, plus league activity by other teams.

Only high-usage stars shift usage when they go out: a role-player center
sitting does not change much for his teammates, while a primary scorer's
touches get redistributed to everyone on the floor.
"""

import logging
import time
from collections import defaultdict
from typing import Optional

from ..core.models import (
    LeagueSnapshot,
    LeagueTransaction,
    Player,
    SmartAlert,
    SnapshotDiff,
    StatusChange,
    Watchlist,
)
from ..core.types import OUT_STATUSES, PlayerStatus, Priority, SmartAlertType, TransactionType

logger = logging.getLogger(__name__)

# Projected fantasy points per game that makes a player a high-usage star
STAR_THRESHOLD = 38.0

# Drops by other teams are only interesting at star level
DROPPED_PLAYER_THRESHOLD = STAR_THRESHOLD

_PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


def is_high_usage_star(player: Player) -> bool:
    return player.projected_avg >= STAR_THRESHOLD


def just_went_out(change: StatusChange) -> bool:
    """Available (or questionable) before, OUT / IR / suspended now."""
    return change.previous_status not in OUT_STATUSES and change.current_status in OUT_STATUSES


def just_returned(change: StatusChange) -> bool:
    """OUT / IR / suspended before, fully ACTIVE now."""
    return change.previous_status in OUT_STATUSES and change.current_status == PlayerStatus.ACTIVE


def _players_by_nba_team(
    snapshot: LeagueSnapshot,
    watchlist_order: list[int],
) -> dict[int, list[Player]]:
    """Roster and watchlist players grouped by NBA team, without duplicates."""
    grouped: dict[int, list[Player]] = defaultdict(list)
    seen: set[int] = set()

    team = snapshot.my_team
    candidates = [entry.player for entry in team.roster] if team else []
    for player_id in watchlist_order:
        player = snapshot.find_player(player_id)
        if player is not None:
            candidates.append(player)

    for player in candidates:
        if player.id in seen:
            continue
        seen.add(player.id)
        grouped[player.nba_team_id].append(player)

    return grouped


def _names(players: list[Player]) -> str:
    return ", ".join(p.name for p in players)


def _status_alerts(
    snapshot: LeagueSnapshot,
    diff: SnapshotDiff,
    roster_ids: set[int],
    watchlist_order: list[int],
    now: int,
) -> list[SmartAlert]:
    alerts: list[SmartAlert] = []
    watchlist_ids = set(watchlist_order)
    care_about = _players_by_nba_team(snapshot, watchlist_order)

    for change in diff.status_changes:
        changed = snapshot.find_player(change.player_id)
        if changed is None:
            continue

        went_out = just_went_out(change)
        returned = just_returned(change)

        if change.player_id in roster_ids:
            if went_out:
                alerts.append(
                    SmartAlert(
                        type=SmartAlertType.ROSTER_INJURY,
                        priority=Priority.HIGH,
                        title=f"🚨 {change.player_name} is OUT",
                        player_name=change.player_name,
                        team_abbrev=changed.nba_team_abbrev,
                        details=change.injury_note or f"Status: {change.current_status.value}",
                        action="Find a replacement on waivers",
                        timestamp=now,
                    )
                )
                continue
            if returned:
                alerts.append(
                    SmartAlert(
                        type=SmartAlertType.ROSTER_RETURN,
                        priority=Priority.MEDIUM,
                        title=f"✅ {change.player_name} is BACK",
                        player_name=change.player_name,
                        team_abbrev=changed.nba_team_abbrev,
                        details="Returned from injury",
                        action="Move to starting lineup",
                        timestamp=now,
                    )
                )
                continue

        if not is_high_usage_star(changed):
            continue

        teammates = [p for p in care_about.get(changed.nba_team_id, []) if p.id != changed.id]
        roster_teammates = [p for p in teammates if p.id in roster_ids]
        watchlist_teammates = [p for p in teammates if p.id in watchlist_ids]

        if went_out:
            if roster_teammates:
                names = _names(roster_teammates)
                alerts.append(
                    SmartAlert(
                        type=SmartAlertType.TEAMMATE_INJURY,
                        priority=Priority.HIGH,
                        title=f"📈 {changed.name} is OUT",
                        player_name=changed.name,
                        team_abbrev=changed.nba_team_abbrev,
                        details=f"Your {names} should see MORE usage/shots",
                        action="Start them if on bench",
                        related_players=[p.name for p in roster_teammates],
                        timestamp=now,
                    )
                )
            if watchlist_teammates:
                names = _names(watchlist_teammates)
                alerts.append(
                    SmartAlert(
                        type=SmartAlertType.WATCHLIST_OPPORTUNITY,
                        priority=Priority.HIGH,
                        title=f"🔥 Add {names} - {changed.name} is OUT",
                        player_name=changed.name,
                        team_abbrev=changed.nba_team_abbrev,
                        details=f"{changed.name} injury = more usage for {names}",
                        action=f"Pick up {watchlist_teammates[0].name} now",
                        related_players=[p.name for p in watchlist_teammates],
                        timestamp=now,
                    )
                )

        if returned:
            if roster_teammates:
                names = _names(roster_teammates)
                alerts.append(
                    SmartAlert(
                        type=SmartAlertType.TEAMMATE_RETURN,
                        priority=Priority.MEDIUM,
                        title=f"📉 {changed.name} is BACK",
                        player_name=changed.name,
                        team_abbrev=changed.nba_team_abbrev,
                        details=f"Your {names} may see LESS usage now",
                        action="Monitor their production",
                        related_players=[p.name for p in roster_teammates],
                        timestamp=now,
                    )
                )
            if watchlist_teammates:
                names = _names(watchlist_teammates)
                alerts.append(
                    SmartAlert(
                        type=SmartAlertType.WATCHLIST_OPPORTUNITY,
                        priority=Priority.LOW,
                        title=f"⚠️ {changed.name} is BACK",
                        player_name=changed.name,
                        team_abbrev=changed.nba_team_abbrev,
                        details=f"{names} value decreased - {changed.name} returns",
                        action="Maybe remove from watchlist",
                        related_players=[p.name for p in watchlist_teammates],
                        timestamp=now,
                    )
                )

    return alerts


def _league_activity_alerts(
    snapshot: LeagueSnapshot,
    transactions: list[LeagueTransaction],
    watchlist_ids: set[int],
    now: int,
) -> list[SmartAlert]:
    alerts: list[SmartAlert] = []

    for tx in transactions:
        if tx.team_id == snapshot.my_team_id:
            continue

        player = snapshot.find_player(tx.player_id)
        player_name = tx.player_name or (player.name if player else f"Player #{tx.player_id}")
        team_name = snapshot.team_name(tx.team_id)
        projected_avg = player.projected_avg if player else 0.0
        team_abbrev = player.nba_team_abbrev if player else None

        if tx.type == TransactionType.DROP and projected_avg >= DROPPED_PLAYER_THRESHOLD:
            alerts.append(
                SmartAlert(
                    type=SmartAlertType.HOT_WAIVER_ADD,
                    priority=Priority.HIGH,
                    title=f"🎯 {player_name} was DROPPED",
                    player_name=player_name,
                    team_abbrev=team_abbrev,
                    details=f"{team_name} dropped {player_name} ({projected_avg:.1f} avg)",
                    action="GRAB HIM NOW - star-level player available!",
                    timestamp=now,
                )
            )
        elif tx.type == TransactionType.ADD and tx.player_id in watchlist_ids:
            alerts.append(
                SmartAlert(
                    type=SmartAlertType.WATCHLIST_OPPORTUNITY,
                    priority=Priority.MEDIUM,
                    title=f"❌ {player_name} was SNIPED",
                    player_name=player_name,
                    team_abbrev=team_abbrev,
                    details=f"{team_name} added {player_name} from your watchlist",
                    action="Remove from watchlist - no longer available",
                    timestamp=now,
                )
            )

    return alerts


def generate_smart_alerts(
    snapshot: LeagueSnapshot,
    diff: SnapshotDiff,
    watchlist: Optional[Watchlist],
    transactions: Optional[list[LeagueTransaction]] = None,
    now: Optional[int] = None,
) -> list[SmartAlert]:
    """
    Classify a diff (and recent league transactions) into smart alerts.

    Args:
        snapshot: Current snapshot
        diff: Diff between the previous and current snapshot
        watchlist: Players the owner is monitoring
        transactions: Recent adds/drops across the league
        now: Alert timestamp in epoch ms (defaults to wall clock)
    """
    now = now if now is not None else int(time.time() * 1000)
    team = snapshot.my_team
    roster_ids = team.roster_player_ids() if team else set()
    watchlist_order = list(watchlist.player_ids) if watchlist else []
    watchlist_ids = set(watchlist_order)

    alerts = _status_alerts(snapshot, diff, roster_ids, watchlist_order, now)
    alerts += _league_activity_alerts(snapshot, transactions or [], watchlist_ids, now)
    return alerts


def has_actionable_alerts(alerts: list[SmartAlert]) -> bool:
    """Whether any alert is worth a push notification."""
    return any(alert.priority in (Priority.HIGH, Priority.MEDIUM) for alert in alerts)


def sort_alerts_by_priority(alerts: list[SmartAlert]) -> list[SmartAlert]:
    """HIGH, then MEDIUM, then LOW; original order kept within a priority."""
    return sorted(alerts, key=lambda alert: _PRIORITY_ORDER[alert.priority])
