"""
Snapshot diff: detects what changed between two consecutive snapshots.

Changes detected:
- Player status transitions (injuries, returns) for every tracked player
- Free agents entering / leaving the top-N waiver list
- Players joining / leaving each fantasy roster
- Matchup week rollover

The diff is marked significant when it is worth interrupting the owner:
a status change on their roster, a change to their roster, three or more
new waiver candidates, or a new week.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.models import (
    FreeAgentEntry,
    LeagueSnapshot,
    RosterChange,
    SnapshotDiff,
    StatusChange,
)
from ..core.types import RosterChangeType

logger = logging.getLogger(__name__)

# New waiver candidates needed before the waiver list counts as significant
SIGNIFICANT_NEW_WAIVER_COUNT = 3


def _status_changes(previous: LeagueSnapshot, current: LeagueSnapshot) -> list[StatusChange]:
    my_roster = current.my_team.roster_player_ids() if current.my_team else set()
    changes: list[StatusChange] = []

    for player_id, current_status in current.status_index.items():
        previous_status = previous.status_index.get(player_id)
        if previous_status is None or previous_status.status == current_status.status:
            continue

        player = current.find_player(player_id)
        changes.append(
            StatusChange(
                player_id=player_id,
                player_name=player.name if player else f"Player {player_id}",
                previous_status=previous_status.status,
                current_status=current_status.status,
                is_my_player=player_id in my_roster,
                injury_note=current_status.injury_note,
                timestamp=current.fetched_at,
            )
        )

    return changes


def _waiver_changes(
    previous: LeagueSnapshot,
    current: LeagueSnapshot,
) -> tuple[list[FreeAgentEntry], list[FreeAgentEntry]]:
    previous_ids = {fa.player.id for fa in previous.free_agents_top_n}
    current_ids = {fa.player.id for fa in current.free_agents_top_n}

    added = [fa for fa in current.free_agents_top_n if fa.player.id not in previous_ids]
    removed = [fa for fa in previous.free_agents_top_n if fa.player.id not in current_ids]
    return added, removed


def _roster_changes(previous: LeagueSnapshot, current: LeagueSnapshot) -> list[RosterChange]:
    previous_teams = {team.id: team for team in previous.teams}
    changes: list[RosterChange] = []

    for team in current.teams:
        previous_team = previous_teams.get(team.id)
        if previous_team is None:
            continue

        before = {entry.player_id: entry.player for entry in previous_team.roster}
        after = {entry.player_id: entry.player for entry in team.roster}
        is_my_team = team.id == current.my_team_id

        for player_id in after.keys() - before.keys():
            changes.append(
                RosterChange(
                    team_id=team.id,
                    player_id=player_id,
                    player_name=after[player_id].name,
                    change=RosterChangeType.ADDED,
                    is_my_team=is_my_team,
                )
            )
        for player_id in before.keys() - after.keys():
            changes.append(
                RosterChange(
                    team_id=team.id,
                    player_id=player_id,
                    player_name=before[player_id].name,
                    change=RosterChangeType.REMOVED,
                    is_my_team=is_my_team,
                )
            )

    changes.sort(key=lambda c: (c.team_id, c.change.value, c.player_id))
    return changes


def calculate_snapshot_diff(
    previous: Optional[LeagueSnapshot],
    current: LeagueSnapshot,
) -> SnapshotDiff:
    """
    Compare two snapshots.

    Args:
        previous: The prior snapshot, or None on the first refresh
        current: The freshly built snapshot

    Returns:
        SnapshotDiff; empty and not significant when there is no previous
    """
    if previous is None:
        return SnapshotDiff()

    status_changes = _status_changes(previous, current)
    new_candidates, removed_candidates = _waiver_changes(previous, current)
    roster_changes = _roster_changes(previous, current)
    week_changed = previous.week != current.week

    significant = (
        any(change.is_my_player for change in status_changes)
        or len(new_candidates) >= SIGNIFICANT_NEW_WAIVER_COUNT
        or week_changed
        or any(change.is_my_team for change in roster_changes)
    )

    diff = SnapshotDiff(
        status_changes=status_changes,
        new_top_waiver_candidates=new_candidates,
        removed_top_waiver_candidates=removed_candidates,
        roster_changes=roster_changes,
        week_changed=week_changed,
        significant_changes=significant,
    )

    logger.info(
        "Diff: %d status changes, +%d/-%d waiver candidates, %d roster changes, week_changed=%s, significant=%s",
        len(status_changes),
        len(new_candidates),
        len(removed_candidates),
        len(roster_changes),
        week_changed,
        significant,
    )
    return diff


def summarize_diff(diff: SnapshotDiff) -> list[str]:
    """Short human-readable lines describing a diff."""
    lines: list[str] = []

    my_changes = diff.my_status_changes
    if my_changes:
        lines.append(f"{len(my_changes)} roster player status change(s)")

    other_changes = len(diff.status_changes) - len(my_changes)
    if other_changes:
        lines.append(f"{other_changes} league-wide status change(s)")

    if diff.new_top_waiver_candidates:
        lines.append(f"{len(diff.new_top_waiver_candidates)} new top waiver candidate(s)")

    my_roster_changes = [c for c in diff.roster_changes if c.is_my_team]
    if my_roster_changes:
        lines.append(f"{len(my_roster_changes)} change(s) to your roster")

    if diff.week_changed:
        lines.append("New matchup week started")

    return lines
