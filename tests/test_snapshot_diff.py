"""Tests for the snapshot diff engine."""

from conftest import MY_TEAM_ID
from fantasy_gm.core.types import PlayerStatus, RosterChangeType
from fantasy_gm.snapshot_diff import calculate_snapshot_diff, summarize_diff


def drop_from_roster(snapshot, team_id, player_id):
    updated = snapshot.model_copy(deep=True)
    team = next(t for t in updated.teams if t.id == team_id)
    team.roster = [e for e in team.roster if e.player_id != player_id]
    updated.status_index.pop(player_id, None)
    return updated


class TestCalculateSnapshotDiff:
    def test_first_refresh_is_empty(self, snapshot):
        diff = calculate_snapshot_diff(None, snapshot)

        assert diff.status_changes == []
        assert diff.new_top_waiver_candidates == []
        assert diff.roster_changes == []
        assert not diff.week_changed
        assert not diff.significant_changes

    def test_identical_snapshots(self, snapshot):
        diff = calculate_snapshot_diff(snapshot, snapshot.model_copy(deep=True))
        assert diff.model_dump() == calculate_snapshot_diff(None, snapshot).model_dump()

    def test_my_player_injury_is_significant(self, snapshot, with_status):
        current = with_status(snapshot, 101, PlayerStatus.OUT, "Ankle")
        diff = calculate_snapshot_diff(snapshot, current)

        assert len(diff.status_changes) == 1
        change = diff.status_changes[0]
        assert change.player_id == 101
        assert change.player_name == "LeBron James"
        assert change.previous_status == PlayerStatus.ACTIVE
        assert change.current_status == PlayerStatus.OUT
        assert change.injury_note == "Ankle"
        assert change.is_my_player
        assert diff.significant_changes
        assert diff.my_status_changes == [change]

    def test_other_team_injury_is_not_significant(self, snapshot, with_status):
        diff = calculate_snapshot_diff(snapshot, with_status(snapshot, 201, PlayerStatus.OUT))

        assert len(diff.status_changes) == 1
        assert not diff.status_changes[0].is_my_player
        assert not diff.significant_changes

    def test_players_new_to_status_index_are_not_changes(self, snapshot, with_status):
        previous = drop_from_roster(snapshot, 2, 201)
        diff = calculate_snapshot_diff(previous, with_status(snapshot, 201, PlayerStatus.OUT))
        assert diff.status_changes == []

    def test_three_new_waiver_candidates_are_significant(self, snapshot):
        previous = snapshot.model_copy(update={"free_agents_top_n": snapshot.free_agents_top_n[:2]})
        diff = calculate_snapshot_diff(previous, snapshot)

        assert [fa.player.id for fa in diff.new_top_waiver_candidates] == [304, 303, 305]
        assert diff.removed_top_waiver_candidates == []
        assert diff.significant_changes

    def test_two_new_waiver_candidates_are_not_significant(self, snapshot):
        previous = snapshot.model_copy(update={"free_agents_top_n": snapshot.free_agents_top_n[:3]})
        diff = calculate_snapshot_diff(previous, snapshot)

        assert len(diff.new_top_waiver_candidates) == 2
        assert not diff.significant_changes

    def test_removed_waiver_candidates(self, snapshot):
        current = snapshot.model_copy(update={"free_agents_top_n": snapshot.free_agents_top_n[1:]})
        diff = calculate_snapshot_diff(snapshot, current)
        assert [fa.player.id for fa in diff.removed_top_waiver_candidates] == [301]

    def test_week_change_is_significant(self, snapshot):
        diff = calculate_snapshot_diff(snapshot, snapshot.model_copy(update={"week": 13}))
        assert diff.week_changed
        assert diff.significant_changes

    def test_my_roster_change_is_significant(self, snapshot):
        diff = calculate_snapshot_diff(snapshot, drop_from_roster(snapshot, MY_TEAM_ID, 105))

        assert len(diff.roster_changes) == 1
        change = diff.roster_changes[0]
        assert change.player_id == 105
        assert change.change == RosterChangeType.REMOVED
        assert change.is_my_team
        assert diff.significant_changes

    def test_other_roster_change_is_not_significant(self, snapshot):
        diff = calculate_snapshot_diff(drop_from_roster(snapshot, 2, 202), snapshot)

        assert len(diff.roster_changes) == 1
        assert diff.roster_changes[0].change == RosterChangeType.ADDED
        assert diff.roster_changes[0].team_id == 2
        assert not diff.significant_changes


class TestSummarizeDiff:
    def test_empty(self, snapshot):
        assert summarize_diff(calculate_snapshot_diff(None, snapshot)) == []

    def test_lines(self, snapshot, with_status):
        current = with_status(snapshot, 101, PlayerStatus.OUT)
        current = with_status(current, 201, PlayerStatus.OUT)
        current = drop_from_roster(current, MY_TEAM_ID, 105).model_copy(update={"week": 13})

        assert summarize_diff(calculate_snapshot_diff(snapshot, current)) == [
            "1 roster player status change(s)",
            "1 league-wide status change(s)",
            "1 change(s) to your roster",
            "New matchup week started",
        ]
