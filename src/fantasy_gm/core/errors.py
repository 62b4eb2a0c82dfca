"""Domain exceptions shared across the pipeline."""


class FantasyGMError(Exception):
    """Base exception for Fantasy GM errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(FantasyGMError):
    """A required setting is missing."""


class SnapshotNotFoundError(FantasyGMError):
    """No stored snapshot exists yet for the configured league."""

    def __init__(self, league_id: int, season_id: int):
        super().__init__("No snapshot available. Please run a refresh first.")
        self.league_id = league_id
        self.season_id = season_id


class TeamNotFoundError(FantasyGMError):
    """The configured team is not part of the snapshot."""

    def __init__(self, team_id: int):
        super().__init__(f"My team ({team_id}) not found in snapshot")
        self.team_id = team_id
