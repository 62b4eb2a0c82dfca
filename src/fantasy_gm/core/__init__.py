"""
Core module for Fantasy GM.

This module provides the foundational components:
- Configuration management (config.py)
- Domain exceptions (errors.py)
- Normalized data models (models.py)
- Enums and ESPN lookup tables (types.py)
- Shared HTTP client infrastructure (http.py)

Usage:
    from fantasy_gm.core import Settings, get_settings
    from fantasy_gm.core import PlayerStatus, OUT_STATUSES
    from fantasy_gm.core import LeagueSnapshot, SnapshotDiff
    from fantasy_gm.core.http import BaseApiClient, ExternalAPIError
"""

# Configuration
from .config import Settings, get_settings

# Errors
from .errors import (
    ConfigurationError,
    FantasyGMError,
    SnapshotNotFoundError,
    TeamNotFoundError,
)

# Types
from .types import (
    OUT_STATUSES,
    QUESTIONABLE_STATUSES,
    Confidence,
    PlayerStatus,
    Priority,
    SmartAlertType,
    TransactionType,
)

# Models
from .models import (
    FreeAgentEntry,
    LeagueSnapshot,
    LeagueTransaction,
    Player,
    SmartAlert,
    SnapshotDiff,
    StatusChange,
    Team,
    Watchlist,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "ConfigurationError",
    "FantasyGMError",
    "SnapshotNotFoundError",
    "TeamNotFoundError",
    # Types
    "OUT_STATUSES",
    "QUESTIONABLE_STATUSES",
    "Confidence",
    "PlayerStatus",
    "Priority",
    "SmartAlertType",
    "TransactionType",
    # Models
    "FreeAgentEntry",
    "LeagueSnapshot",
    "LeagueTransaction",
    "Player",
    "SmartAlert",
    "SnapshotDiff",
    "StatusChange",
    "Team",
    "Watchlist",
]
