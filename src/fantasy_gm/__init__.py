"""
Fantasy GM

A fantasy basketball assistant for ESPN leagues: fetches league state,
snapshots and diffs it, ranks waiver pickups, plans streaming adds and
pushes smart alerts to Telegram.

Usage:
    from fantasy_gm import get_settings, RefreshService, create_storage

    settings = get_settings()
    store = create_storage(settings)
"""

from .core.config import Settings, get_settings
from .services.refresh import RefreshResult, RefreshService
from .storage import SnapshotStore, create_storage

__version__ = "1.0.0"

__all__ = [
    "RefreshResult",
    "RefreshService",
    "Settings",
    "SnapshotStore",
    "create_storage",
    "get_settings",
]
