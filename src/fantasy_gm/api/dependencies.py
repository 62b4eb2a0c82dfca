"""
Dependency injection for API endpoints.

Clients, storage and the refresh service are module-level singletons
created on first use and closed at app shutdown. Tests replace them via
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from ..core.config import Settings, get_settings
from ..core.errors import ConfigurationError
from ..notifications.telegram import TelegramNotifier
from ..providers.espn import EspnClient
from ..services.refresh import RefreshService
from ..storage import SnapshotStore, create_storage

_store: SnapshotStore | None = None
_espn_client: EspnClient | None = None
_notifier: TelegramNotifier | None = None
_refresh_service: RefreshService | None = None


def get_store() -> SnapshotStore:
    """
    Dependency that provides the snapshot store for the configured league.

    Raises:
        ConfigurationError: ESPN_LEAGUE_ID is not set
    """
    global _store
    settings = get_settings()
    if not settings.espn_league_id:
        raise ConfigurationError("ESPN_LEAGUE_ID not configured")
    if _store is None:
        _store = create_storage(settings)
    return _store


def get_espn_client() -> EspnClient:
    global _espn_client
    if _espn_client is None:
        _espn_client = EspnClient.from_settings(get_settings())
    return _espn_client


def get_notifier() -> TelegramNotifier:
    global _notifier
    if _notifier is None:
        _notifier = TelegramNotifier.from_settings(get_settings())
    return _notifier


def get_refresh_service() -> RefreshService:
    """Dependency that provides the shared refresh service (one refresh at a time)."""
    global _refresh_service
    if _refresh_service is None:
        _refresh_service = RefreshService(
            get_settings(),
            get_store(),
            get_espn_client(),
            get_notifier(),
        )
    return _refresh_service


async def close_clients() -> None:
    """Close HTTP clients and drop singletons. Called at app shutdown."""
    global _store, _espn_client, _notifier, _refresh_service
    if _espn_client is not None:
        await _espn_client.close()
    if _notifier is not None:
        await _notifier.close()
    _store = None
    _espn_client = None
    _notifier = None
    _refresh_service = None


# Type aliases for dependency injection
SettingsDependency = Annotated[Settings, Depends(get_settings)]
StoreDependency = Annotated[SnapshotStore, Depends(get_store)]
NotifierDependency = Annotated[TelegramNotifier, Depends(get_notifier)]
RefreshServiceDependency = Annotated[RefreshService, Depends(get_refresh_service)]
