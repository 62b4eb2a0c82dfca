"""
Persistent key-value storage for snapshots, diffs, injury history and the
watchlist.

Backends:
- RedisBackend: production; JSON values, snapshot history as a Redis list
- FileBackend: local development; one JSON file per key under ``data_dir``
- InMemoryBackend: tests and one-off CLI runs

``SnapshotStore`` layers the domain operations on top of a backend and
namespaces every key by league and season.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import redis

from .core.config import Settings
from .core.errors import SnapshotNotFoundError
from .core.models import (
    InjuryHistoryIndex,
    LeagueSnapshot,
    PlayerInjuryHistory,
    SnapshotDiff,
    Watchlist,
)

logger = logging.getLogger(__name__)

MAX_HISTORY_LENGTH = 50


class StorageBackend(ABC):
    """Abstract base class for storage backends. Values are JSON-compatible."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get a value, or None when missing."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a key (no error when missing)."""
        pass

    @abstractmethod
    def push_front(self, key: str, value: Any, max_length: int) -> None:
        """Prepend to a list and trim it to ``max_length`` items."""
        pass

    @abstractmethod
    def get_list(self, key: str, start: int = 0, end: int = -1) -> list[Any]:
        """Items ``start..end`` inclusive (Redis LRANGE semantics)."""
        pass

    @property
    def name(self) -> str:
        return type(self).__name__


def _slice(items: list[Any], start: int, end: int) -> list[Any]:
    return items[start:] if end == -1 else items[start : end + 1]


class InMemoryBackend(StorageBackend):
    """Thread-safe in-memory backend. Values are JSON round-tripped on write."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def push_front(self, key: str, value: Any, max_length: int) -> None:
        with self._lock:
            items = json.loads(self._data.get(key, "[]"))
            items.insert(0, value)
            self._data[key] = json.dumps(items[:max_length])

    def get_list(self, key: str, start: int = 0, end: int = -1) -> list[Any]:
        with self._lock:
            items = json.loads(self._data.get(key, "[]"))
        return _slice(items, start, end)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class FileBackend(StorageBackend):
    """One ``<key>.json`` file per key under a data directory."""

    def __init__(self, data_dir: str | Path = ".data"):
        self._dir = Path(data_dir)
        self._lock = threading.RLock()

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable storage file %s: %s", path, e)
            return None

    def set(self, key: str, value: Any) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        with self._lock:
            fd, tmp_path = tempfile.mkstemp(dir=self._dir, prefix=".tmp_", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f)
                os.replace(tmp_path, path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise

    def delete(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)

    def push_front(self, key: str, value: Any, max_length: int) -> None:
        with self._lock:
            items = self.get(key) or []
            items.insert(0, value)
            self.set(key, items[:max_length])

    def get_list(self, key: str, start: int = 0, end: int = -1) -> list[Any]:
        return _slice(self.get(key) or [], start, end)


class RedisBackend(StorageBackend):
    """Redis backend; lists use LPUSH / LTRIM."""

    def __init__(self, url: str, prefix: str = "fantasy_gm:", client: Optional[redis.Redis] = None):
        self._redis = client or redis.from_url(url, decode_responses=True)
        self._prefix = prefix
        # Test connection
        self._redis.ping()
        logger.info("Redis storage backend connected")

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self._redis.get(self._key(key))
        except redis.RedisError as e:
            logger.warning("Redis get error: %s", e)
            return None
        return json.loads(data) if data else None

    def set(self, key: str, value: Any) -> None:
        self._redis.set(self._key(key), json.dumps(value))

    def delete(self, key: str) -> None:
        self._redis.delete(self._key(key))

    def push_front(self, key: str, value: Any, max_length: int) -> None:
        pipe = self._redis.pipeline()
        pipe.lpush(self._key(key), json.dumps(value))
        pipe.ltrim(self._key(key), 0, max_length - 1)
        pipe.execute()

    def get_list(self, key: str, start: int = 0, end: int = -1) -> list[Any]:
        try:
            items = self._redis.lrange(self._key(key), start, end)
        except redis.RedisError as e:
            logger.warning("Redis lrange error: %s", e)
            return []
        return [json.loads(item) for item in items]


class SnapshotStore:
    """
    Domain storage operations for one league/season.

    Keys are ``{league_id}_{season_id}_{name}``.
    """

    def __init__(
        self,
        backend: StorageBackend,
        league_id: int,
        season_id: int,
        history_length: int = MAX_HISTORY_LENGTH,
    ):
        self.backend = backend
        self.league_id = league_id
        self.season_id = season_id
        self.history_length = history_length

    def _key(self, name: str) -> str:
        return f"{self.league_id}_{self.season_id}_{name}"

    # =========================================================================
    # Snapshots
    # =========================================================================

    def store_snapshot(self, snapshot: LeagueSnapshot) -> None:
        """
        Store a snapshot by timestamp, as latest, and in the capped history.

        Snapshots that fall off the end of the history are deleted.
        """
        data = snapshot.model_dump(mode="json")
        expired = self.backend.get_list(self._key("history"), max(self.history_length - 1, 0))

        self.backend.set(self._key(f"snapshot_{snapshot.fetched_at}"), data)
        self.backend.set(self._key("latest"), data)
        self.backend.push_front(self._key("history"), snapshot.fetched_at, self.history_length)

        for ts in expired:
            if int(ts) != snapshot.fetched_at:
                self.backend.delete(self._key(f"snapshot_{ts}"))

    def get_latest_snapshot(self) -> Optional[LeagueSnapshot]:
        data = self.backend.get(self._key("latest"))
        return LeagueSnapshot.model_validate(data) if data else None

    def require_latest_snapshot(self) -> LeagueSnapshot:
        """Latest snapshot, raising SnapshotNotFoundError before the first refresh."""
        snapshot = self.get_latest_snapshot()
        if snapshot is None:
            raise SnapshotNotFoundError(self.league_id, self.season_id)
        return snapshot

    def get_previous_snapshot(self) -> Optional[LeagueSnapshot]:
        """The snapshot stored before the latest one."""
        history = self.backend.get_list(self._key("history"), 0, 1)
        if len(history) < 2:
            return None
        data = self.backend.get(self._key(f"snapshot_{history[1]}"))
        return LeagueSnapshot.model_validate(data) if data else None

    def get_snapshot_history(self) -> list[int]:
        """Stored snapshot timestamps, newest first."""
        return [int(ts) for ts in self.backend.get_list(self._key("history"))]

    # =========================================================================
    # Diff, injury history, watchlist
    # =========================================================================

    def store_last_diff(self, diff: SnapshotDiff) -> None:
        self.backend.set(self._key("last_diff"), diff.model_dump(mode="json"))

    def get_last_diff(self) -> Optional[SnapshotDiff]:
        data = self.backend.get(self._key("last_diff"))
        return SnapshotDiff.model_validate(data) if data else None

    def store_injury_history(self, history: InjuryHistoryIndex) -> None:
        self.backend.set(
            self._key("injury_history"),
            {str(player_id): record.model_dump(mode="json") for player_id, record in history.items()},
        )

    def get_injury_history(self) -> Optional[InjuryHistoryIndex]:
        data = self.backend.get(self._key("injury_history"))
        if data is None:
            return None
        return {int(player_id): PlayerInjuryHistory.model_validate(record) for player_id, record in data.items()}

    def store_watchlist(self, watchlist: Watchlist) -> None:
        self.backend.set(self._key("watchlist"), watchlist.model_dump(mode="json"))

    def get_watchlist(self) -> Optional[Watchlist]:
        data = self.backend.get(self._key("watchlist"))
        return Watchlist.model_validate(data) if data else None

    def add_to_watchlist(self, player_id: int, now: Optional[int] = None) -> Watchlist:
        """Add a player (no-op when already present) and return the watchlist."""
        watchlist = self.get_watchlist() or Watchlist()
        if player_id not in watchlist.player_ids:
            watchlist.player_ids.append(player_id)
        watchlist.last_updated = now if now is not None else int(time.time() * 1000)
        self.store_watchlist(watchlist)
        return watchlist

    def remove_from_watchlist(self, player_id: int, now: Optional[int] = None) -> Watchlist:
        watchlist = self.get_watchlist() or Watchlist()
        watchlist.player_ids = [pid for pid in watchlist.player_ids if pid != player_id]
        watchlist.last_updated = now if now is not None else int(time.time() * 1000)
        self.store_watchlist(watchlist)
        return watchlist

    # =========================================================================
    # Scheduled job bookkeeping
    # =========================================================================

    def store_job_run(self, job_name: str, result: dict[str, Any]) -> None:
        self.backend.set(self._key(f"job_{job_name}"), result)

    def get_job_run(self, job_name: str) -> Optional[dict[str, Any]]:
        return self.backend.get(self._key(f"job_{job_name}"))


def create_backend(settings: Settings) -> StorageBackend:
    """Redis when configured and reachable, otherwise JSON files."""
    if settings.redis_url:
        try:
            return RedisBackend(settings.redis_url)
        except redis.RedisError as e:
            logger.warning("Redis unavailable (%s), falling back to file storage", e)

    logger.info("Using file-based storage (%s/)", settings.data_dir)
    return FileBackend(settings.data_dir)


def create_storage(settings: Settings, backend: Optional[StorageBackend] = None) -> SnapshotStore:
    return SnapshotStore(
        backend or create_backend(settings),
        league_id=settings.espn_league_id,
        season_id=settings.espn_season,
        history_length=settings.snapshot_history_length,
    )
