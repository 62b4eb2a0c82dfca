"""Shared helpers for route handlers."""

import time

from ...core.models import LeagueSnapshot


def now_ms() -> int:
    return int(time.time() * 1000)


def snapshot_age_ms(snapshot: LeagueSnapshot, now: int | None = None) -> int:
    """Milliseconds since the snapshot was fetched."""
    return (now if now is not None else now_ms()) - snapshot.fetched_at
