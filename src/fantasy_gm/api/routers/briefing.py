"""
Briefing router.

Endpoints:
- GET /briefing - Daily briefing from the latest snapshot and diff
"""

from fastapi import APIRouter

from ..dependencies import StoreDependency
from ._utils import now_ms, snapshot_age_ms
from ...core.models import dump
from ...services.optimizer import generate_daily_briefing

router = APIRouter()


@router.get("")
async def get_briefing(store: StoreDependency) -> dict:
    snapshot = store.require_latest_snapshot()
    diff = store.get_last_diff()
    now = now_ms()

    briefing = generate_daily_briefing(
        snapshot,
        diff.status_changes if diff else [],
        diff=diff,
        injury_history=store.get_injury_history(),
        now=now,
    )

    return {
        "briefing": dump(briefing),
        "snapshot_age_ms": snapshot_age_ms(snapshot, now),
    }
