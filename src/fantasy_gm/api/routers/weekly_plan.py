"""
Weekly plan router - streaming plan for the next 7 days.

Endpoints:
- GET /weekly-plan?adds=5 (default: ADDS_PER_WEEK)
"""

from typing import Annotated

from fastapi import APIRouter, Query

from ..dependencies import SettingsDependency, StoreDependency
from ._utils import snapshot_age_ms
from ...core.models import dump
from ...services.optimizer import generate_weekly_streaming_plan, get_waiver_recommendations

router = APIRouter()

# Candidate pool and games threshold for the "top picks by games" list
TOP_PICKS_POOL = 50
TOP_PICKS_MIN_GAMES = 4


@router.get("")
async def get_weekly_plan(
    store: StoreDependency,
    settings: SettingsDependency,
    adds: Annotated[int | None, Query(ge=0, le=14, description="Adds allowed this week")] = None,
) -> dict:
    """Streaming plan, the schedule index, and free agents on 4+ game teams."""
    snapshot = store.require_latest_snapshot()
    plan = generate_weekly_streaming_plan(snapshot, adds if adds is not None else settings.adds_per_week)

    recommendations = get_waiver_recommendations(snapshot, TOP_PICKS_POOL, store.get_injury_history())
    top_picks = [rec for rec in recommendations if rec.games_next7 >= TOP_PICKS_MIN_GAMES]

    return {
        "plan": dump(plan),
        "schedule_index": {
            str(team_id): dump(schedule) for team_id, schedule in snapshot.schedule_index.items()
        },
        "top_picks_by_games": [dump(rec) for rec in top_picks],
        "snapshot_age_ms": snapshot_age_ms(snapshot),
    }
