"""
Waivers router - ranked pickups and drop candidates.

Endpoints:
- GET /waivers?limit=10
"""

from typing import Annotated

from fastapi import APIRouter, Query

from ..dependencies import StoreDependency
from ._utils import snapshot_age_ms
from ...core.models import dump
from ...services.optimizer import get_drop_recommendations, get_waiver_recommendations

router = APIRouter()

DROP_CANDIDATE_LIMIT = 5


@router.get("")
async def get_waivers(
    store: StoreDependency,
    limit: Annotated[int, Query(ge=1, le=50, description="Max recommendations")] = 10,
) -> dict:
    """Waiver recommendations (injury-risk adjusted) plus drop candidates."""
    snapshot = store.require_latest_snapshot()
    injury_history = store.get_injury_history()

    recommendations = get_waiver_recommendations(snapshot, limit, injury_history)
    drop_candidates = get_drop_recommendations(snapshot, DROP_CANDIDATE_LIMIT)

    return {
        "week": snapshot.week,
        "recommendations": [dump(rec) for rec in recommendations],
        "drop_candidates": [dump(candidate) for candidate in drop_candidates],
        "snapshot_age_ms": snapshot_age_ms(snapshot),
    }
