"""
Watchlist router - players to monitor for opportunities.

Endpoints:
- GET /watchlist
- POST /watchlist  body: {"playerId": 123}
- DELETE /watchlist?playerId=123
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Query

from ..dependencies import StoreDependency
from ..errors import ValidationError
from ._utils import now_ms
from ...core.models import Watchlist, dump

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_watchlist(store: StoreDependency) -> dict:
    watchlist = store.get_watchlist() or Watchlist(last_updated=now_ms())
    return {"watchlist": dump(watchlist)}


@router.post("")
async def add_to_watchlist(
    store: StoreDependency,
    body: Annotated[dict[str, Any], Body()],
) -> dict:
    """Add a player; adding a player already on the list is a no-op."""
    player_id = body.get("playerId")
    if not isinstance(player_id, int) or isinstance(player_id, bool) or player_id <= 0:
        raise ValidationError("playerId is required and must be a number")

    watchlist = store.add_to_watchlist(player_id, now_ms())
    logger.info("Player %d added to watchlist", player_id)
    return {"watchlist": dump(watchlist)}


@router.delete("")
async def remove_from_watchlist(
    store: StoreDependency,
    player_id: Annotated[int | None, Query(alias="playerId")] = None,
) -> dict:
    if not player_id:
        raise ValidationError("playerId query param is required")

    if store.get_watchlist() is None:
        return {"watchlist": dump(Watchlist(last_updated=now_ms()))}

    watchlist = store.remove_from_watchlist(player_id, now_ms())
    logger.info("Player %d removed from watchlist", player_id)
    return {"watchlist": dump(watchlist)}
