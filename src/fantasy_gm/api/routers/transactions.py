"""
Transactions router - recent league adds and drops.

Endpoints:
- GET /transactions?hours=24
"""

from typing import Annotated, Any

from fastapi import APIRouter, Query

from ..dependencies import RefreshServiceDependency
from ._utils import now_ms
from ...core.models import LeagueTransaction
from ...core.types import TransactionType
from ...services.injuries import round_half_up

router = APIRouter()

MS_PER_HOUR = 60 * 60 * 1000


def format_transaction(tx: LeagueTransaction, now: int) -> dict[str, Any]:
    """Display-ready transaction row."""
    return {
        "type": tx.type.value,
        "player_id": tx.player_id,
        "player_name": tx.player_name or f"Player #{tx.player_id}",
        "player_season_avg": f"{tx.player_season_avg:.1f}" if tx.player_season_avg else "N/A",
        "player_team_abbrev": tx.player_team_abbrev or "N/A",
        "team_id": tx.team_id,
        "team_name": tx.team_name or f"Team {tx.team_id}",
        "time_ago": f"{round_half_up((now - tx.timestamp) / MS_PER_HOUR)}h ago",
    }


@router.get("")
async def get_transactions(
    service: RefreshServiceDependency,
    hours: Annotated[int | None, Query(ge=1, le=168, description="Lookback window")] = None,
) -> dict:
    transactions = await service.get_recent_transactions(hours)
    now = now_ms()
    formatted = [format_transaction(tx, now) for tx in transactions]

    drops = [row for row in formatted if row["type"] == TransactionType.DROP.value]
    adds = [row for row in formatted if row["type"] == TransactionType.ADD.value]

    return {
        "total_transactions": len(transactions),
        "drops": len(drops),
        "adds": len(adds),
        "drop_details": drops,
        "add_details": adds,
    }
