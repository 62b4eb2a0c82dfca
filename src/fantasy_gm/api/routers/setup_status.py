"""
Setup router - configuration status for first-run checks.

Endpoints:
- GET /setup
"""

from fastapi import APIRouter

from ..dependencies import SettingsDependency

router = APIRouter()


@router.get("")
async def get_setup_status(settings: SettingsDependency) -> dict:
    """Which integrations are configured. Never returns secret values."""
    return {
        "espn": {
            "configured": settings.espn_configured,
            "league_id": settings.espn_league_id or None,
            "season": settings.espn_season,
            "my_team_id": settings.espn_my_team_id,
            "has_espn_s2": bool(settings.espn_s2),
            "has_swid": bool(settings.espn_swid),
        },
        "telegram": {
            "configured": settings.telegram_configured,
        },
        "storage": {
            "backend": "redis" if settings.redis_url else "file",
        },
        "cron_secret_set": bool(settings.cron_secret),
        "dashboard_url": settings.dashboard_url,
    }
