"""
Refresh router - runs the fetch/diff/alert pipeline.

Endpoints:
- GET /refresh - Scheduled refresh (requires ``Bearer <CRON_SECRET>`` when set)
- POST /refresh - Manual refresh

A failed refresh responds 500 with the refresh result body.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from ..dependencies import RefreshServiceDependency, SettingsDependency
from ..errors import UnauthorizedError
from ...services.refresh import RefreshService

logger = logging.getLogger(__name__)

router = APIRouter()


async def _run_refresh(service: RefreshService):
    result = await service.refresh()
    if not result.success:
        return JSONResponse(status_code=500, content=result.to_dict())
    return result.to_dict()


@router.get("")
async def scheduled_refresh(
    service: RefreshServiceDependency,
    settings: SettingsDependency,
    authorization: Annotated[str | None, Header()] = None,
    x_manual_refresh: Annotated[str | None, Header()] = None,
):
    """
    Run a refresh from the cron trigger.

    The bearer token is only checked when CRON_SECRET is configured and the
    request is not flagged as manual.
    """
    is_manual = x_manual_refresh == "true"
    if settings.cron_secret and not is_manual and authorization != f"Bearer {settings.cron_secret}":
        logger.warning("Rejected refresh request with missing or invalid token")
        raise UnauthorizedError()
    return await _run_refresh(service)


@router.post("")
async def manual_refresh(service: RefreshServiceDependency):
    """Run a refresh on demand."""
    return await _run_refresh(service)
