"""
Insight Sync API Routes

- POST /insights/sync: sync platform metrics for the caller's recent posts
- GET /insights/sync: sync status, recent insights and top patterns

Responses use camelCase keys. All endpoints require authentication.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_insight_sync_service
from app.core.auth import get_current_active_user
from app.core.exceptions import PostPulseError
from app.models.user import User
from app.schemas.insights import (
    SyncOverviewData,
    SyncOverviewResponse,
    SyncRequest,
    SyncResponse,
    SyncSummarySchema,
)
from app.services.insights.sync_service import InsightSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/insights", tags=["insights"])


@router.post("/sync", response_model=SyncResponse, response_model_by_alias=True)
async def sync_insights(
    request: SyncRequest,
    current_user: User = Depends(get_current_active_user),
    service: InsightSyncService = Depends(get_insight_sync_service),
):
    """
    Pull metrics for the caller's posts published on the platform in the
    last 30 days. Within the cooldown window (6 hours) nothing is fetched
    unless forceSync is true.

    Returns 404 when no account is connected for the platform.
    """
    try:
        summary = await service.sync_insights(
            current_user.id,
            request.platform,
            force_sync=request.force_sync,
        )
        return SyncResponse(
            success=True,
            message=summary.message,
            data=SyncSummarySchema.model_validate(summary.to_dict()),
        )

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Insight sync failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to sync insights"
        )


@router.get("/sync", response_model=SyncOverviewResponse, response_model_by_alias=True)
async def get_sync_overview(
    platform: Optional[str] = Query(default=None, description="Limit to one platform"),
    current_user: User = Depends(get_current_active_user),
    service: InsightSyncService = Depends(get_insight_sync_service),
):
    """Sync status rows, the 50 most recent insights and the 20 top active patterns."""
    try:
        overview = await service.get_sync_overview(current_user.id, platform)
        return SyncOverviewResponse(
            success=True,
            data=SyncOverviewData.model_validate(overview),
        )

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Get sync insights failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get sync insights"
        )
