"""
Pydantic schemas for Insight Sync API

Responses are serialized with camelCase keys (syncedCount, nextSync, ...)
to match the web client.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input; routes dump by alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========================================
# Request Schemas
# ========================================

class SyncRequest(CamelModel):
    """Request schema for an insight sync."""

    platform: str = Field(description="instagram or facebook", min_length=1, max_length=50)
    force_sync: bool = Field(default=False, description="Ignore the cooldown window")


# ========================================
# Response Schemas
# ========================================

class PostSyncResultSchema(CamelModel):
    post_id: int
    status: str = Field(description="success or failed")
    engagement_rate: Optional[float] = None
    performance_category: Optional[str] = None
    error: Optional[str] = None


class SyncSummarySchema(CamelModel):
    platform: str
    total_posts: int = 0
    synced_count: int = 0
    failed_count: int = 0
    sync_results: List[PostSyncResultSchema] = Field(default_factory=list, description="First 10 outcomes")
    status: str = Field(description="succeeded, partially_failed, failed, no_posts or cooldown")
    next_sync: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("next_sync_at", "nextSync", "next_sync"),
        serialization_alias="nextSync",
    )
    cooldown_active: bool = False
    cooldown_remaining_seconds: int = 0
    patterns_analyzed: bool = False


class SyncResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: SyncSummarySchema


class SyncStatusSchema(CamelModel):
    platform: str
    sync_enabled: bool
    last_sync_at: Optional[datetime] = None
    last_successful_sync: Optional[datetime] = None
    next_sync_at: Optional[datetime] = None
    api_status: str
    api_error_message: Optional[str] = None
    failed_syncs: int = 0


class SyncOverviewData(CamelModel):
    sync_status: List[SyncStatusSchema] = Field(default_factory=list)
    recent_insights: List[Dict[str, Any]] = Field(default_factory=list)
    active_patterns: List[Dict[str, Any]] = Field(default_factory=list)


class SyncOverviewResponse(CamelModel):
    success: bool = True
    data: SyncOverviewData
