"""
Pydantic schemas for Embeddings API
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.core.config import settings


# ========================================
# Request Schemas
# ========================================

class BackfillRequest(BaseModel):
    """Request schema for an embedding backfill run."""

    user_only: bool = Field(default=True, description="Only the caller's posts")
    batch_size: int = Field(
        default=settings.BACKFILL_DEFAULT_BATCH_SIZE,
        description="Posts per batch",
        ge=1,
        le=settings.BACKFILL_MAX_BATCH_SIZE,
    )
    force_regenerate: bool = Field(default=False, description="Re-embed posts that already have one")


class ClearEmbeddingsRequest(BaseModel):
    """Request schema for clearing embeddings. confirm must be true."""

    user_only: bool = Field(default=True, description="Only the caller's posts")
    confirm: bool = Field(default=False, description="Explicit confirmation; nothing is cleared otherwise")


# ========================================
# Response Schemas
# ========================================

class BackfillProgress(BaseModel):
    total: int
    processed: int
    succeeded: int
    failed: int
    skipped: int
    status: str


class BackfillSummary(BaseModel):
    total_posts: int
    successful: int
    failed: int
    skipped: int
    success_rate: int = Field(description="Whole-number percentage")


class BackfillResponse(BaseModel):
    """Response schema for a backfill run."""

    success: bool = True
    message: str
    progress: BackfillProgress
    results: List[Dict[str, Any]] = Field(default_factory=list, description="Per-post outcomes")
    summary: BackfillSummary


class PendingPost(BaseModel):
    id: int
    title: str
    content_preview: str
    created_at: Optional[datetime] = None


class EmbeddingStatusData(BaseModel):
    total_posts: int
    posts_with_embeddings: int
    posts_without_embeddings: int
    completion_percentage: int
    posts_ready_for_processing: List[PendingPost] = Field(default_factory=list)


class EmbeddingStatusResponse(BaseModel):
    success: bool = True
    data: EmbeddingStatusData


class ClearEmbeddingsResponse(BaseModel):
    success: bool = True
    message: str
    cleared_count: int


class EmbeddingTestResponse(BaseModel):
    """Single-post diagnostic; nothing is stored."""

    success: bool
    post_id: int
    error: Optional[str] = None
    text_length: Optional[int] = None
    embedding_dimensions: Optional[int] = None
    had_existing_embedding: Optional[bool] = None
    embedding_preview: List[float] = Field(default_factory=list)
