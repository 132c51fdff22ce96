"""
Embeddings API Routes

- POST /embeddings/backfill: generate missing post embeddings
- GET /embeddings/status: coverage counts and posts awaiting an embedding
- DELETE /embeddings: clear embeddings (requires confirm: true)
- POST /embeddings/test/{post_id}: embed one post without storing it

All endpoints require authentication; user_only=false needs an operator.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import ensure_scope_allowed, get_backfill_service
from app.core.auth import get_current_active_user
from app.core.exceptions import PostPulseError
from app.models.user import User
from app.schemas.embeddings import (
    BackfillRequest,
    BackfillResponse,
    ClearEmbeddingsRequest,
    ClearEmbeddingsResponse,
    EmbeddingStatusResponse,
    EmbeddingTestResponse,
)
from app.services.embeddings.backfill import BackfillScope, EmbeddingBackfillService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/embeddings", tags=["embeddings"])


@router.post("/backfill", response_model=BackfillResponse)
async def backfill_embeddings(
    request: BackfillRequest,
    current_user: User = Depends(get_current_active_user),
    service: EmbeddingBackfillService = Depends(get_backfill_service),
):
    """
    Generate embeddings for posts that lack one.

    Runs synchronously in the request; large operator runs belong on the
    embedding.backfill_embeddings Celery task.
    """
    ensure_scope_allowed(current_user, request.user_only)

    try:
        report = await service.backfill(
            BackfillScope(
                user_id=current_user.id,
                user_only=request.user_only,
                force_regenerate=request.force_regenerate,
                batch_size=request.batch_size,
            )
        )

        if report.total == 0:
            message = "No posts need embedding generation"
        else:
            message = f"Processed {report.total} posts: {report.succeeded} successful, {report.failed} failed"

        return {
            "success": True,
            "message": message,
            "progress": report.progress_dict(),
            "results": [item.to_dict() for item in report.results],
            "summary": report.summary_dict(),
        }

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Embedding backfill failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Backfill failed"
        )


@router.get("/status", response_model=EmbeddingStatusResponse)
async def embedding_status(
    user_only: bool = Query(default=True, description="Only the caller's posts"),
    current_user: User = Depends(get_current_active_user),
    service: EmbeddingBackfillService = Depends(get_backfill_service),
):
    """Embedding coverage and up to 50 posts still waiting for one."""
    ensure_scope_allowed(current_user, user_only)

    try:
        data = await service.embedding_status(current_user.id, user_only=user_only)
        return {"success": True, "data": data}

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Embedding status failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get embedding status"
        )


@router.delete("", response_model=ClearEmbeddingsResponse)
async def clear_embeddings(
    request: ClearEmbeddingsRequest,
    current_user: User = Depends(get_current_active_user),
    service: EmbeddingBackfillService = Depends(get_backfill_service),
):
    """Set embeddings to NULL. Rejected with 400 unless confirm is true."""
    ensure_scope_allowed(current_user, request.user_only)

    try:
        cleared = await service.clear_embeddings(
            current_user.id,
            user_only=request.user_only,
            confirm=request.confirm,
        )
        return {
            "success": True,
            "message": f"Cleared embeddings for {cleared} posts",
            "cleared_count": cleared,
        }

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Clearing embeddings failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear embeddings"
        )


@router.post("/test/{post_id}", response_model=EmbeddingTestResponse)
async def test_post_embedding(
    post_id: int,
    current_user: User = Depends(get_current_active_user),
    service: EmbeddingBackfillService = Depends(get_backfill_service),
):
    """Embed one of the caller's posts and report the result; nothing is stored."""
    try:
        return await service.test_single_post(current_user.id, post_id)

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Embedding test failed for post {post_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Embedding test failed"
        )
