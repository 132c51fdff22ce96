"""
Smart Search API Routes

- POST /search: hybrid semantic search over the caller's posts
- GET /search/suggestions: recent queries and available filter values

All endpoints require authentication.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_search_service
from app.core.auth import get_current_active_user
from app.core.exceptions import PostPulseError
from app.models.user import User
from app.schemas.search import (
    SearchRequest,
    SearchResponse,
    SearchSuggestionsResponse,
)
from app.services.search.service import HybridSearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.post("", response_model=SearchResponse)
async def smart_search(
    request: SearchRequest,
    current_user: User = Depends(get_current_active_user),
    service: HybridSearchService = Depends(get_search_service),
):
    """
    Search the caller's posts by meaning.

    Posts are filtered relationally (type, platform, status, topics, dates,
    performance category), then ranked by cosine similarity to the query
    plus a boost for previously high/medium performing posts.

    Returns 503 when the query cannot be embedded.
    """
    try:
        data = await service.search(
            user_id=current_user.id,
            query=request.query,
            filters=request.filters.to_filters(),
            limit=request.limit,
            include_insights=request.include_insights,
        )
        return {"success": True, "data": data}

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Smart search failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Search failed"
        )


@router.get("/suggestions", response_model=SearchSuggestionsResponse)
async def search_suggestions(
    current_user: User = Depends(get_current_active_user),
    service: HybridSearchService = Depends(get_search_service),
):
    """Recent searches, frequent topics and the filter values present in the caller's data."""
    try:
        data = await service.search_suggestions(current_user.id)
        return {"success": True, "data": data}

    except PostPulseError:
        raise
    except Exception as e:
        logger.error(f"Search suggestions failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get suggestions"
        )
