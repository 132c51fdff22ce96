"""
Pydantic schemas for request/response validation.

Import all schemas here for easy access.
"""

from app.schemas.embeddings import (
    BackfillRequest,
    BackfillResponse,
    ClearEmbeddingsRequest,
    ClearEmbeddingsResponse,
    EmbeddingStatusResponse,
    EmbeddingTestResponse,
)
from app.schemas.insights import (
    SyncOverviewResponse,
    SyncRequest,
    SyncResponse,
    SyncSummarySchema,
)
from app.schemas.search import (
    SearchFiltersRequest,
    SearchRequest,
    SearchResponse,
    SearchSuggestionsResponse,
)

__all__ = [
    # Search
    "SearchFiltersRequest",
    "SearchRequest",
    "SearchResponse",
    "SearchSuggestionsResponse",
    # Embeddings
    "BackfillRequest",
    "BackfillResponse",
    "ClearEmbeddingsRequest",
    "ClearEmbeddingsResponse",
    "EmbeddingStatusResponse",
    "EmbeddingTestResponse",
    # Insights
    "SyncOverviewResponse",
    "SyncRequest",
    "SyncResponse",
    "SyncSummarySchema",
]
