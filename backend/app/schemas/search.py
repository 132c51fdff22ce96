"""
Pydantic schemas for Smart Search API

Request fields accept both snake_case and the camelCase names used by the
web client (includeInsights, dateFrom, dateTo, performanceCategory).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.models.insight import PerformanceCategory
from app.models.post import PostStatus, PostType
from app.repositories.records import SearchFilters


# ========================================
# Request Schemas
# ========================================

class SearchFiltersRequest(BaseModel):
    """Relational filters applied before vector ranking."""

    model_config = ConfigDict(populate_by_name=True)

    type: Optional[PostType] = Field(default=None, description="Post type (post, reel, video, carousel, story)")
    platform: Optional[str] = Field(default=None, description="Platform the post was published on")
    status: Optional[PostStatus] = Field(default=None, description="Post status (draft, scheduled, published)")
    topics: List[str] = Field(default_factory=list, description="Match posts sharing any of these topics")
    date_from: Optional[datetime] = Field(default=None, alias="dateFrom", description="Published on or after")
    date_to: Optional[datetime] = Field(default=None, alias="dateTo", description="Published on or before")
    performance_category: Optional[PerformanceCategory] = Field(
        default=None,
        alias="performanceCategory",
        description="Latest insight category (high, medium, low)",
    )

    def to_filters(self) -> SearchFilters:
        return SearchFilters(
            type=self.type.value if self.type else None,
            platform=self.platform,
            status=self.status.value if self.status else None,
            topics=tuple(self.topics),
            date_from=self.date_from,
            date_to=self.date_to,
            performance_category=self.performance_category.value if self.performance_category else None,
        )


class SearchRequest(BaseModel):
    """Request schema for smart search."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(description="Natural-language search query; blank queries are rejected", max_length=1000)
    filters: SearchFiltersRequest = Field(default_factory=SearchFiltersRequest)
    limit: int = Field(
        default=settings.SEARCH_DEFAULT_LIMIT,
        description="Maximum number of results",
        ge=1,
        le=settings.SEARCH_MAX_LIMIT,
    )
    include_insights: bool = Field(
        default=True,
        alias="includeInsights",
        description="Attach the latest insight to each result",
    )


# ========================================
# Response Schemas
# ========================================

class SearchResultItem(BaseModel):
    """One ranked post."""

    id: int = Field(description="Post ID")
    title: Optional[str] = Field(default=None, description="Post title")
    content: str = Field(description="Post content")
    type: Optional[str] = Field(default=None, description="Post type")
    platforms: List[str] = Field(default_factory=list, description="Platforms")
    status: Optional[str] = Field(default=None, description="Post status")
    topics: List[str] = Field(default_factory=list, description="Topics")
    published_at: Optional[datetime] = Field(default=None, description="Publication date")
    similarity_score: float = Field(description="Cosine similarity to the query")
    performance_boost: float = Field(description="Boost from the latest performance category")
    final_score: float = Field(description="similarity_score + performance_boost")
    match_reasons: List[str] = Field(default_factory=list)
    usage_suggestions: List[str] = Field(default_factory=list)
    relevance_explanation: str = Field(description="Why this post was returned")
    insights: Optional[Dict[str, Any]] = Field(default=None, description="Latest synced insight")


class SearchStats(BaseModel):
    candidates_filtered: int = Field(description="Candidates that passed the relational filters")
    vector_matches: int = Field(description="Candidates that were scored")
    top_similarity: float
    top_score: float


class SearchData(BaseModel):
    results: List[SearchResultItem]
    query: str
    filters: Dict[str, Any]
    total_found: int
    search_type: str = Field(description="hybrid_vector or hybrid_no_results")
    search_stats: SearchStats


class SearchResponse(BaseModel):
    """Response schema for smart search."""

    success: bool = True
    data: SearchData


class SearchSuggestionsData(BaseModel):
    recent_searches: List[str] = Field(default_factory=list, description="Last distinct queries")
    suggested_topics: List[str] = Field(default_factory=list, description="Most frequent topics")
    search_suggestions: List[str] = Field(default_factory=list, description="Example queries")
    available_types: List[str] = Field(default_factory=list)
    available_platforms: List[str] = Field(default_factory=list)
    performance_categories: List[str] = Field(default_factory=list)


class SearchSuggestionsResponse(BaseModel):
    success: bool = True
    data: SearchSuggestionsData
