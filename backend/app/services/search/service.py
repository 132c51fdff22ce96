"""
Hybrid Search

Relational filtering in PostgreSQL followed by vector ranking in process:

1. Validate the query and embed it (cached adapter). No vector -> 503.
2. Fetch up to SEARCH_CANDIDATE_POOL_SIZE of the caller's posts that pass the
   filters and have an embedding, newest published first.
3. Rank by cosine similarity + performance boost, truncate to limit.
4. Attach usage suggestions and a relevance explanation to each result.
5. Hand a telemetry event to the recorder (not awaited).
"""

import logging
from typing import Any, Optional

from app.core.config import settings
from app.core.exceptions import PersistenceError, UpstreamUnavailableError, ValidationError
from app.repositories.insights import InsightRepository
from app.repositories.posts import PostRepository
from app.repositories.records import SearchFilters
from app.repositories.search_logs import SearchLogRepository
from app.services.embeddings.embedder import EmbeddingAdapter
from app.services.search.ranker import RankedResult, SimilarityRanker
from app.services.search.suggestions import (
    DEFAULT_SEARCH_SUGGESTIONS,
    explain_relevance,
    usage_suggestions,
)
from app.services.search.telemetry import SearchEvent, SearchTelemetryRecorder

logger = logging.getLogger(__name__)

SEARCH_TYPE_VECTOR = "hybrid_vector"
SEARCH_TYPE_NO_RESULTS = "hybrid_no_results"


class HybridSearchService:
    """Smart search over one user's posts."""

    def __init__(
        self,
        posts: PostRepository,
        adapter: EmbeddingAdapter,
        telemetry: Optional[SearchTelemetryRecorder] = None,
        ranker: Optional[SimilarityRanker] = None,
        insights: Optional[InsightRepository] = None,
        search_logs: Optional[SearchLogRepository] = None,
    ):
        self.posts = posts
        self.adapter = adapter
        self.telemetry = telemetry
        self.ranker = ranker or SimilarityRanker()
        self.insights = insights
        self.search_logs = search_logs

    async def search(
        self,
        user_id: int,
        query: str,
        filters: Optional[SearchFilters] = None,
        limit: Optional[int] = None,
        include_insights: bool = True,
    ) -> dict[str, Any]:
        """
        Run a smart search.

        Raises:
            ValidationError: Blank query or non-positive limit
            UpstreamUnavailableError: The query could not be embedded
            PersistenceError: The candidate query failed
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query is required")

        limit = settings.SEARCH_DEFAULT_LIMIT if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        limit = min(limit, settings.SEARCH_MAX_LIMIT)

        filters = filters or SearchFilters()
        active_filters = filters.active()

        query_vector = await self.adapter.get_embedding(query)
        if not query_vector:
            logger.error(f"Search aborted for user {user_id}: query embedding unavailable")
            raise UpstreamUnavailableError("Embedding unavailable; search cannot run right now")

        try:
            candidates = await self.posts.fetch_search_candidates(
                user_id,
                filters,
                pool_size=settings.SEARCH_CANDIDATE_POOL_SIZE,
            )
        except Exception as e:
            logger.error(f"Search candidate query failed for user {user_id}: {e}")
            raise PersistenceError("Search failed") from e

        if not candidates:
            logger.info(f"Search for user {user_id} matched no candidates (filters={active_filters})")
            return {
                "results": [],
                "query": query,
                "filters": active_filters,
                "total_found": 0,
                "search_type": SEARCH_TYPE_NO_RESULTS,
                "search_stats": {
                    "candidates_filtered": 0,
                    "vector_matches": 0,
                    "top_similarity": 0.0,
                    "top_score": 0.0,
                },
            }

        ranked, vector_matches = self.ranker.rank(
            query_vector,
            candidates,
            limit=limit,
            query=query,
            filters=filters,
        )

        results = [self._serialize(result, include_insights) for result in ranked]
        top_similarity = ranked[0].similarity_score if ranked else 0.0
        top_score = ranked[0].final_score if ranked else 0.0

        logger.info(
            f"Search for user {user_id}: {len(candidates)} candidates, "
            f"{vector_matches} scored, {len(results)} returned"
        )

        if self.telemetry is not None:
            self.telemetry.dispatch(
                SearchEvent(
                    user_id=user_id,
                    query=query,
                    filters=active_filters,
                    results_found=len(results),
                    top_score=top_score if ranked else None,
                    top_results=[
                        {"id": result.id, "final_score": round(result.final_score, 6)}
                        for result in ranked
                    ],
                    model_used=self.adapter.model_name,
                )
            )

        return {
            "results": results,
            "query": query,
            "filters": active_filters,
            "total_found": len(results),
            "search_type": SEARCH_TYPE_VECTOR,
            "search_stats": {
                "candidates_filtered": len(candidates),
                "vector_matches": vector_matches,
                "top_similarity": top_similarity,
                "top_score": top_score,
            },
        }

    def _serialize(self, result: RankedResult, include_insights: bool) -> dict[str, Any]:
        candidate = result.candidate
        item = {
            "id": candidate.id,
            "title": candidate.title,
            "content": candidate.content,
            "type": candidate.type,
            "platforms": candidate.platforms,
            "status": candidate.status,
            "topics": candidate.topics,
            "published_at": candidate.published_at,
            "similarity_score": result.similarity_score,
            "performance_boost": result.performance_boost,
            "final_score": result.final_score,
            "match_reasons": result.match_reasons,
            "usage_suggestions": usage_suggestions(result, settings.SEARCH_MAX_SUGGESTIONS),
            "relevance_explanation": explain_relevance(result),
        }
        if include_insights:
            item["insights"] = candidate.insight.to_dict() if candidate.insight else None
        return item

    async def search_suggestions(self, user_id: int) -> dict[str, Any]:
        """Recent queries and the facets available for filtering the caller's posts."""
        recent_searches: list[str] = []
        if self.search_logs is not None:
            recent_searches = await self.search_logs.recent_queries(user_id, settings.SEARCH_RECENT_QUERIES)

        performance_categories: list[str] = []
        if self.insights is not None:
            performance_categories = await self.insights.performance_categories(user_id)

        topics = await self.posts.top_topics(user_id, limit=10)

        return {
            "recent_searches": recent_searches,
            "suggested_topics": topics or list(DEFAULT_SEARCH_SUGGESTIONS),
            "search_suggestions": list(DEFAULT_SEARCH_SUGGESTIONS),
            "available_types": await self.posts.distinct_types(user_id),
            "available_platforms": await self.posts.distinct_platforms(user_id),
            "performance_categories": performance_categories,
        }
