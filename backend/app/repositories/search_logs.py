"""
Search telemetry repository (ai_context_logs).
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.search_log import AIContextLog

SMART_SEARCH_SOURCE = "smart_search"


class SearchLogRepository:
    """Writes and reads smart-search log rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(
        self,
        user_id: int,
        query: str,
        filters: dict[str, Any],
        results_found: int,
        top_score: float | None,
        top_results: list[dict[str, Any]],
        model_used: str | None = None,
    ) -> None:
        self.db.add(
            AIContextLog(
                user_id=user_id,
                source_type=SMART_SEARCH_SOURCE,
                context_summary=f"Smart search: {query}",
                ai_response={"results": top_results},
                model_used=model_used,
                log_metadata={
                    "query": query,
                    "filters": filters,
                    "results_found": results_found,
                    "top_score": top_score,
                },
            )
        )
        await self.db.commit()

    async def recent_queries(self, user_id: int, limit: int) -> list[str]:
        """The user's most recent distinct search queries, newest first."""
        query_text = AIContextLog.log_metadata["query"].astext
        latest = func.max(AIContextLog.created_at).label("latest")

        result = await self.db.execute(
            select(query_text.label("query"), latest)
            .where(
                AIContextLog.user_id == user_id,
                AIContextLog.source_type == SMART_SEARCH_SOURCE,
                query_text.is_not(None),
            )
            .group_by(query_text)
            .order_by(latest.desc())
            .limit(limit)
        )
        return [row.query for row in result.all()]
