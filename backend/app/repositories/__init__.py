"""Repositories: all SQL used by the search, embedding and insight services."""

from app.repositories.insights import InsightRepository
from app.repositories.posts import PostRepository
from app.repositories.records import InsightSummary, PlatformMetrics, SearchCandidate, SearchFilters
from app.repositories.search_logs import SearchLogRepository

__all__ = [
    "InsightRepository",
    "PostRepository",
    "SearchLogRepository",
    "InsightSummary",
    "PlatformMetrics",
    "SearchCandidate",
    "SearchFilters",
]
