"""Hybrid semantic search: relational filtering, vector ranking and enrichment."""

from app.services.search.ranker import RankedResult, SimilarityRanker, cosine_similarity
from app.services.search.service import HybridSearchService
from app.services.search.telemetry import SearchEvent, SearchTelemetryRecorder

__all__ = [
    "HybridSearchService",
    "RankedResult",
    "SearchEvent",
    "SearchTelemetryRecorder",
    "SimilarityRanker",
    "cosine_similarity",
]
