"""
Similarity Ranker

Scores filtered candidates against a query vector:

    final_score = cosine_similarity(query, candidate) + performance_boost

performance_boost comes from the candidate's latest insight category
(high +0.10, medium +0.05, otherwise 0). Results are sorted by final score,
ties broken by newer published_at and then by post id so the order is fully
deterministic. Candidates without an embedding, or whose embedding length
differs from the query's, are left out rather than scored.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

import numpy as np

from app.repositories.records import SearchCandidate, SearchFilters

logger = logging.getLogger(__name__)

PERFORMANCE_BOOSTS = {
    "high": 0.10,
    "medium": 0.05,
}

VERY_SIMILAR_THRESHOLD = 0.8
SIMILAR_THRESHOLD = 0.6


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        ValueError: If the vectors have different lengths
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)

    if vec_a.shape != vec_b.shape:
        raise ValueError(f"Embedding dimensions differ: {vec_a.shape[0]} != {vec_b.shape[0]}")

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


def performance_boost(category: str | None) -> float:
    return PERFORMANCE_BOOSTS.get(category or "", 0.0)


def similarity_band(similarity: float) -> str:
    if similarity > VERY_SIMILAR_THRESHOLD:
        return "Very similar content theme"
    if similarity > SIMILAR_THRESHOLD:
        return "Similar content concepts"
    return "Related topic match"


def match_reasons(candidate: SearchCandidate, query: str, filters: SearchFilters) -> list[str]:
    """Human-readable reasons the candidate matched the filters and query keywords."""
    reasons = []

    if filters.type and candidate.type == filters.type:
        reasons.append(f"Matches {filters.type} content type")

    if filters.topics and candidate.topics:
        matching_topics = [topic for topic in candidate.topics if topic in filters.topics]
        if matching_topics:
            reasons.append(f"Contains topics: {', '.join(matching_topics)}")

    if filters.platform and filters.platform in (candidate.platforms or []):
        reasons.append(f"Published on {filters.platform}")

    if filters.performance_category and candidate.performance_category == filters.performance_category:
        reasons.append(f"{filters.performance_category} performing content")

    content = (candidate.content or "").lower()
    title = (candidate.title or "").lower()
    keywords = []
    for word in query.lower().split():
        if word not in keywords and (word in content or word in title):
            keywords.append(word)
    if keywords:
        reasons.append(f"Contains keywords: {', '.join(keywords)}")

    return reasons


@dataclass
class RankedResult:
    """A scored candidate. match_reasons ends with the similarity band."""

    candidate: SearchCandidate
    similarity_score: float
    performance_boost: float
    final_score: float
    match_reasons: list[str] = field(default_factory=list)
    matched_filters: bool = False

    @property
    def id(self) -> int:
        return self.candidate.id


def _sort_key(result: RankedResult) -> tuple:
    published: datetime | None = result.candidate.published_at
    return (
        -result.final_score,
        published is None,
        -published.timestamp() if published is not None else 0.0,
        result.candidate.id,
    )


class SimilarityRanker:
    """Stateless scorer; one instance can serve every request."""

    def rank(
        self,
        query_vector: Sequence[float],
        candidates: Sequence[SearchCandidate],
        limit: int,
        query: str = "",
        filters: SearchFilters | None = None,
    ) -> tuple[list[RankedResult], int]:
        """
        Score, sort and truncate candidates.

        Returns:
            (top results, number of candidates that were actually scored)
        """
        filters = filters or SearchFilters()
        scored: list[RankedResult] = []

        for candidate in candidates:
            if candidate.embedding is None or len(candidate.embedding) == 0:
                continue

            try:
                similarity = cosine_similarity(query_vector, candidate.embedding)
            except ValueError as e:
                logger.warning(f"Skipping post {candidate.id} in ranking: {e}")
                continue

            boost = performance_boost(candidate.performance_category)
            reasons = match_reasons(candidate, query, filters)

            scored.append(
                RankedResult(
                    candidate=candidate,
                    similarity_score=similarity,
                    performance_boost=boost,
                    final_score=similarity + boost,
                    match_reasons=[*reasons, similarity_band(similarity)],
                    matched_filters=bool(reasons),
                )
            )

        scored.sort(key=_sort_key)
        return scored[:max(limit, 0)], len(scored)
