"""Priority scoring for a user's active performance patterns."""

import logging
import math

from app.models.insight import PerformancePattern
from app.repositories.insights import InsightRepository

logger = logging.getLogger(__name__)


def pattern_priority(pattern: PerformancePattern) -> float:
    """avg_engagement_lift * confidence_level * log10(sample_size + 1), rounded to 4 places."""
    lift = pattern.avg_engagement_lift or 0.0
    confidence = pattern.confidence_level or 0.0
    sample_size = max(pattern.sample_size or 0, 0)
    return round(lift * confidence * math.log10(sample_size + 1), 4)


async def recalculate_pattern_priorities(insights: InsightRepository, user_id: int) -> int:
    """Rescore every active pattern of the user and commit. Returns the number updated."""
    patterns = await insights.list_active_patterns(user_id)
    for pattern in patterns:
        await insights.set_pattern_priority(user_id, pattern.id, pattern_priority(pattern))
    await insights.commit()

    logger.info(f"Recalculated priority for {len(patterns)} patterns of user {user_id}")
    return len(patterns)
