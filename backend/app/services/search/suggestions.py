"""
Result enrichment for smart search: reuse suggestions and a one-line
explanation of why a post was returned.
"""

from datetime import datetime, timezone

from app.services.search.ranker import RankedResult, similarity_band

MAX_USAGE_SUGGESTIONS = 5

GENERIC_SUGGESTIONS = (
    "Reuse exactly as-is",
    "Remix with your style",
    "Adapt for different platform",
)

FORMAT_SUGGESTIONS = {
    "reel": ("Convert to carousel post", "Extract key quotes"),
    "video": ("Convert to carousel post", "Extract key quotes"),
    "carousel": ("Turn into video script", "Create single image post"),
}

HIGH_PERFORMER_SUGGESTIONS = (
    "High performer - reuse strategy",
    "Analyze what made this work",
)

# Offered by GET /search/suggestions when the user has no topic history
DEFAULT_SEARCH_SUGGESTIONS = [
    "high performing content",
    "viral posts",
    "engagement strategies",
    "trending topics",
    "best practices",
]


def usage_suggestions(result: RankedResult, limit: int = MAX_USAGE_SUGGESTIONS) -> list[str]:
    """Generic reuse ideas, then format-specific ones, then high-performer ones; capped."""
    suggestions = list(GENERIC_SUGGESTIONS)
    suggestions.extend(FORMAT_SUGGESTIONS.get(result.candidate.type or "", ()))
    if result.candidate.performance_category == "high":
        suggestions.extend(HIGH_PERFORMER_SUGGESTIONS)
    return suggestions[:limit]


def time_ago(published_at: datetime, now: datetime | None = None) -> str:
    """'today', 'yesterday', 'N days ago', 'N weeks ago', 'N months ago' or 'N years ago'."""
    now = now or datetime.now(timezone.utc)
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)

    days = (now - published_at).days
    if days <= 0:
        return "today"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        weeks = days // 7
        return f"{weeks} week{'s' if weeks > 1 else ''} ago"
    if days < 365:
        months = days // 30
        return f"{months} month{'s' if months > 1 else ''} ago"
    years = days // 365
    return f"{years} year{'s' if years > 1 else ''} ago"


def explain_relevance(result: RankedResult, now: datetime | None = None) -> str:
    """Comma-joined explanation, e.g. 'Similar content concepts, previously performed well, published 2 weeks ago'."""
    parts = [similarity_band(result.similarity_score)]

    if result.performance_boost > 0:
        parts.append("previously performed well")

    if result.matched_filters:
        parts.append("matches your filters")

    if result.candidate.published_at is not None:
        parts.append(f"published {time_ago(result.candidate.published_at, now)}")

    return ", ".join(parts)
