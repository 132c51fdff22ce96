"""
Post feature extraction and performance classification.

Pure functions used by the insight sync; nothing here touches the database
or the network.
"""

import re
from datetime import datetime
from typing import Any

from app.repositories.records import PlatformMetrics

EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "]"
)
HASHTAG_PATTERN = re.compile(r"#\w+")
MENTION_PATTERN = re.compile(r"@\w+")

CTA_KEYWORDS = ("click", "link", "bio", "comment", "share", "tag", "follow", "dm", "message", "swipe", "tap")

MAX_EXTRACTED_ITEMS = 10

HIGH_ENGAGEMENT_THRESHOLD = 0.06
MEDIUM_ENGAGEMENT_THRESHOLD = 0.03

# Weekday names indexed Sunday-first
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def analyze_content_features(content: str | None) -> dict[str, Any]:
    content = content or ""

    emojis = EMOJI_PATTERN.findall(content)
    hashtags = HASHTAG_PATTERN.findall(content)
    mentions = MENTION_PATTERN.findall(content)
    lowered = content.lower()

    return {
        "emoji_count": len(emojis),
        "emojis": emojis[:MAX_EXTRACTED_ITEMS],
        "hashtag_count": len(hashtags),
        "hashtags": hashtags[:MAX_EXTRACTED_ITEMS],
        "mention_count": len(mentions),
        "mentions": mentions[:MAX_EXTRACTED_ITEMS],
        "has_cta": any(keyword in lowered for keyword in CTA_KEYWORDS),
        "has_question": "?" in content,
        "content_length": len(content),
        "word_count": len(content.split()),
    }


def time_period(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def analyze_post_timing(published_at: datetime) -> dict[str, Any]:
    """
    Timing features of a publish timestamp.

    day_of_week counts from 0 = Sunday; Python's weekday() starts at Monday.
    """
    day_of_week = (published_at.weekday() + 1) % 7
    return {
        "posted_at": published_at.isoformat(),
        "day_of_week": day_of_week,
        "hour_of_day": published_at.hour,
        "day_name": DAY_NAMES[day_of_week],
        "time_period": time_period(published_at.hour),
    }


def calculate_engagement_rate(metrics: PlatformMetrics) -> float:
    """
    (likes + 2*comments + 1.5*shares) / reach

    Falls back to impressions when reach is zero and to 0.0 when both are.
    """
    denominator = metrics.reach or metrics.impressions
    if not denominator:
        return 0.0
    weighted = metrics.likes + 2 * metrics.comments + 1.5 * metrics.shares
    return round(weighted / denominator, 6)


def classify_performance(engagement_rate: float) -> str:
    if engagement_rate >= HIGH_ENGAGEMENT_THRESHOLD:
        return "high"
    if engagement_rate >= MEDIUM_ENGAGEMENT_THRESHOLD:
        return "medium"
    return "low"
