"""
Insight Models

Tables written by the insight sync:

- ai_insights: one row per (user, post, platform) holding the latest synced
  metrics, derived engagement rate, performance category and content/timing
  features. Re-syncing overwrites the row (upsert on the unique key).
- platform_sync_status: one row per (user, platform) controlling the
  cooldown and recording API health.
- performance_patterns: learned content patterns whose priority_score is
  recalculated after each successful sync.

JSONB layouts:
--------------
content_features:
    {"content_length": 120, "word_count": 22, "emoji_count": 2, "hashtag_count": 3,
     "mention_count": 1, "has_cta": true, "has_question": false,
     "emojis": ["🔥"], "hashtags": ["#launch"], "mentions": ["@brand"]}
post_timing:
    {"day_of_week": 2, "hour": 18, "day_name": "Tuesday", "time_period": "evening"}
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import BaseModel, String50, String100, String500
from app.models.post import Post


class PerformanceCategory(str, enum.Enum):
    """Engagement bucket of a synced post."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def __str__(self) -> str:
        return self.value


class ApiStatus(str, enum.Enum):
    """Health of the platform API as seen by the last sync."""

    ACTIVE = "active"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class AIInsight(BaseModel):
    """Latest synced metrics and derived features for one post on one platform."""

    __tablename__ = "ai_insights"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    platform: Mapped[str] = mapped_column(String50, nullable=False)

    external_post_id: Mapped[str | None] = mapped_column(String100, nullable=True)
    external_account_id: Mapped[str | None] = mapped_column(String100, nullable=True)

    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shares_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    saves_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reach: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    engagement_rate: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="(likes + 2*comments + 1.5*shares) / reach"
    )

    performance_category: Mapped[str] = mapped_column(
        String50,
        nullable=False,
        default=PerformanceCategory.LOW.value,
        index=True,
    )

    content_features: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    post_timing: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    last_synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Time of the sync attempt that wrote this row"
    )

    sync_status: Mapped[str] = mapped_column(String50, nullable=False, default="synced")

    post: Mapped[Post] = relationship(Post, lazy="raise")

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "post_id",
            "platform",
            name="uq_ai_insights_user_post_platform",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"AIInsight(post_id={self.post_id}, platform='{self.platform}', "
            f"rate={self.engagement_rate}, category={self.performance_category})"
        )


class PlatformSyncStatus(BaseModel):
    """Cooldown and API health for one (user, platform)."""

    __tablename__ = "platform_sync_status"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    platform: Mapped[str] = mapped_column(String50, nullable=False)

    sync_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_successful_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="Earliest time a non-forced sync may run"
    )

    api_status: Mapped[str] = mapped_column(String50, nullable=False, default=ApiStatus.ACTIVE.value)
    api_error_message: Mapped[str | None] = mapped_column(String500, nullable=True)
    failed_syncs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "platform",
            name="uq_platform_sync_status_user_platform",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"PlatformSyncStatus(user_id={self.user_id}, platform='{self.platform}', "
            f"next_sync_at={self.next_sync_at})"
        )


class PerformancePattern(BaseModel):
    """A content pattern (e.g. "evening reels with questions") and its measured lift."""

    __tablename__ = "performance_patterns"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    pattern_type: Mapped[str] = mapped_column(String50, nullable=False)
    pattern_name: Mapped[str] = mapped_column(String100, nullable=False)
    pattern_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    pattern_criteria: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    avg_engagement_lift: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    confidence_level: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    sample_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    priority_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"PerformancePattern(id={self.id}, name='{self.pattern_name}', priority={self.priority_score})"
