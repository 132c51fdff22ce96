"""
Post Model

A post is a user's piece of content (draft, scheduled or published) that can
be searched semantically and whose platform metrics are synced back.

Database Tables:
----------------
- posts: content, relational filter columns, the embedding vector and the
  latest raw engagement counters propagated from the insight sync.

Platform-Specific Data in post_metadata (JSONB):
------------------------------------------------
    {
        "external_ids": {"instagram": "17895695668004550", "facebook": "1234_5678"},
        "external_id": "17895695668004550"   # single-platform fallback
    }
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.config import settings
from app.db.base import BaseModel, String50, String255

if TYPE_CHECKING:
    from app.models.user import User


class PostStatus(str, enum.Enum):
    """Lifecycle status of a post. Only PUBLISHED posts have platform metrics."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"

    def __str__(self) -> str:
        return self.value


class PostType(str, enum.Enum):
    """Content format. Drives the format-specific usage suggestions in search."""

    POST = "post"
    REEL = "reel"
    VIDEO = "video"
    CAROUSEL = "carousel"
    STORY = "story"

    def __str__(self) -> str:
        return self.value


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Post(BaseModel):
    """
    A user-owned content item.

    embedding is NULL until the backfill (or an explicit regenerate) writes a
    vector of EMBEDDING_DIMENSION floats derived from title + content.
    """

    __tablename__ = "posts"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner of the post"
    )

    title: Mapped[str | None] = mapped_column(
        String255,
        nullable=True,
        comment="Optional headline"
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Post body / caption"
    )

    type: Mapped[PostType | None] = mapped_column(
        Enum(PostType, native_enum=False, length=20, values_callable=_enum_values),
        nullable=True,
        comment="Content format (post, reel, video, carousel, story)"
    )

    platforms: Mapped[list[str]] = mapped_column(
        ARRAY(String50),
        nullable=False,
        default=list,
        comment="Platforms the post targets (instagram, facebook, ...)"
    )

    status: Mapped[PostStatus] = mapped_column(
        Enum(PostStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=PostStatus.DRAFT,
        index=True,
        comment="draft, scheduled or published"
    )

    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="When the post went live (UTC)"
    )

    topics: Mapped[list[str]] = mapped_column(
        ARRAY(String50),
        nullable=False,
        default=list,
        comment="Topic tags"
    )

    post_metadata: Mapped[dict | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Platform-specific metadata, including external post ids"
    )

    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(settings.EMBEDDING_DIMENSION),
        nullable=True,
        comment="Semantic embedding of title + content"
    )

    # Raw counters, overwritten by each insight sync
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reach: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped["User"] = relationship(
        "User",
        back_populates="posts",
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_posts_platforms", "platforms", postgresql_using="gin"),
        Index("ix_posts_topics", "topics", postgresql_using="gin"),
        Index(
            "ix_posts_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": 16, "ef_construction": 64},
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    def __repr__(self) -> str:
        return f"Post(id={self.id}, user_id={self.user_id}, status={self.status})"

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None and len(self.embedding) > 0

    def external_id_for(self, platform: str) -> str | None:
        """Platform post id recorded at publish time, if any."""
        metadata = self.post_metadata or {}
        external_ids = metadata.get("external_ids") or {}
        return external_ids.get(platform) or metadata.get("external_id")

    def embeddable_text(self) -> str:
        """Text the embedding is computed from: "<title>. <content>", trimmed."""
        text = f"{self.title}. " if self.title else ""
        text += self.content or ""
        return text.strip()
