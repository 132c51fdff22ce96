"""
Plain records passed between repositories and services.

Repositories turn ORM rows into these so the ranking and sync logic can be
exercised without a database session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence


@dataclass(frozen=True)
class SearchFilters:
    """Relational filters applied before any vector work."""

    type: str | None = None
    platform: str | None = None
    status: str | None = None
    topics: tuple[str, ...] = ()
    date_from: datetime | None = None
    date_to: datetime | None = None
    performance_category: str | None = None

    def active(self) -> dict[str, Any]:
        """Only the filters that were actually set (used for logs and telemetry)."""
        values: dict[str, Any] = {}
        for name in ("type", "platform", "status", "performance_category"):
            value = getattr(self, name)
            if value:
                values[name] = value
        if self.topics:
            values["topics"] = list(self.topics)
        if self.date_from:
            values["date_from"] = self.date_from.isoformat()
        if self.date_to:
            values["date_to"] = self.date_to.isoformat()
        return values


@dataclass(frozen=True)
class InsightSummary:
    """Latest synced insight for a post (by last_synced_at)."""

    platform: str
    performance_category: str | None
    engagement_rate: float
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    reach: int = 0
    last_synced_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "performance_category": self.performance_category,
            "engagement_rate": self.engagement_rate,
            "likes_count": self.likes_count,
            "comments_count": self.comments_count,
            "shares_count": self.shares_count,
            "reach": self.reach,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }


@dataclass
class SearchCandidate:
    """A post that passed the relational filters, with its embedding."""

    id: int
    user_id: int
    content: str
    embedding: Sequence[float] | None
    title: str | None = None
    type: str | None = None
    platforms: list[str] = field(default_factory=list)
    status: str | None = None
    topics: list[str] = field(default_factory=list)
    published_at: datetime | None = None
    created_at: datetime | None = None
    insight: InsightSummary | None = None

    @property
    def performance_category(self) -> str | None:
        return self.insight.performance_category if self.insight else None


@dataclass(frozen=True)
class PlatformMetrics:
    """Raw counters reported by a platform for one post."""

    likes: int = 0
    comments: int = 0
    shares: int = 0
    saves: int = 0
    reach: int = 0
    impressions: int = 0


@dataclass(frozen=True)
class BackfillCandidate:
    """A post queued for embedding, read out of the session before any write."""

    id: int
    title: str | None
    text: str

    @classmethod
    def from_post(cls, post) -> "BackfillCandidate":
        return cls(id=post.id, title=post.title, text=post.embeddable_text())

    @property
    def label(self) -> str:
        return self.title or f"Post {self.id}"


@dataclass(frozen=True)
class SyncCandidate:
    """A published post due for an insight sync on one platform."""

    id: int
    content: str
    published_at: datetime | None
    external_post_id: str | None

    @classmethod
    def from_post(cls, post, platform: str) -> "SyncCandidate":
        external_post_id = post.external_id_for(platform)
        return cls(
            id=post.id,
            content=post.content or "",
            published_at=post.published_at,
            external_post_id=str(external_post_id) if external_post_id else None,
        )


@dataclass(frozen=True)
class ConnectedAccount:
    """Credentials of a connected social account."""

    platform: str
    access_token: str | None
    external_account_id: str | None = None

    @classmethod
    def from_account(cls, account) -> "ConnectedAccount":
        return cls(
            platform=account.platform,
            access_token=account.access_token,
            external_account_id=account.external_account_id,
        )
