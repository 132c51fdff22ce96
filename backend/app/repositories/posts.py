"""
Post repository.

All SQL against the posts table used by search, the embedding backfill and
the insight sync lives here. Methods that read or write user content take the
owning user_id and filter on it; user_id=None is only accepted by the
operator-scope backfill methods.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.insight import AIInsight
from app.models.post import Post, PostStatus
from app.repositories.records import (
    BackfillCandidate,
    InsightSummary,
    PlatformMetrics,
    SearchCandidate,
    SearchFilters,
    SyncCandidate,
)


class PostRepository:
    """Async data access for posts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    def savepoint(self):
        """Nested transaction: an error inside it undoes only its own writes."""
        return self.db.begin_nested()

    # ========================================
    # Search
    # ========================================

    async def fetch_search_candidates(
        self,
        user_id: int,
        filters: SearchFilters,
        pool_size: int,
    ) -> list[SearchCandidate]:
        """
        Owned posts with an embedding that pass every relational filter.

        Ordered by published_at (newest first, unpublished last) and capped at
        pool_size. Each candidate carries its most recently synced insight.
        """
        stmt = select(Post).where(
            Post.user_id == user_id,
            Post.embedding.is_not(None),
        )

        if filters.type:
            stmt = stmt.where(Post.type == filters.type)
        if filters.platform:
            stmt = stmt.where(Post.platforms.contains([filters.platform]))
        if filters.status:
            stmt = stmt.where(Post.status == filters.status)
        if filters.topics:
            stmt = stmt.where(Post.topics.overlap(list(filters.topics)))
        if filters.date_from:
            stmt = stmt.where(Post.published_at >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(Post.published_at <= filters.date_to)
        if filters.performance_category:
            stmt = stmt.where(
                exists().where(
                    AIInsight.post_id == Post.id,
                    AIInsight.user_id == user_id,
                    AIInsight.performance_category == filters.performance_category,
                )
            )

        stmt = stmt.order_by(
            Post.published_at.desc().nulls_last(),
            Post.id.desc(),
        ).limit(pool_size)

        result = await self.db.execute(stmt)
        posts = result.scalars().all()

        insights = await self._latest_insights(user_id, [post.id for post in posts])

        return [
            SearchCandidate(
                id=post.id,
                user_id=post.user_id,
                title=post.title,
                content=post.content or "",
                type=post.type.value if post.type else None,
                platforms=list(post.platforms or []),
                status=post.status.value if post.status else None,
                topics=list(post.topics or []),
                published_at=post.published_at,
                created_at=post.created_at,
                embedding=post.embedding,
                insight=insights.get(post.id),
            )
            for post in posts
        ]

    async def _latest_insights(self, user_id: int, post_ids: Sequence[int]) -> dict[int, InsightSummary]:
        if not post_ids:
            return {}

        result = await self.db.execute(
            select(AIInsight)
            .where(AIInsight.user_id == user_id, AIInsight.post_id.in_(post_ids))
            .order_by(AIInsight.post_id, AIInsight.last_synced_at.desc())
        )

        latest: dict[int, InsightSummary] = {}
        for insight in result.scalars().all():
            if insight.post_id in latest:
                continue
            latest[insight.post_id] = InsightSummary(
                platform=insight.platform,
                performance_category=insight.performance_category,
                engagement_rate=insight.engagement_rate,
                likes_count=insight.likes_count,
                comments_count=insight.comments_count,
                shares_count=insight.shares_count,
                reach=insight.reach,
                last_synced_at=insight.last_synced_at,
            )
        return latest

    async def top_topics(self, user_id: int, limit: int) -> list[str]:
        """The user's most used topic tags, most frequent first."""
        topics = (
            select(func.unnest(Post.topics).label("topic"))
            .where(Post.user_id == user_id)
            .subquery()
        )
        usage = func.count().label("usage")
        result = await self.db.execute(
            select(topics.c.topic, usage)
            .group_by(topics.c.topic)
            .order_by(usage.desc(), topics.c.topic)
            .limit(limit)
        )
        return [row.topic for row in result.all()]

    async def distinct_types(self, user_id: int) -> list[str]:
        result = await self.db.execute(
            select(Post.type)
            .where(Post.user_id == user_id, Post.type.is_not(None))
            .distinct()
        )
        return sorted(post_type.value for post_type in result.scalars().all())

    async def distinct_platforms(self, user_id: int) -> list[str]:
        platforms = (
            select(func.unnest(Post.platforms).label("platform"))
            .where(Post.user_id == user_id)
            .subquery()
        )
        result = await self.db.execute(
            select(platforms.c.platform).distinct().order_by(platforms.c.platform)
        )
        return list(result.scalars().all())

    # ========================================
    # Embedding backfill
    # ========================================

    async def fetch_backfill_candidates(
        self,
        user_id: int | None,
        force_regenerate: bool = False,
    ) -> list[BackfillCandidate]:
        """
        Posts to embed, newest created first.

        Without force_regenerate only posts lacking an embedding are returned.
        user_id=None selects across all users (operator scope).
        """
        stmt = select(Post)
        if user_id is not None:
            stmt = stmt.where(Post.user_id == user_id)
        if not force_regenerate:
            stmt = stmt.where(Post.embedding.is_(None))
        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc())

        result = await self.db.execute(stmt)
        return [BackfillCandidate.from_post(post) for post in result.scalars().all()]

    async def save_embedding(self, post_id: int, vector: Sequence[float]) -> None:
        """Set one post's embedding (no commit)."""
        await self.db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(embedding=list(vector))
        )

    async def get_owned(self, user_id: int, post_id: int) -> Post | None:
        result = await self.db.execute(
            select(Post).where(Post.id == post_id, Post.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def embedding_counts(self, user_id: int | None) -> tuple[int, int]:
        """(total posts, posts with an embedding)"""
        stmt = select(func.count(Post.id), func.count(Post.embedding))
        if user_id is not None:
            stmt = stmt.where(Post.user_id == user_id)
        result = await self.db.execute(stmt)
        total, with_embeddings = result.one()
        return int(total or 0), int(with_embeddings or 0)

    async def posts_without_embeddings(self, user_id: int | None, limit: int) -> list[Post]:
        stmt = select(Post).where(Post.embedding.is_(None))
        if user_id is not None:
            stmt = stmt.where(Post.user_id == user_id)
        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def clear_embeddings(self, user_id: int | None) -> int:
        """Null every embedding in scope and commit. Returns rows cleared."""
        stmt = update(Post).where(Post.embedding.is_not(None))
        if user_id is not None:
            stmt = stmt.where(Post.user_id == user_id)
        result = await self.db.execute(stmt.values(embedding=None))
        await self.db.commit()
        return int(result.rowcount or 0)

    # ========================================
    # Insight sync
    # ========================================

    async def fetch_sync_candidates(
        self,
        user_id: int,
        platform: str,
        published_since: datetime,
        stale_before: datetime,
    ) -> list[SyncCandidate]:
        """
        Published posts on the platform, published on or after published_since,
        whose insight for the platform is missing or older than stale_before.
        """
        fresh_insight = exists().where(
            AIInsight.post_id == Post.id,
            AIInsight.user_id == user_id,
            AIInsight.platform == platform,
            AIInsight.last_synced_at >= stale_before,
        )

        result = await self.db.execute(
            select(Post)
            .where(
                Post.user_id == user_id,
                Post.status == PostStatus.PUBLISHED,
                Post.platforms.contains([platform]),
                Post.published_at >= published_since,
                ~fresh_insight,
            )
            .order_by(Post.published_at.desc(), Post.id.desc())
        )
        return [SyncCandidate.from_post(post, platform) for post in result.scalars().all()]

    async def update_counters(self, user_id: int, post_id: int, metrics: PlatformMetrics) -> None:
        """Overwrite the post's raw counters with freshly synced values (no commit)."""
        await self.db.execute(
            update(Post)
            .where(Post.id == post_id, Post.user_id == user_id)
            .values(
                likes=metrics.likes,
                comments=metrics.comments,
                shares=metrics.shares,
                reach=metrics.reach,
                impressions=metrics.impressions,
            )
        )
