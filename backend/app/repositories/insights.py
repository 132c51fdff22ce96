"""
Insight repository.

Data access for ai_insights, platform_sync_status, social_accounts and
performance_patterns. Both writes used by the sync are single-statement
upserts (INSERT ... ON CONFLICT DO UPDATE) keyed on the tables' unique
constraints, so concurrent syncs converge without application locks.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import utc_now
from app.models.insight import AIInsight, ApiStatus, PerformancePattern, PlatformSyncStatus
from app.models.post import Post
from app.models.social_account import AccountStatus, SocialAccount
from app.repositories.records import ConnectedAccount


class InsightRepository:
    """Async data access for the insight sync."""

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
    # Sync status
    # ========================================

    async def get_sync_status(self, user_id: int, platform: str) -> PlatformSyncStatus | None:
        result = await self.db.execute(
            select(PlatformSyncStatus).where(
                PlatformSyncStatus.user_id == user_id,
                PlatformSyncStatus.platform == platform,
            )
        )
        return result.scalar_one_or_none()

    async def create_sync_status(self, user_id: int, platform: str, now: datetime) -> PlatformSyncStatus:
        """
        Lazily create the status row for a first sync (enabled, eligible now).

        A concurrent creator wins silently; the row is re-read either way.
        """
        await self.db.execute(
            pg_insert(PlatformSyncStatus)
            .values(
                user_id=user_id,
                platform=platform,
                sync_enabled=True,
                next_sync_at=now,
                api_status=ApiStatus.ACTIVE.value,
                failed_syncs=0,
            )
            .on_conflict_do_nothing(constraint="uq_platform_sync_status_user_platform")
        )
        await self.db.commit()
        return await self.get_sync_status(user_id, platform)

    async def record_sync_outcome(
        self,
        user_id: int,
        platform: str,
        attempted_at: datetime,
        next_sync_at: datetime,
        succeeded: bool,
        error_message: str | None = None,
        any_synced: bool = False,
    ) -> None:
        """
        Write the result of a sync attempt in one atomic upsert.

        On failure failed_syncs is incremented by the database
        (failed_syncs = platform_sync_status.failed_syncs + 1); on success it
        resets to 0.
        """
        values: dict[str, Any] = {
            "user_id": user_id,
            "platform": platform,
            "sync_enabled": True,
            "last_sync_at": attempted_at,
            "next_sync_at": next_sync_at,
            "api_status": ApiStatus.ACTIVE.value if succeeded else ApiStatus.ERROR.value,
            "api_error_message": None if succeeded else error_message,
            "failed_syncs": 0 if succeeded else 1,
        }
        if succeeded or any_synced:
            values["last_successful_sync"] = attempted_at

        stmt = pg_insert(PlatformSyncStatus).values(**values)

        set_: dict[str, Any] = {
            "last_sync_at": stmt.excluded.last_sync_at,
            "next_sync_at": stmt.excluded.next_sync_at,
            "api_status": stmt.excluded.api_status,
            "api_error_message": stmt.excluded.api_error_message,
            "updated_at": utc_now(),
        }
        if succeeded:
            set_["failed_syncs"] = 0
        else:
            set_["failed_syncs"] = PlatformSyncStatus.failed_syncs + 1
        if "last_successful_sync" in values:
            set_["last_successful_sync"] = stmt.excluded.last_successful_sync

        await self.db.execute(
            stmt.on_conflict_do_update(
                constraint="uq_platform_sync_status_user_platform",
                set_=set_,
            )
        )
        await self.db.commit()

    async def list_sync_statuses(self, user_id: int, platform: str | None = None) -> list[PlatformSyncStatus]:
        stmt = select(PlatformSyncStatus).where(PlatformSyncStatus.user_id == user_id)
        if platform:
            stmt = stmt.where(PlatformSyncStatus.platform == platform)
        result = await self.db.execute(stmt.order_by(PlatformSyncStatus.platform))
        return list(result.scalars().all())

    async def list_due_statuses(self, now: datetime) -> list[PlatformSyncStatus]:
        """Enabled status rows whose cooldown has elapsed (all users)."""
        result = await self.db.execute(
            select(PlatformSyncStatus)
            .where(
                PlatformSyncStatus.sync_enabled.is_(True),
                PlatformSyncStatus.next_sync_at <= now,
            )
            .order_by(PlatformSyncStatus.next_sync_at)
        )
        return list(result.scalars().all())

    # ========================================
    # Accounts
    # ========================================

    async def get_connected_account(self, user_id: int, platform: str) -> ConnectedAccount | None:
        result = await self.db.execute(
            select(SocialAccount).where(
                SocialAccount.user_id == user_id,
                SocialAccount.platform == platform,
                SocialAccount.status == AccountStatus.CONNECTED.value,
            )
        )
        account = result.scalar_one_or_none()
        return ConnectedAccount.from_account(account) if account is not None else None

    # ========================================
    # Insights
    # ========================================

    async def upsert_insight(self, values: dict[str, Any]) -> None:
        """
        Insert or overwrite the insight for (user_id, post_id, platform).

        values must contain every non-key column; they replace the stored ones.
        """
        stmt = pg_insert(AIInsight).values(**values)
        set_ = {
            key: getattr(stmt.excluded, key)
            for key in values
            if key not in ("user_id", "post_id", "platform")
        }
        set_["updated_at"] = utc_now()

        await self.db.execute(
            stmt.on_conflict_do_update(
                constraint="uq_ai_insights_user_post_platform",
                set_=set_,
            )
        )

    async def list_recent_insights(
        self,
        user_id: int,
        platform: str | None = None,
        limit: int = 50,
    ) -> list[tuple[AIInsight, Post]]:
        """Most recently synced insights with their posts."""
        stmt = (
            select(AIInsight, Post)
            .join(Post, AIInsight.post_id == Post.id)
            .where(AIInsight.user_id == user_id, Post.user_id == user_id)
        )
        if platform:
            stmt = stmt.where(AIInsight.platform == platform)
        stmt = stmt.order_by(AIInsight.last_synced_at.desc(), AIInsight.id.desc()).limit(limit)

        result = await self.db.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def performance_categories(self, user_id: int) -> list[str]:
        result = await self.db.execute(
            select(AIInsight.performance_category)
            .where(AIInsight.user_id == user_id)
            .distinct()
        )
        return sorted(result.scalars().all())

    # ========================================
    # Patterns
    # ========================================

    async def list_active_patterns(self, user_id: int, limit: int | None = None) -> list[PerformancePattern]:
        stmt = (
            select(PerformancePattern)
            .where(PerformancePattern.user_id == user_id, PerformancePattern.is_active.is_(True))
            .order_by(PerformancePattern.priority_score.desc(), PerformancePattern.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def set_pattern_priority(self, user_id: int, pattern_id: int, priority_score: float) -> None:
        await self.db.execute(
            update(PerformancePattern)
            .where(PerformancePattern.id == pattern_id, PerformancePattern.user_id == user_id)
            .values(priority_score=priority_score, updated_at=utc_now())
        )
