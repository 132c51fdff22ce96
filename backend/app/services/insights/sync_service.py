"""
Insight Sync

Pulls per-post metrics for one user and platform, derives features and a
performance category, and stores them as ai_insights rows.

Sync flow:
----------
1. Cooldown: no status row -> create it and proceed. Disabled, or now is
   before next_sync_at, and not forced -> return a cooldown summary without
   any API call.
2. Require a connected social account for the platform.
3. Candidates: published posts tagged with the platform from the last
   INSIGHT_SYNC_LOOKBACK_DAYS whose insight is missing or older than the
   cooldown window.
4. Per post, sequentially: fetch metrics, compute engagement rate and
   category, upsert the insight, copy raw counters onto the post. A failure
   rolls back that post's savepoint and is recorded for that post only.
5. Record the outcome in platform_sync_status (one atomic upsert).
6. If anything synced, recalculate pattern priorities (best effort).
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from app.core.config import settings
from app.core.exceptions import NotConnectedError, ValidationError
from app.repositories.insights import InsightRepository
from app.repositories.posts import PostRepository
from app.repositories.records import ConnectedAccount, SyncCandidate
from app.services.insights.features import (
    analyze_content_features,
    analyze_post_timing,
    calculate_engagement_rate,
    classify_performance,
)
from app.services.insights.metrics_client import PlatformMetricsClient
from app.services.insights.patterns import recalculate_pattern_priorities

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("instagram", "facebook")

SYNC_STATUS_SUCCEEDED = "succeeded"
SYNC_STATUS_PARTIALLY_FAILED = "partially_failed"
SYNC_STATUS_FAILED = "failed"
SYNC_STATUS_NO_POSTS = "no_posts"
SYNC_STATUS_COOLDOWN = "cooldown"

MAX_REPORTED_RESULTS = 10
RECENT_INSIGHTS_LIMIT = 50
ACTIVE_PATTERNS_LIMIT = 20


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class PostSyncResult:
    post_id: int
    status: str
    engagement_rate: float | None = None
    performance_category: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"post_id": self.post_id, "status": self.status}
        if self.status == "success":
            data["engagement_rate"] = self.engagement_rate
            data["performance_category"] = self.performance_category
        else:
            data["error"] = self.error
        return data


@dataclass
class SyncSummary:
    """Outcome of one sync call."""

    platform: str
    total_posts: int = 0
    synced_count: int = 0
    failed_count: int = 0
    sync_results: list[PostSyncResult] = field(default_factory=list)
    status: str = SYNC_STATUS_NO_POSTS
    next_sync_at: datetime | None = None
    cooldown_active: bool = False
    cooldown_remaining_seconds: int = 0
    patterns_analyzed: bool = False
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "total_posts": self.total_posts,
            "synced_count": self.synced_count,
            "failed_count": self.failed_count,
            "sync_results": [result.to_dict() for result in self.sync_results[:MAX_REPORTED_RESULTS]],
            "status": self.status,
            "next_sync_at": self.next_sync_at,
            "cooldown_active": self.cooldown_active,
            "cooldown_remaining_seconds": self.cooldown_remaining_seconds,
            "patterns_analyzed": self.patterns_analyzed,
            "message": self.message,
        }


class InsightSyncService:
    """
    Per-user, per-platform insight sync.

    Usage:
    ------
    async with PlatformMetricsClient() as client:
        service = InsightSyncService(PostRepository(db), InsightRepository(db), client)
        summary = await service.sync_insights(user.id, "instagram")
    """

    def __init__(
        self,
        posts: PostRepository,
        insights: InsightRepository,
        metrics_client: PlatformMetricsClient,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.posts = posts
        self.insights = insights
        self.metrics_client = metrics_client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def cooldown(self) -> timedelta:
        return timedelta(hours=settings.INSIGHT_SYNC_COOLDOWN_HOURS)

    async def sync_insights(self, user_id: int, platform: str, force_sync: bool = False) -> SyncSummary:
        """
        Sync metrics for the user's recent posts on one platform.

        Raises:
            ValidationError: Unsupported platform
            NotConnectedError: No connected account for the platform
        """
        platform = (platform or "").strip().lower()
        if platform not in SUPPORTED_PLATFORMS:
            raise ValidationError(
                f"Unsupported platform '{platform}'. Supported: {', '.join(SUPPORTED_PLATFORMS)}"
            )

        now = self._clock()

        status = await self.insights.get_sync_status(user_id, platform)
        if status is None:
            logger.info(f"First {platform} sync for user {user_id}")
            await self.insights.create_sync_status(user_id, platform, now)
        elif not force_sync:
            next_sync_at = _aware(status.next_sync_at)
            if not status.sync_enabled or (next_sync_at is not None and now < next_sync_at):
                return self._cooldown_summary(platform, status.sync_enabled, next_sync_at, now)

        account = await self.insights.get_connected_account(user_id, platform)
        if account is None:
            raise NotConnectedError(f"No connected {platform} account found", platform=platform)

        candidates = await self.posts.fetch_sync_candidates(
            user_id,
            platform,
            published_since=now - timedelta(days=settings.INSIGHT_SYNC_LOOKBACK_DAYS),
            stale_before=now - self.cooldown,
        )
        logger.info(f"Syncing {len(candidates)} {platform} posts for user {user_id}")

        summary = SyncSummary(platform=platform, total_posts=len(candidates))
        for candidate in candidates:
            result = await self._sync_post(user_id, platform, account, candidate, now)
            summary.sync_results.append(result)
            if result.status == "success":
                summary.synced_count += 1
            else:
                summary.failed_count += 1

        succeeded = summary.failed_count == 0
        summary.next_sync_at = now + self.cooldown
        summary.status = self._overall_status(summary)

        await self.insights.record_sync_outcome(
            user_id,
            platform,
            attempted_at=now,
            next_sync_at=summary.next_sync_at,
            succeeded=succeeded,
            error_message=None if succeeded else f"{summary.failed_count} posts failed",
            any_synced=summary.synced_count > 0,
        )

        if summary.synced_count > 0:
            try:
                await recalculate_pattern_priorities(self.insights, user_id)
                summary.patterns_analyzed = True
            except Exception as e:
                logger.error(f"Pattern priority update failed for user {user_id}: {e}")
                await self.insights.rollback()

        logger.info(
            f"{platform} sync for user {user_id} {summary.status}: "
            f"{summary.synced_count}/{summary.total_posts} synced, {summary.failed_count} failed"
        )
        return summary

    async def _sync_post(
        self,
        user_id: int,
        platform: str,
        account: ConnectedAccount,
        post: SyncCandidate,
        synced_at: datetime,
    ) -> PostSyncResult:
        external_post_id = post.external_post_id
        if not external_post_id:
            return PostSyncResult(post.id, "failed", error="missing external post id")

        try:
            metrics = await self.metrics_client.fetch_metrics(account, external_post_id)
        except Exception as e:
            logger.warning(f"Metrics fetch failed for post {post.id} on {platform}: {e}")
            return PostSyncResult(post.id, "failed", error=str(e) or "Metrics fetch failed")

        engagement_rate = calculate_engagement_rate(metrics)
        category = classify_performance(engagement_rate)

        try:
            async with self.insights.savepoint():
                await self.insights.upsert_insight({
                    "user_id": user_id,
                    "post_id": post.id,
                    "platform": platform,
                    "external_post_id": external_post_id,
                    "external_account_id": account.external_account_id,
                    "likes_count": metrics.likes,
                    "comments_count": metrics.comments,
                    "shares_count": metrics.shares,
                    "saves_count": metrics.saves,
                    "reach": metrics.reach,
                    "impressions": metrics.impressions,
                    "engagement_rate": engagement_rate,
                    "performance_category": category,
                    "content_features": analyze_content_features(post.content),
                    "post_timing": analyze_post_timing(post.published_at) if post.published_at else None,
                    "last_synced_at": synced_at,
                    "sync_status": "synced",
                })
                await self.posts.update_counters(user_id, post.id, metrics)
            await self.insights.commit()
        except Exception as e:
            logger.error(f"Failed to store insights for post {post.id}: {e}")
            return PostSyncResult(post.id, "failed", error=f"Failed to store insights: {e}")

        return PostSyncResult(
            post.id,
            "success",
            engagement_rate=engagement_rate,
            performance_category=category,
        )

    def _cooldown_summary(
        self,
        platform: str,
        sync_enabled: bool,
        next_sync_at: datetime | None,
        now: datetime,
    ) -> SyncSummary:
        remaining = 0
        if next_sync_at is not None and next_sync_at > now:
            remaining = int((next_sync_at - now).total_seconds())

        if sync_enabled:
            message = f"Sync not needed. Next sync: {next_sync_at.isoformat() if next_sync_at else 'now'}"
        else:
            message = f"Sync is disabled for {platform}"

        return SyncSummary(
            platform=platform,
            status=SYNC_STATUS_COOLDOWN,
            next_sync_at=next_sync_at,
            cooldown_active=True,
            cooldown_remaining_seconds=remaining,
            message=message,
        )

    @staticmethod
    def _overall_status(summary: SyncSummary) -> str:
        if summary.total_posts == 0:
            return SYNC_STATUS_NO_POSTS
        if summary.failed_count == 0:
            return SYNC_STATUS_SUCCEEDED
        if summary.synced_count == 0:
            return SYNC_STATUS_FAILED
        return SYNC_STATUS_PARTIALLY_FAILED

    async def get_sync_overview(self, user_id: int, platform: Optional[str] = None) -> dict[str, Any]:
        """Status rows, the most recent insights (with their posts) and the top active patterns."""
        platform = platform.strip().lower() if platform else None

        statuses = await self.insights.list_sync_statuses(user_id, platform)
        recent = await self.insights.list_recent_insights(user_id, platform, limit=RECENT_INSIGHTS_LIMIT)
        patterns = await self.insights.list_active_patterns(user_id, limit=ACTIVE_PATTERNS_LIMIT)

        return {
            "sync_status": [
                {
                    "platform": status.platform,
                    "sync_enabled": status.sync_enabled,
                    "last_sync_at": status.last_sync_at,
                    "last_successful_sync": status.last_successful_sync,
                    "next_sync_at": status.next_sync_at,
                    "api_status": status.api_status,
                    "api_error_message": status.api_error_message,
                    "failed_syncs": status.failed_syncs,
                }
                for status in statuses
            ],
            "recent_insights": [
                {
                    "id": insight.id,
                    "post_id": insight.post_id,
                    "platform": insight.platform,
                    "likes_count": insight.likes_count,
                    "comments_count": insight.comments_count,
                    "shares_count": insight.shares_count,
                    "saves_count": insight.saves_count,
                    "reach": insight.reach,
                    "impressions": insight.impressions,
                    "engagement_rate": insight.engagement_rate,
                    "performance_category": insight.performance_category,
                    "content_features": insight.content_features,
                    "post_timing": insight.post_timing,
                    "last_synced_at": insight.last_synced_at,
                    "post": {
                        "title": post.title,
                        "content": post.content,
                        "created_at": post.created_at,
                    },
                }
                for insight, post in recent
            ],
            "active_patterns": [
                {
                    "id": pattern.id,
                    "pattern_type": pattern.pattern_type,
                    "pattern_name": pattern.pattern_name,
                    "avg_engagement_lift": pattern.avg_engagement_lift,
                    "confidence_level": pattern.confidence_level,
                    "priority_score": pattern.priority_score,
                    "is_active": pattern.is_active,
                }
                for pattern in patterns
            ],
        }
