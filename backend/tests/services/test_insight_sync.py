"""
Tests for InsightSyncService.

This test module verifies:
1. Cooldown handling and forced syncs
2. Account requirements and platform validation
3. Per-post failure isolation
4. Sync status bookkeeping and pattern rescoring
5. The sync overview
"""

from datetime import timedelta

import pytest

from app.core.exceptions import MetricsFetchError, NotConnectedError, ValidationError
from app.models.insight import PerformancePattern, PlatformSyncStatus
from app.repositories.records import PlatformMetrics
from app.services.insights.sync_service import InsightSyncService

from conftest import NOW, FakeMetricsClient, make_account, make_post

HIGH = PlatformMetrics(likes=80, comments=10, shares=0, reach=1000)      # 0.1
MEDIUM = PlatformMetrics(likes=40, comments=0, shares=0, reach=1000)     # 0.04
LOW = PlatformMetrics(likes=5, comments=0, shares=0, reach=1000)         # 0.005


@pytest.fixture
def metrics_client():
    return FakeMetricsClient()


@pytest.fixture
def service(post_repo, insight_repo, metrics_client):
    insight_repo.accounts[(1, "instagram")] = make_account()
    return InsightSyncService(post_repo, insight_repo, metrics_client, clock=lambda: NOW)


def existing_status(insight_repo, next_sync_at, sync_enabled=True, failed_syncs=0):
    status = PlatformSyncStatus(
        user_id=1,
        platform="instagram",
        sync_enabled=sync_enabled,
        next_sync_at=next_sync_at,
        api_status="active",
        failed_syncs=failed_syncs,
    )
    insight_repo.statuses[(1, "instagram")] = status
    return status


@pytest.mark.asyncio
class TestCooldown:
    """Test the six-hour cooldown."""

    async def test_within_cooldown_nothing_is_fetched(self, service, insight_repo, post_repo, metrics_client):
        existing_status(insight_repo, NOW + timedelta(hours=2))
        post_repo.sync_candidates = [make_post(1, external_id="m1")]

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "cooldown"
        assert summary.cooldown_active is True
        assert summary.cooldown_remaining_seconds == 7200
        assert summary.next_sync_at == NOW + timedelta(hours=2)
        assert summary.message.startswith("Sync not needed. Next sync:")
        assert metrics_client.calls == []
        assert post_repo.sync_calls == []
        assert insight_repo.outcomes == []

    async def test_naive_next_sync_is_treated_as_utc(self, service, insight_repo, metrics_client):
        existing_status(insight_repo, (NOW + timedelta(hours=1)).replace(tzinfo=None))

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "cooldown"
        assert metrics_client.calls == []

    async def test_force_sync_bypasses_cooldown(self, service, insight_repo, post_repo, metrics_client):
        existing_status(insight_repo, NOW + timedelta(hours=2))
        post_repo.sync_candidates = [make_post(1, external_id="m1")]
        metrics_client.responses["m1"] = HIGH

        summary = await service.sync_insights(1, "instagram", force_sync=True)

        assert summary.status == "succeeded"
        assert metrics_client.calls == [("instagram", "m1")]

    async def test_disabled_sync_is_skipped(self, service, insight_repo, metrics_client):
        existing_status(insight_repo, NOW - timedelta(hours=1), sync_enabled=False)

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "cooldown"
        assert summary.message == "Sync is disabled for instagram"
        assert metrics_client.calls == []

    async def test_due_status_syncs(self, service, insight_repo, post_repo):
        existing_status(insight_repo, NOW - timedelta(minutes=1))

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "no_posts"
        assert len(post_repo.sync_calls) == 1

    async def test_first_sync_creates_status(self, service, insight_repo, post_repo):
        summary = await service.sync_insights(1, "Instagram ")

        assert insight_repo.created_statuses == [(1, "instagram")]
        assert summary.platform == "instagram"
        assert post_repo.sync_calls == [{
            "user_id": 1,
            "platform": "instagram",
            "published_since": NOW - timedelta(days=30),
            "stale_before": NOW - timedelta(hours=6),
        }]


@pytest.mark.asyncio
class TestSyncPreconditions:
    """Test platform and account checks."""

    async def test_unsupported_platform(self, service, insight_repo):
        with pytest.raises(ValidationError):
            await service.sync_insights(1, "myspace")

        assert insight_repo.created_statuses == []

    async def test_no_connected_account(self, service, insight_repo, metrics_client):
        with pytest.raises(NotConnectedError) as exc_info:
            await service.sync_insights(1, "facebook")

        assert exc_info.value.status_code == 404
        assert metrics_client.calls == []

    async def test_disconnected_account(self, service, insight_repo):
        insight_repo.accounts[(1, "instagram")] = make_account(status="disconnected")

        with pytest.raises(NotConnectedError):
            await service.sync_insights(1, "instagram")


@pytest.mark.asyncio
class TestSyncRun:
    """Test per-post processing and bookkeeping."""

    async def test_all_posts_synced(self, service, insight_repo, post_repo, metrics_client):
        post_repo.sync_candidates = [
            make_post(1, external_id="m1", content="Big news #launch"),
            make_post(2, external_id="m2"),
            make_post(3, external_id="m3"),
        ]
        metrics_client.responses.update({"m1": HIGH, "m2": MEDIUM, "m3": LOW})

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "succeeded"
        assert (summary.total_posts, summary.synced_count, summary.failed_count) == (3, 3, 0)
        assert [r.performance_category for r in summary.sync_results] == ["high", "medium", "low"]
        assert summary.sync_results[0].engagement_rate == pytest.approx(0.1)
        assert summary.next_sync_at == NOW + timedelta(hours=6)

        stored = insight_repo.insights[(1, 1, "instagram")]
        assert stored["likes_count"] == 80
        assert stored["performance_category"] == "high"
        assert stored["external_post_id"] == "m1"
        assert stored["external_account_id"] == "acct-1"
        assert stored["content_features"]["hashtags"] == ["#launch"]
        assert stored["post_timing"]["day_name"] == "Sunday"
        assert stored["last_synced_at"] == NOW
        assert stored["sync_status"] == "synced"
        assert post_repo.counter_updates[1] == HIGH

        assert insight_repo.outcomes == [{
            "succeeded": True,
            "error_message": None,
            "any_synced": True,
            "next_sync_at": NOW + timedelta(hours=6),
        }]
        status = insight_repo.statuses[(1, "instagram")]
        assert status.failed_syncs == 0
        assert status.last_successful_sync == NOW

    async def test_partial_failure(self, service, insight_repo, post_repo, metrics_client):
        existing_status(insight_repo, NOW - timedelta(hours=1), failed_syncs=2)
        post_repo.sync_candidates = [make_post(1, external_id="m1"), make_post(2, external_id="m2")]
        metrics_client.responses.update({"m1": HIGH, "m2": MetricsFetchError("Graph API error: rate limited")})

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "partially_failed"
        assert (summary.synced_count, summary.failed_count) == (1, 1)
        assert summary.sync_results[1].to_dict() == {
            "post_id": 2,
            "status": "failed",
            "error": "Graph API error: rate limited",
        }
        assert insight_repo.outcomes[0]["succeeded"] is False
        assert insight_repo.outcomes[0]["error_message"] == "1 posts failed"
        status = insight_repo.statuses[(1, "instagram")]
        assert status.failed_syncs == 3
        assert status.api_status == "error"
        assert status.last_successful_sync == NOW

    async def test_every_post_failing(self, service, insight_repo, post_repo):
        existing_status(insight_repo, NOW - timedelta(hours=1))
        post_repo.sync_candidates = [make_post(1, external_id="m1")]

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "failed"
        assert summary.patterns_analyzed is False
        status = insight_repo.statuses[(1, "instagram")]
        assert status.failed_syncs == 1
        assert status.last_successful_sync is None

    async def test_missing_external_id(self, service, post_repo, metrics_client):
        post_repo.sync_candidates = [make_post(1)]

        summary = await service.sync_insights(1, "instagram")

        assert summary.sync_results[0].error == "missing external post id"
        assert metrics_client.calls == []

    async def test_platform_specific_external_id(self, service, post_repo, metrics_client):
        post = make_post(1)
        post.post_metadata = {"external_ids": {"instagram": "ig-9", "facebook": "fb-9"}}
        post_repo.sync_candidates = [post]
        metrics_client.responses["ig-9"] = LOW

        summary = await service.sync_insights(1, "instagram")

        assert summary.synced_count == 1
        assert metrics_client.calls == [("instagram", "ig-9")]

    async def test_store_failure_is_rolled_back(self, service, insight_repo, post_repo, metrics_client):
        post_repo.sync_candidates = [make_post(1, external_id="m1"), make_post(2, external_id="m2")]
        metrics_client.responses.update({"m1": HIGH, "m2": HIGH})
        insight_repo.fail_upsert_for.add(1)

        summary = await service.sync_insights(1, "instagram")

        assert summary.sync_results[0].error == "Failed to store insights: insert failed"
        assert summary.sync_results[1].status == "success"
        assert insight_repo.savepoint_rollbacks == 1
        assert insight_repo.rollbacks == 0
        assert 1 not in post_repo.counter_updates

    async def test_reported_results_are_truncated(self, service, post_repo, metrics_client):
        post_repo.sync_candidates = [make_post(i, external_id=f"m{i}") for i in range(1, 13)]
        metrics_client.responses.update({f"m{i}": LOW for i in range(1, 13)})

        summary = await service.sync_insights(1, "instagram")
        data = summary.to_dict()

        assert data["synced_count"] == 12
        assert len(data["sync_results"]) == 10


@pytest.mark.asyncio
class TestRepeatedSync:
    """Test syncing the same user and platform twice."""

    async def test_sync_right_after_success_is_in_cooldown(self, service, insight_repo, post_repo, metrics_client):
        post_repo.sync_candidates = [make_post(1, external_id="m1")]
        metrics_client.responses["m1"] = HIGH

        first = await service.sync_insights(1, "instagram")
        second = await service.sync_insights(1, "instagram")

        assert first.status == "succeeded"
        assert second.status == "cooldown"
        assert second.cooldown_active is True
        assert second.next_sync_at == first.next_sync_at == NOW + timedelta(hours=6)
        assert metrics_client.calls == [("instagram", "m1")]
        assert len(post_repo.sync_calls) == 1
        assert insight_repo.statuses[(1, "instagram")].next_sync_at == first.next_sync_at

    async def test_forced_resync_with_same_metrics_keeps_one_insight(
        self, service, insight_repo, post_repo, metrics_client
    ):
        post_repo.sync_candidates = [make_post(1, external_id="m1", content="Ask me anything? #ama")]
        metrics_client.responses["m1"] = MEDIUM

        await service.sync_insights(1, "instagram", force_sync=True)
        first = dict(insight_repo.insights[(1, 1, "instagram")])
        await service.sync_insights(1, "instagram", force_sync=True)

        assert list(insight_repo.insights) == [(1, 1, "instagram")]
        second = insight_repo.insights[(1, 1, "instagram")]
        for key in ("likes_count", "reach", "engagement_rate", "performance_category",
                    "content_features", "post_timing", "external_post_id"):
            assert second[key] == first[key]
        assert second["performance_category"] == "medium"


@pytest.mark.asyncio
class TestPatternRescoring:
    """Test the pattern step after a sync."""

    async def test_patterns_rescored_after_successful_posts(self, service, insight_repo, post_repo, metrics_client):
        insight_repo.patterns = [
            PerformancePattern(
                id=1, user_id=1, pattern_type="timing", pattern_name="Evening reels",
                avg_engagement_lift=0.5, confidence_level=0.8, sample_size=99,
                priority_score=0.0, is_active=True,
            )
        ]
        post_repo.sync_candidates = [make_post(1, external_id="m1")]
        metrics_client.responses["m1"] = LOW

        summary = await service.sync_insights(1, "instagram")

        assert summary.patterns_analyzed is True
        assert insight_repo.patterns[0].priority_score == 0.8

    async def test_pattern_failure_does_not_fail_sync(self, service, insight_repo, post_repo, metrics_client):
        insight_repo.fail_patterns = True
        post_repo.sync_candidates = [make_post(1, external_id="m1")]
        metrics_client.responses["m1"] = LOW

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "succeeded"
        assert summary.patterns_analyzed is False
        assert insight_repo.rollbacks == 1

    async def test_no_synced_posts_skips_patterns(self, service, insight_repo):
        insight_repo.fail_patterns = True

        summary = await service.sync_insights(1, "instagram")

        assert summary.status == "no_posts"
        assert insight_repo.outcomes[0]["succeeded"] is True
        assert insight_repo.rollbacks == 0


@pytest.mark.asyncio
class TestSyncOverview:

    async def test_overview(self, service, insight_repo):
        existing_status(insight_repo, NOW + timedelta(hours=1))
        insight_repo.patterns = [
            PerformancePattern(
                id=1, user_id=1, pattern_type="content", pattern_name="Questions",
                avg_engagement_lift=0.2, confidence_level=0.9, sample_size=10,
                priority_score=0.18, is_active=True,
            )
        ]

        overview = await service.get_sync_overview(1, "INSTAGRAM")

        assert overview["sync_status"][0]["platform"] == "instagram"
        assert overview["sync_status"][0]["next_sync_at"] == NOW + timedelta(hours=1)
        assert overview["recent_insights"] == []
        assert overview["active_patterns"][0]["pattern_name"] == "Questions"
