"""
Tests for EmbeddingBackfillService.

This test module verifies:
1. Batch processing with per-post failures
2. Skips, delays and progress callbacks
3. Status, clear and single-post test operations
"""

import pytest

from app.core.exceptions import NotFoundError, PersistenceError, ValidationError
from app.services.embeddings.backfill import BackfillScope, EmbeddingBackfillService

from conftest import FakePostRepository, make_post


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


def make_service(posts, adapter, sleep, item_delay=0.1, batch_delay=1.0):
    return EmbeddingBackfillService(
        posts,
        adapter,
        item_delay=item_delay,
        batch_delay=batch_delay,
        sleep=sleep,
    )


@pytest.mark.asyncio
class TestBackfill:
    """Test backfill runs."""

    async def test_one_failure_does_not_abort_the_run(self, adapter, fake_provider, sleep):
        posts = FakePostRepository([make_post(i, content=f"Post number {i}") for i in range(1, 6)])
        fake_provider.fail_for.add("Post number 3")
        service = make_service(posts, adapter, sleep)

        report = await service.backfill(BackfillScope(user_id=1, batch_size=2))

        assert report.total == 5
        assert report.processed == 5
        assert (report.succeeded, report.failed, report.skipped) == (4, 1, 0)
        assert report.status == "completed"
        assert report.success_rate == 80
        assert sorted(posts.saved) == [1, 2, 4, 5]
        assert report.results[2].to_dict() == {"id": 3, "status": "failed", "error": "Failed to generate embedding"}

    async def test_delays_between_items_and_batches(self, adapter, sleep):
        posts = FakePostRepository([make_post(i) for i in range(1, 6)])
        service = make_service(posts, adapter, sleep)

        await service.backfill(BackfillScope(user_id=1, batch_size=2))

        # batches [1,2] [3,4] [5]: one item delay in each full batch, a batch delay after the first two
        assert sleep.calls == [0.1, 1.0, 0.1, 1.0]

    async def test_zero_delays_never_sleep(self, adapter, sleep):
        posts = FakePostRepository([make_post(i) for i in range(1, 4)])
        service = make_service(posts, adapter, sleep, item_delay=0, batch_delay=0)

        await service.backfill(BackfillScope(user_id=1, batch_size=2))

        assert sleep.calls == []

    async def test_post_without_text_is_skipped(self, adapter, fake_provider, sleep):
        posts = FakePostRepository([make_post(1, content="   "), make_post(2)])
        service = make_service(posts, adapter, sleep)

        report = await service.backfill(BackfillScope(user_id=1))

        assert (report.succeeded, report.failed, report.skipped) == (1, 0, 1)
        assert report.results[0].to_dict() == {"id": 1, "status": "skipped", "reason": "No content to embed"}
        assert len(fake_provider.calls) == 1

    async def test_write_failure_rolls_back_its_savepoint_and_continues(self, adapter, sleep):
        posts = FakePostRepository([make_post(1), make_post(2, content="Another one")])
        posts.fail_save_for.add(1)
        service = make_service(posts, adapter, sleep)

        report = await service.backfill(BackfillScope(user_id=1))

        assert (report.succeeded, report.failed) == (1, 1)
        assert posts.savepoint_rollbacks == 1
        assert posts.rollbacks == 0
        assert report.results[0].details["error"].startswith("Database update failed")

    async def test_success_details(self, adapter, sleep):
        posts = FakePostRepository([make_post(1, title="Launch", content="Big day")])
        service = make_service(posts, adapter, sleep)

        report = await service.backfill(BackfillScope(user_id=1))

        assert report.results[0].to_dict() == {
            "id": 1,
            "status": "success",
            "title": "Launch",
            "embedding_dimensions": 4,
            "content_length": len("Launch. Big day"),
        }

    async def test_only_missing_embeddings_unless_forced(self, adapter, sleep):
        posts = FakePostRepository([make_post(1, embedding=[0.1, 0.1, 0.1, 0.1]), make_post(2)])
        service = make_service(posts, adapter, sleep)

        report = await service.backfill(BackfillScope(user_id=1))
        assert report.total == 1

        forced = await service.backfill(BackfillScope(user_id=1, force_regenerate=True))
        assert forced.total == 2

    async def test_second_run_has_nothing_to_do(self, adapter, fake_provider, sleep):
        posts = FakePostRepository([make_post(i, content=f"Post number {i}") for i in range(1, 4)])
        service = make_service(posts, adapter, sleep)

        first = await service.backfill(BackfillScope(user_id=1))
        calls_after_first = len(fake_provider.calls)
        second = await service.backfill(BackfillScope(user_id=1))

        assert first.succeeded == 3
        assert second.total == 0
        assert second.results == []
        assert len(fake_provider.calls) == calls_after_first

    async def test_user_scope(self, adapter, sleep):
        posts = FakePostRepository([make_post(1, user_id=1), make_post(2, user_id=2)])
        service = make_service(posts, adapter, sleep)

        mine = await service.backfill(BackfillScope(user_id=1))
        assert [r.id for r in mine.results] == [1]

        everyone = await service.backfill(BackfillScope(user_id=1, user_only=False, force_regenerate=True))
        assert [r.id for r in everyone.results] == [1, 2]

    async def test_nothing_to_do(self, adapter, sleep):
        service = make_service(FakePostRepository(), adapter, sleep)

        report = await service.backfill(BackfillScope(user_id=1))

        assert report.total == 0
        assert report.status == "completed"
        assert report.summary_dict() == {
            "total_posts": 0,
            "successful": 0,
            "failed": 0,
            "skipped": 0,
            "success_rate": 0,
        }

    async def test_progress_callback(self, adapter, sleep):
        posts = FakePostRepository([make_post(1, title="First"), make_post(2)])
        service = make_service(posts, adapter, sleep)
        seen = []

        async def on_progress(processed, total, label):
            seen.append((processed, total, label))

        await service.backfill(BackfillScope(user_id=1), on_progress=on_progress)

        assert seen == [(1, 2, "First"), (2, 2, "Post 2")]

    async def test_invalid_batch_size(self, adapter, sleep):
        service = make_service(FakePostRepository(), adapter, sleep)

        with pytest.raises(ValidationError):
            await service.backfill(BackfillScope(user_id=1, batch_size=0))

    async def test_candidate_query_failure(self, adapter, sleep):
        posts = FakePostRepository()
        posts.fail_fetch = True
        service = make_service(posts, adapter, sleep)

        with pytest.raises(PersistenceError):
            await service.backfill(BackfillScope(user_id=1))


@pytest.mark.asyncio
class TestEmbeddingMaintenance:
    """Test status, clear and single-post test."""

    async def test_status(self, adapter, sleep):
        posts = FakePostRepository([
            make_post(1, embedding=[0.1, 0.1, 0.1, 0.1]),
            make_post(2, title=None, content="x" * 150),
            make_post(3, user_id=2),
        ])
        service = make_service(posts, adapter, sleep)

        data = await service.embedding_status(1)

        assert data["total_posts"] == 2
        assert data["posts_with_embeddings"] == 1
        assert data["posts_without_embeddings"] == 1
        assert data["completion_percentage"] == 50
        pending = data["posts_ready_for_processing"]
        assert [p["id"] for p in pending] == [2]
        assert pending[0]["title"] == "Untitled"
        assert pending[0]["content_preview"] == "x" * 100 + "..."

    async def test_status_with_no_posts(self, adapter, sleep):
        service = make_service(FakePostRepository(), adapter, sleep)

        data = await service.embedding_status(1)

        assert data["completion_percentage"] == 0

    async def test_clear_requires_confirmation(self, adapter, sleep):
        posts = FakePostRepository([make_post(1, embedding=[0.1, 0.1, 0.1, 0.1])])
        service = make_service(posts, adapter, sleep)

        with pytest.raises(ValidationError):
            await service.clear_embeddings(1)

        assert posts.posts[0].embedding is not None

    async def test_clear(self, adapter, sleep):
        posts = FakePostRepository([
            make_post(1, embedding=[0.1, 0.1, 0.1, 0.1]),
            make_post(2),
            make_post(3, user_id=2, embedding=[0.1, 0.1, 0.1, 0.1]),
        ])
        service = make_service(posts, adapter, sleep)

        assert await service.clear_embeddings(1, confirm=True) == 1
        assert posts.posts[2].embedding is not None

    async def test_single_post(self, adapter, sleep):
        posts = FakePostRepository([make_post(1, title="Hello", content="world")])
        service = make_service(posts, adapter, sleep)

        result = await service.test_single_post(1, 1)

        assert result == {
            "success": True,
            "post_id": 1,
            "text_length": len("Hello. world"),
            "embedding_dimensions": 4,
            "had_existing_embedding": False,
            "embedding_preview": [0.5, 0.5, 0.5, 0.5],
        }
        assert posts.saved == {}

    async def test_single_post_of_another_user_is_not_found(self, adapter, sleep):
        posts = FakePostRepository([make_post(1, user_id=2)])
        service = make_service(posts, adapter, sleep)

        with pytest.raises(NotFoundError):
            await service.test_single_post(1, 1)

    async def test_single_post_embedding_failure(self, adapter, fake_provider, sleep):
        posts = FakePostRepository([make_post(1)])
        fake_provider.fail_all = True
        service = make_service(posts, adapter, sleep)

        result = await service.test_single_post(1, 1)

        assert result == {"success": False, "post_id": 1, "error": "Failed to generate embedding"}
