"""
Embedding Backfill

Populates missing post embeddings in batches, tolerating per-post failures.

Run shape:
----------
1. Select posts in scope (one user, or every user for operator runs), newest
   created first; unless force_regenerate, only posts without an embedding.
2. Walk them in batches of batch_size, one post at a time:
   - no text           -> "skipped" (No content to embed)
   - empty vector      -> "failed"
   - write error       -> "failed" (savepoint rolled back, run continues)
   - otherwise         -> "success"
3. Sleep item_delay between posts inside a batch and batch_delay between
   batches to stay under provider rate limits.

One post failing never aborts the run; the report carries per-post results.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from app.core.config import settings
from app.core.exceptions import NotFoundError, PersistenceError, ValidationError
from app.repositories.posts import PostRepository
from app.repositories.records import BackfillCandidate
from app.services.embeddings.embedder import EmbeddingAdapter

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"

ProgressCallback = Callable[[int, int, Optional[str]], Awaitable[None] | None]


@dataclass
class BackfillScope:
    """Which posts a backfill run covers."""

    user_id: int | None
    user_only: bool = True
    force_regenerate: bool = False
    batch_size: int = 10

    @property
    def owner_filter(self) -> int | None:
        return self.user_id if self.user_only else None


@dataclass
class BackfillItemResult:
    id: int
    status: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "status": self.status, **self.details}


@dataclass
class BackfillReport:
    """Counts and per-post outcomes of one backfill run."""

    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    status: str = "running"
    results: list[BackfillItemResult] = field(default_factory=list)

    @property
    def success_rate(self) -> int:
        """Whole-number percentage of posts that succeeded (0 when nothing ran)."""
        if self.total == 0:
            return 0
        return round(self.succeeded / self.total * 100)

    def record(self, item: BackfillItemResult) -> None:
        self.results.append(item)
        if item.status == STATUS_SUCCESS:
            self.succeeded += 1
        elif item.status == STATUS_FAILED:
            self.failed += 1
        else:
            self.skipped += 1

    def progress_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "status": self.status,
        }

    def summary_dict(self) -> dict[str, Any]:
        return {
            "total_posts": self.total,
            "successful": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "success_rate": self.success_rate,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.progress_dict(),
            "success_rate": self.success_rate,
            "results": [item.to_dict() for item in self.results],
        }


class EmbeddingBackfillService:
    """
    Backfill, status and clear operations over post embeddings.

    Usage:
    ------
    service = EmbeddingBackfillService(PostRepository(db), adapter)
    report = await service.backfill(BackfillScope(user_id=user.id, batch_size=10))
    """

    def __init__(
        self,
        posts: PostRepository,
        adapter: EmbeddingAdapter,
        item_delay: float | None = None,
        batch_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.posts = posts
        self.adapter = adapter
        self.item_delay = settings.BACKFILL_ITEM_DELAY_SECONDS if item_delay is None else item_delay
        self.batch_delay = settings.BACKFILL_BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
        self._sleep = sleep

    async def backfill(
        self,
        scope: BackfillScope,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BackfillReport:
        """Embed every post in scope. Raises only if the candidate query fails."""
        if scope.batch_size < 1:
            raise ValidationError("batch_size must be at least 1")
        batch_size = min(scope.batch_size, settings.BACKFILL_MAX_BATCH_SIZE)

        try:
            candidates = await self.posts.fetch_backfill_candidates(
                scope.owner_filter,
                force_regenerate=scope.force_regenerate,
            )
        except Exception as e:
            logger.error(f"Backfill candidate query failed: {e}")
            raise PersistenceError("Failed to fetch posts for processing") from e

        report = BackfillReport(total=len(candidates))
        if not candidates:
            logger.info("No posts need embedding generation")
            report.status = "completed"
            return report

        total_batches = (len(candidates) + batch_size - 1) // batch_size
        logger.info(
            f"Backfilling {len(candidates)} posts in {total_batches} batches "
            f"(batch_size={batch_size}, force_regenerate={scope.force_regenerate}, "
            f"user_scope={scope.owner_filter})"
        )

        for batch_number, start in enumerate(range(0, len(candidates), batch_size), start=1):
            batch = candidates[start:start + batch_size]
            logger.info(f"Processing batch {batch_number}/{total_batches} ({len(batch)} posts)")

            for index, candidate in enumerate(batch):
                report.processed += 1
                report.record(await self._embed_post(candidate))

                if on_progress is not None:
                    maybe_awaitable = on_progress(report.processed, report.total, candidate.label)
                    if maybe_awaitable is not None:
                        await maybe_awaitable

                if index < len(batch) - 1 and self.item_delay > 0:
                    await self._sleep(self.item_delay)

            if batch_number < total_batches and self.batch_delay > 0:
                await self._sleep(self.batch_delay)

        report.status = "completed"
        logger.info(
            f"Embedding backfill completed: {report.succeeded}/{report.total} successful, "
            f"{report.failed} failed, {report.skipped} skipped"
        )
        return report

    async def _embed_post(self, candidate: BackfillCandidate) -> BackfillItemResult:
        post_id = candidate.id
        if not candidate.text:
            logger.warning(f"Post {post_id} has no content to embed, skipping")
            return BackfillItemResult(post_id, STATUS_SKIPPED, {"reason": "No content to embed"})

        vector = await self.adapter.get_embedding(candidate.text)
        if not vector:
            logger.error(f"Failed to generate embedding for post {post_id}")
            return BackfillItemResult(post_id, STATUS_FAILED, {"error": "Failed to generate embedding"})

        try:
            async with self.posts.savepoint():
                await self.posts.save_embedding(post_id, vector)
            await self.posts.commit()
        except Exception as e:
            logger.error(f"Failed to store embedding for post {post_id}: {e}")
            return BackfillItemResult(post_id, STATUS_FAILED, {"error": f"Database update failed: {e}"})

        return BackfillItemResult(
            post_id,
            STATUS_SUCCESS,
            {
                "title": candidate.label,
                "embedding_dimensions": len(vector),
                "content_length": len(candidate.text),
            },
        )

    async def embedding_status(self, user_id: int, user_only: bool = True, preview_limit: int = 50) -> dict[str, Any]:
        """Counts of posts with/without embeddings plus previews of pending posts."""
        owner = user_id if user_only else None
        total, with_embeddings = await self.posts.embedding_counts(owner)
        pending = await self.posts.posts_without_embeddings(owner, preview_limit)

        return {
            "total_posts": total,
            "posts_with_embeddings": with_embeddings,
            "posts_without_embeddings": total - with_embeddings,
            "completion_percentage": round(with_embeddings / total * 100) if total else 0,
            "posts_ready_for_processing": [
                {
                    "id": post.id,
                    "title": post.title or "Untitled",
                    "content_preview": f"{post.content[:100]}..." if post.content else "No content",
                    "created_at": post.created_at,
                }
                for post in pending
            ],
        }

    async def clear_embeddings(self, user_id: int, user_only: bool = True, confirm: bool = False) -> int:
        """Null embeddings in scope. Irreversible; refuses to run unless confirm is True."""
        if confirm is not True:
            raise ValidationError("Please confirm deletion by setting confirm: true")

        cleared = await self.posts.clear_embeddings(user_id if user_only else None)
        logger.warning(
            f"Cleared embeddings for {cleared} posts "
            f"({'user ' + str(user_id) if user_only else 'all users'})"
        )
        return cleared

    async def test_single_post(self, user_id: int, post_id: int) -> dict[str, Any]:
        """Embed one owned post without storing the result (diagnostic)."""
        post = await self.posts.get_owned(user_id, post_id)
        if post is None:
            raise NotFoundError(f"Post {post_id} not found")

        text = post.embeddable_text()
        if not text:
            return {"success": False, "post_id": post_id, "error": "Post has no content to embed"}

        vector = await self.adapter.get_embedding(text)
        if not vector:
            return {"success": False, "post_id": post_id, "error": "Failed to generate embedding"}

        return {
            "success": True,
            "post_id": post_id,
            "text_length": len(text),
            "embedding_dimensions": len(vector),
            "had_existing_embedding": post.has_embedding,
            "embedding_preview": [float(value) for value in vector[:5]],
        }
