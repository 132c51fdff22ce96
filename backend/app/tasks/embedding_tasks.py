"""
Celery tasks for post embeddings.

This module contains background tasks for:
- Backfilling missing post embeddings (periodic, all users)
- Backfilling one user's posts on demand
"""

import asyncio
import concurrent.futures
import logging
from typing import Any, Dict, Optional

from celery import Task

from app.core.config import settings
from app.db.session import task_session_factory
from app.repositories.posts import PostRepository
from app.services.embeddings.backfill import BackfillScope, EmbeddingBackfillService
from app.services.embeddings.embedder import EmbeddingAdapter, build_provider
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


# ========================================
# Async Helper
# ========================================

def run_async(coro):
    """
    Run async coroutine, handling both event loop and no event loop scenarios.

    This helper allows tasks to work in both:
    - Production (Celery worker with no event loop) - uses asyncio.run()
    - Tests (pytest with existing event loop) - runs in thread pool
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No event loop running - we're in a Celery worker
        return asyncio.run(coro)

    # Event loop is running - run in a new thread to avoid "loop already running"
    with concurrent.futures.ThreadPoolExecutor() as executor:
        future = executor.submit(asyncio.run, coro)
        return future.result()


# ========================================
# Base Task Class
# ========================================

class EmbeddingTask(Task):
    """Base task class with retry logic and error handling."""

    autoretry_for = (Exception,)
    retry_kwargs = {'max_retries': 3}
    retry_backoff = True
    retry_backoff_max = 600  # 10 minutes
    retry_jitter = True


# ========================================
# Tasks
# ========================================

@celery_app.task(
    base=EmbeddingTask,
    name='embedding.backfill_embeddings',
    bind=True,
)
def backfill_embeddings(
    self,
    user_id: Optional[int] = None,
    batch_size: Optional[int] = None,
    force_regenerate: bool = False,
) -> Dict[str, Any]:
    """
    Generate embeddings for posts that do not have one.

    Runs for a single user when user_id is given, otherwise across all users
    (the periodic beat run). Progress is published as task state PROGRESS.

    Args:
        user_id: Restrict the run to this user's posts
        batch_size: Posts per batch (defaults to BACKFILL_DEFAULT_BATCH_SIZE)
        force_regenerate: Re-embed posts that already have an embedding

    Returns:
        {
            'success': bool,
            'progress': {total, processed, succeeded, failed, skipped, status},
            'summary': {total_posts, successful, failed, skipped, success_rate}
        }
    """
    scope = BackfillScope(
        user_id=user_id,
        user_only=user_id is not None,
        force_regenerate=force_regenerate,
        batch_size=batch_size or settings.BACKFILL_DEFAULT_BATCH_SIZE,
    )

    def publish_progress(processed: int, total: int, current: Optional[str]) -> None:
        if self.request.id:
            self.update_state(
                state='PROGRESS',
                meta={'processed': processed, 'total': total, 'current': current},
            )

    async def _backfill():
        adapter = EmbeddingAdapter(build_provider())
        try:
            async with task_session_factory() as session_factory:
                async with session_factory() as db:
                    service = EmbeddingBackfillService(PostRepository(db), adapter)
                    return await service.backfill(scope, on_progress=publish_progress)
        finally:
            await adapter.shutdown()

    logger.info(
        f"Starting embedding backfill (user_id={user_id}, batch_size={scope.batch_size}, "
        f"force_regenerate={force_regenerate})"
    )
    report = run_async(_backfill())

    return {
        'success': True,
        'progress': report.progress_dict(),
        'summary': report.summary_dict(),
    }
