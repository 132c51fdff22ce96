"""
Celery tasks for platform insight sync.

- insights.sync_user_platform: sync one user's posts on one platform
- insights.sync_all_due: hourly sweep queueing every sync whose cooldown ended
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from celery import Task

from app.core.exceptions import NotConnectedError, ValidationError
from app.db.session import task_session_factory
from app.repositories.insights import InsightRepository
from app.repositories.posts import PostRepository
from app.services.insights.metrics_client import PlatformMetricsClient
from app.services.insights.sync_service import InsightSyncService
from app.tasks.embedding_tasks import run_async
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


class InsightTask(Task):
    """Retries transient failures; account and platform errors are final."""

    autoretry_for = (Exception,)
    dont_autoretry_for = (NotConnectedError, ValidationError)
    retry_kwargs = {'max_retries': 3}
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True


@celery_app.task(
    base=InsightTask,
    name='insights.sync_user_platform',
    bind=True,
)
def sync_user_platform(self, user_id: int, platform: str, force_sync: bool = False) -> Dict[str, Any]:
    """
    Sync insights for one user and platform.

    Returns:
        {'success': bool, 'user_id': int, 'platform': str, 'summary': {...}}
        or {'success': False, 'error': str} when the account is not connected
    """
    async def _sync():
        async with task_session_factory() as session_factory:
            async with session_factory() as db:
                async with PlatformMetricsClient() as client:
                    service = InsightSyncService(PostRepository(db), InsightRepository(db), client)
                    return await service.sync_insights(user_id, platform, force_sync=force_sync)

    try:
        summary = run_async(_sync())
    except (NotConnectedError, ValidationError) as e:
        logger.warning(f"Insight sync skipped for user {user_id} on {platform}: {e.message}")
        return {
            'success': False,
            'user_id': user_id,
            'platform': platform,
            'error': e.message,
        }

    return {
        'success': True,
        'user_id': user_id,
        'platform': platform,
        'summary': summary.to_dict() | {'next_sync_at': _isoformat(summary.next_sync_at)},
    }


@celery_app.task(name='insights.sync_all_due')
def sync_all_due() -> Dict[str, Any]:
    """
    Queue insights.sync_user_platform for every enabled status row whose
    next_sync_at has passed.

    Returns:
        {'success': True, 'queued': int}
    """
    async def _due():
        async with task_session_factory() as session_factory:
            async with session_factory() as db:
                statuses = await InsightRepository(db).list_due_statuses(datetime.now(timezone.utc))
                return [(status.user_id, status.platform) for status in statuses]

    due = run_async(_due())
    for user_id, platform in due:
        sync_user_platform.delay(user_id, platform)

    logger.info(f"Queued {len(due)} due insight syncs")
    return {'success': True, 'queued': len(due)}


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
