"""
Celery tasks for background processing.
"""

from app.tasks.embedding_tasks import backfill_embeddings
from app.tasks.insight_tasks import sync_all_due, sync_user_platform

__all__ = [
    "backfill_embeddings",
    "sync_all_due",
    "sync_user_platform",
]
