"""
Celery application instance and configuration.
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from app.core.config import settings
from app.core.logging import setup_logging

# Create Celery application
celery_app = Celery(
    "postpulse",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=['app.tasks.embedding_tasks', 'app.tasks.insight_tasks'],
)

# Configure Celery
celery_app.conf.update(
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    accept_content=settings.celery_accept_content_list,
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=settings.CELERY_ENABLE_UTC,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    result_expires=3600,  # 1 hour
)

# Celery Beat Schedule (Periodic Tasks)
celery_app.conf.beat_schedule = {
    'backfill-post-embeddings': {
        'task': 'embedding.backfill_embeddings',
        'schedule': crontab(minute=f'*/{settings.BACKFILL_INTERVAL_MINUTES}'),
        'options': {'queue': 'embedding'},
    },
    'sync-due-insights': {
        'task': 'insights.sync_all_due',
        'schedule': crontab(minute=str(settings.INSIGHT_SYNC_SWEEP_MINUTE)),  # Hourly
        'options': {'queue': 'insights'},
    },
}

# Task routing
celery_app.conf.task_routes = {
    'embedding.*': {'queue': 'embedding'},
    'insights.*': {'queue': 'insights'},
}


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application's structlog setup instead of Celery's root logger config."""
    setup_logging()


# Auto-discover tasks from app.tasks
celery_app.autodiscover_tasks(['app.tasks'])
