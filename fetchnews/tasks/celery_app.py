"""
Celery Application Configuration

Background task queue using Celery with Redis broker.
Following official Celery documentation:
https://docs.celeryq.dev/en/stable/
"""

from celery import Celery
from celery.schedules import crontab

from fetchnews.config.settings import settings

# Create Celery application
celery_app = Celery(
    "fetchnews",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "fetchnews.tasks.scheduled_summaries",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Redelivery is safe, the execution tracker deduplicates runs
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # Result settings
    result_expires=3600,  # 1 hour

    # Concurrency
    worker_concurrency=2,
)

# Celery Beat schedule (periodic tasks)
celery_app.conf.beat_schedule = {
    # Fail abandoned executions every few minutes
    "reconcile-stale-executions": {
        "task": "fetchnews.tasks.scheduled_summaries.reconcile_stale_executions",
        "schedule": crontab(minute=f"*/{settings.stale_reconcile_interval_minutes}"),
        "options": {"queue": "default"},
    },

    # Drop expired topic summaries every hour
    "cleanup-topic-cache": {
        "task": "fetchnews.tasks.scheduled_summaries.cleanup_expired_topic_summaries",
        "schedule": crontab(minute=30),  # Every hour at :30
        "options": {"queue": "default"},
    },

    # Refresh trending topic summaries four times a day
    "pregenerate-topic-summaries": {
        "task": "fetchnews.tasks.scheduled_summaries.pregenerate_topic_summaries",
        "schedule": crontab(minute=0, hour="0,6,12,18"),
        "options": {"queue": "default"},
    },

    # Enforce execution retention daily
    "purge-old-executions": {
        "task": "fetchnews.tasks.scheduled_summaries.purge_old_executions",
        "schedule": crontab(hour=3, minute=0),  # 3:00 AM daily
        "options": {"queue": "default"},
    },
}

# Task routes
celery_app.conf.task_routes = {
    "fetchnews.tasks.scheduled_summaries.*": {"queue": "default"},
}
