"""
Tasks Package.

Exports Celery tasks and app.
"""

from fetchnews.tasks.celery_app import celery_app
from fetchnews.tasks.scheduled_summaries import (
    cleanup_expired_topic_summaries,
    execute_scheduled_summary,
    pregenerate_topic_summaries,
    purge_old_executions,
    reconcile_stale_executions,
)

__all__ = [
    "celery_app",
    "execute_scheduled_summary",
    "reconcile_stale_executions",
    "purge_old_executions",
    "cleanup_expired_topic_summaries",
    "pregenerate_topic_summaries",
]
