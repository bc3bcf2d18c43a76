"""
Scheduled Summary Tasks

Celery tasks for running scheduled summaries, pre-generating summaries for
trending topics, and the housekeeping that keeps the execution and topic
cache tables healthy.
"""

import asyncio
from datetime import date
from typing import List, Optional

from celery import shared_task

from fetchnews.config.logging import get_logger
from fetchnews.config.settings import get_settings
from fetchnews.db import get_db_context
from fetchnews.services.scheduling import (
    ScheduledSummaryJob,
    execution_tracker,
    scheduled_summary_runner,
)
from fetchnews.services.runtime_settings import RuntimeSettings
from fetchnews.services.summaries import topic_cache, topic_summary_service

logger = get_logger(__name__)


def run_async(coro):
    """Run async function in sync context for Celery."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@shared_task
def execute_scheduled_summary(
    user_id: str,
    summary_id: str,
    scheduled_date: str,
    topics: List[str],
    word_count: Optional[int] = None,
    country: Optional[str] = None,
) -> dict:
    """
    Run one scheduled summary.

    Safe to deliver more than once: the execution tracker lets only one
    delivery per (user, summary, day) do the work.
    """
    job = ScheduledSummaryJob(
        user_id=user_id,
        summary_id=summary_id,
        scheduled_date=date.fromisoformat(scheduled_date),
        topics=topics,
        word_count=word_count,
        country=country,
    )
    return run_async(_execute_scheduled_summary_async(job))


async def _execute_scheduled_summary_async(job: ScheduledSummaryJob) -> dict:
    """Async implementation."""
    async with get_db_context() as db:
        outcome = await scheduled_summary_runner.run(db, job)

    logger.info(
        "Scheduled summary task finished",
        execution_id=outcome.execution_id,
        status=outcome.status.value,
    )
    return outcome.to_dict()


@shared_task
def reconcile_stale_executions() -> dict:
    """Fail executions that stopped making progress."""
    return run_async(_reconcile_stale_async())


async def _reconcile_stale_async() -> dict:
    """Async implementation."""
    async with get_db_context() as db:
        failed = await execution_tracker.reconcile_stale(db)

        return {
            "stale_failed": failed,
        }


@shared_task
def purge_old_executions() -> dict:
    """Delete executions past the retention window."""
    return run_async(_purge_executions_async())


async def _purge_executions_async() -> dict:
    """Async implementation."""
    async with get_db_context() as db:
        deleted = await execution_tracker.purge_expired(db)

        return {
            "deleted_executions": deleted,
        }


@shared_task
def cleanup_expired_topic_summaries() -> dict:
    """Clean up expired topic cache entries."""
    return run_async(_cleanup_topic_cache_async())


async def _cleanup_topic_cache_async() -> dict:
    """Async implementation."""
    async with get_db_context() as db:
        deleted = await topic_cache.expire_now(db)

        return {
            "deleted_entries": deleted,
        }


@shared_task
def pregenerate_topic_summaries() -> dict:
    """Regenerate cached summaries for the current trending topics."""
    return run_async(_pregenerate_topic_summaries_async())


async def _pregenerate_topic_summaries_async() -> dict:
    """Async implementation."""
    config = get_settings()

    async with get_db_context() as db:
        snapshot = await RuntimeSettings().load(db)
        topics = snapshot.trending_topics[:config.pregenerate_topic_limit]

        if not topics:
            logger.info("No trending topics to pre-generate")
            return {"topics": 0, "generated": 0}

        generated = 0
        for word_count in config.pregenerate_word_counts:
            results = await topic_summary_service.get_multiple(
                db,
                topics,
                word_count=word_count,
                force_refresh=True,
            )
            generated += sum(1 for r in results if not r.from_cache)

    logger.info(
        "Pre-generated topic summaries",
        topics=len(topics),
        word_counts=list(config.pregenerate_word_counts),
        generated=generated,
    )
    return {
        "topics": len(topics),
        "generated": generated,
    }
