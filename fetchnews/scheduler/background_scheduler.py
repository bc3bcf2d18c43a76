"""
APScheduler - Background Task Scheduler

Runs the housekeeping jobs inside the FastAPI process for deployments
without a Celery beat.

This module provides:
- Stale execution reconciliation every few minutes
- Topic cache cleanup hourly
- Execution retention purge daily at 3 AM
- Trending topic summary pre-generation every 6 hours
"""

from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from fetchnews.config.logging import get_logger
from fetchnews.config.settings import Settings, get_settings

logger = get_logger(__name__)


class BackgroundScheduler:
    """
    Background task scheduler using APScheduler.

    Drop-in replacement for Celery Beat that runs within the FastAPI process.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or get_settings()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> None:
        """Start the scheduler with all configured jobs."""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._register_jobs()
        self.scheduler.start()
        self._is_running = True

        logger.info("Background scheduler started", jobs=len(self.scheduler.get_jobs()))

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self.scheduler and self._is_running:
            self.scheduler.shutdown(wait=True)
            self._is_running = False
            logger.info("Background scheduler stopped")

    def _register_jobs(self) -> None:
        """Register all background jobs."""

        # 1. Fail abandoned executions
        self.scheduler.add_job(
            self._reconcile_stale,
            trigger=IntervalTrigger(minutes=self.config.stale_reconcile_interval_minutes),
            id="reconcile_stale_executions",
            name="Reconcile Stale Executions",
            replace_existing=True,
            max_instances=1,
        )

        # 2. Cleanup expired topic summaries every hour at :30
        self.scheduler.add_job(
            self._cleanup_topic_cache,
            trigger=CronTrigger(minute=30),
            id="cleanup_topic_cache",
            name="Cleanup Expired Topic Summaries",
            replace_existing=True,
            max_instances=1,
        )

        # 3. Purge executions past retention daily at 3 AM UTC
        self.scheduler.add_job(
            self._purge_executions,
            trigger=CronTrigger(hour=3, minute=0),
            id="purge_old_executions",
            name="Purge Old Executions",
            replace_existing=True,
            max_instances=1,
        )

        # 4. Pre-generate trending topic summaries every 6 hours
        self.scheduler.add_job(
            self._pregenerate_topic_summaries,
            trigger=CronTrigger(hour="0,6,12,18", minute=0),
            id="pregenerate_topic_summaries",
            name="Pre-generate Topic Summaries",
            replace_existing=True,
            max_instances=1,
        )

        logger.info("Registered scheduled jobs", count=4)

    async def _reconcile_stale(self) -> None:
        """Reconcile stale executions."""
        from fetchnews.tasks.scheduled_summaries import _reconcile_stale_async

        try:
            result = await _reconcile_stale_async()
            logger.info("Scheduled stale reconciliation complete", failed=result.get("stale_failed", 0))
        except Exception as e:
            logger.error("Scheduled stale reconciliation failed", error=str(e))

    async def _cleanup_topic_cache(self) -> None:
        """Cleanup expired topic summaries - runs hourly."""
        from fetchnews.tasks.scheduled_summaries import _cleanup_topic_cache_async

        try:
            logger.info("Starting scheduled topic cache cleanup")
            result = await _cleanup_topic_cache_async()
            logger.info(
                "Scheduled topic cache cleanup complete",
                deleted=result.get("deleted_entries", 0),
            )
        except Exception as e:
            logger.error("Scheduled topic cache cleanup failed", error=str(e))

    async def _purge_executions(self) -> None:
        """Purge old executions - runs daily at 3 AM."""
        from fetchnews.tasks.scheduled_summaries import _purge_executions_async

        try:
            logger.info("Starting scheduled execution purge")
            result = await _purge_executions_async()
            logger.info(
                "Scheduled execution purge complete",
                deleted=result.get("deleted_executions", 0),
            )
        except Exception as e:
            logger.error("Scheduled execution purge failed", error=str(e))

    async def _pregenerate_topic_summaries(self) -> None:
        """Pre-generate trending topic summaries."""
        from fetchnews.tasks.scheduled_summaries import _pregenerate_topic_summaries_async

        try:
            logger.info("Starting scheduled topic summary pre-generation")
            result = await _pregenerate_topic_summaries_async()
            logger.info(
                "Scheduled topic summary pre-generation complete",
                topics=result.get("topics", 0),
                generated=result.get("generated", 0),
            )
        except Exception as e:
            logger.error("Scheduled topic summary pre-generation failed", error=str(e))

    async def run_task_now(self, task_name: str) -> dict:
        """
        Run a specific task immediately (on-demand).

        Useful for admin endpoints to trigger tasks manually.
        """
        tasks = {
            "reconcile_stale": self._reconcile_stale,
            "cleanup_topic_cache": self._cleanup_topic_cache,
            "purge_executions": self._purge_executions,
            "pregenerate_topic_summaries": self._pregenerate_topic_summaries,
        }

        if task_name not in tasks:
            return {"success": False, "error": f"Unknown task: {task_name}", "available": list(tasks.keys())}

        await tasks[task_name]()
        return {"success": True, "task": task_name, "timestamp": datetime.now(timezone.utc).isoformat()}

    def get_status(self) -> dict:
        """Get scheduler status and job information."""
        if not self.scheduler or not self._is_running:
            return {"running": False, "jobs": [], "job_count": 0}

        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            })

        return {
            "running": True,
            "jobs": jobs,
            "job_count": len(jobs),
        }


# Singleton instance
background_scheduler = BackgroundScheduler()
