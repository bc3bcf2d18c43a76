"""
Scheduled Summary Runner

Runs one user's scheduled summary for a calendar day, at most once.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.config.logging import get_logger
from fetchnews.services.scheduling.execution_tracker import ExecutionTracker, execution_tracker
from fetchnews.services.summaries.topic_summary_service import (
    TopicSummaryService,
    topic_summary_service,
)

logger = get_logger(__name__)


class RunStatus(str, Enum):
    SKIPPED = "skipped"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScheduledSummaryJob:
    """Parameters of one scheduled summary run."""
    user_id: str
    summary_id: str
    scheduled_date: date
    topics: List[str]
    word_count: Optional[int] = None
    country: Optional[str] = None


@dataclass
class RunOutcome:
    """What happened when a job was handed to the runner."""
    status: RunStatus
    execution_id: Optional[str] = None
    sections: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "execution_id": self.execution_id,
            "sections": self.sections,
            "error": self.error,
            "reason": self.reason,
        }


class ScheduledSummaryRunner:
    """
    Ties the execution tracker to the topic summary service.

    acquire -> start -> summarize every topic -> complete, or fail with the
    error text recorded on the execution.
    """

    def __init__(
        self,
        tracker: ExecutionTracker,
        summaries: TopicSummaryService,
    ):
        self.tracker = tracker
        self.summaries = summaries

    async def run(self, db: AsyncSession, job: ScheduledSummaryJob) -> RunOutcome:
        """
        Run a scheduled summary job if no other worker has or is.

        Failures are recorded and returned, not raised.
        """
        if not job.topics:
            logger.info("Skipping scheduled summary with no topics", user_id=job.user_id, summary_id=job.summary_id)
            return RunOutcome(status=RunStatus.SKIPPED, reason="no_topics")

        acquired = await self.tracker.acquire_or_join(
            db,
            job.user_id,
            job.summary_id,
            job.scheduled_date,
            job.topics,
        )
        execution_id = acquired.execution.execution_id

        if not acquired.should_execute:
            logger.info(
                "Scheduled summary already handled",
                execution_id=execution_id,
                status=acquired.execution.status,
            )
            return RunOutcome(
                status=RunStatus.SKIPPED,
                execution_id=execution_id,
                reason=acquired.execution.status,
            )

        await self.tracker.mark_started(db, execution_id)

        try:
            results = await self.summaries.get_multiple(
                db,
                job.topics,
                word_count=job.word_count,
                country=job.country,
            )
        except Exception as e:
            # Discard whatever the failed step left in the session
            await db.rollback()
            logger.error(
                "Scheduled summary failed",
                execution_id=execution_id,
                error=str(e),
                exc_info=True,
            )
            await self.tracker.mark_failed(db, execution_id, e)
            return RunOutcome(status=RunStatus.FAILED, execution_id=execution_id, error=str(e))

        await self.tracker.mark_completed(db, execution_id)

        return RunOutcome(
            status=RunStatus.COMPLETED,
            execution_id=execution_id,
            sections=[r.to_dict() for r in results],
        )


# Singleton instance
scheduled_summary_runner = ScheduledSummaryRunner(execution_tracker, topic_summary_service)
