"""
Scheduled Execution Tracker

Idempotency and crash recovery for scheduled summary jobs.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.config.logging import get_logger
from fetchnews.config.settings import Settings, get_settings
from fetchnews.db.types import utcnow
from fetchnews.models import ExecutionStatus, SchedulerExecution, build_execution_id

logger = get_logger(__name__)

UNFINISHED = (ExecutionStatus.PENDING.value, ExecutionStatus.RUNNING.value)


@dataclass
class AcquireResult:
    """Outcome of asking whether a scheduled job should run."""
    execution: SchedulerExecution
    should_execute: bool
    is_new: bool


class ExecutionTracker:
    """
    Execution tracker for scheduled summaries.

    At most one successful run per (user, summary, calendar day):
    - The unique ``execution_id`` serializes concurrent first inserts
    - Unfinished attempts older than the stale threshold are failed lazily
      and retried under the same key
    - Exclusive transitions are single conditional UPDATEs

    Every call re-reads the row; nothing is held between calls.
    """

    def __init__(self, config: Optional[Settings] = None):
        """Initialize the tracker."""
        config = config or get_settings()
        self.stale_after = timedelta(minutes=config.stale_execution_minutes)
        self.retention = timedelta(days=config.execution_retention_days)
        self.stale_error = f"Timeout - exceeded {config.stale_execution_minutes} minutes"

    async def get(
        self,
        db: AsyncSession,
        execution_id: str,
    ) -> Optional[SchedulerExecution]:
        """Fetch an execution by key, bypassing any identity-map copy."""
        result = await db.execute(
            select(SchedulerExecution)
            .where(SchedulerExecution.execution_id == execution_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def acquire_or_join(
        self,
        db: AsyncSession,
        user_id: str,
        summary_id: str,
        scheduled_date: date,
        topics: Optional[Sequence[str]] = None,
    ) -> AcquireResult:
        """
        Decide whether the caller should run the job for this key.

        Args:
            db: Database session.
            user_id: Owner of the scheduled summary.
            summary_id: Scheduled summary identifier.
            scheduled_date: Calendar day the run belongs to.
            topics: Job parameters, stored for reference.

        Returns:
            AcquireResult; ``should_execute`` is True for exactly one caller.
        """
        execution_id = build_execution_id(user_id, summary_id, scheduled_date)
        execution = await self.get(db, execution_id)

        if execution is None:
            execution = SchedulerExecution(
                execution_id=execution_id,
                user_id=user_id,
                summary_id=summary_id,
                scheduled_date=scheduled_date,
                topics=list(topics or []),
                status=ExecutionStatus.PENDING.value,
                retry_count=0,
            )
            db.add(execution)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.info("Execution insert conflicted, joining", execution_id=execution_id)
                existing = await self.get(db, execution_id)
                if existing is None:
                    raise
                execution = existing
            else:
                logger.info(
                    "Execution created",
                    execution_id=execution_id,
                    topics=len(execution.topics),
                )
                return AcquireResult(execution=execution, should_execute=True, is_new=True)

        return await self._join_existing(db, execution)

    async def _join_existing(
        self,
        db: AsyncSession,
        execution: SchedulerExecution,
    ) -> AcquireResult:
        """Follow the branch for a key that already has a record."""
        now = utcnow()

        if execution.status == ExecutionStatus.COMPLETED.value:
            logger.debug("Execution already completed", execution_id=execution.execution_id)
            return AcquireResult(execution=execution, should_execute=False, is_new=False)

        if execution.status in UNFINISHED:
            if not execution.is_stale(self.stale_after, now):
                logger.debug(
                    "Execution in progress elsewhere",
                    execution_id=execution.execution_id,
                    status=execution.status,
                )
                return AcquireResult(execution=execution, should_execute=False, is_new=False)

            failed = await self._fail_stale(db, execution.execution_id)
            if failed:
                logger.warning(
                    "Stale execution failed, allowing retry",
                    execution_id=execution.execution_id,
                    age_seconds=int(execution.age(now).total_seconds()),
                )

        return await self._claim_retry(db, execution.execution_id)

    async def _fail_stale(self, db: AsyncSession, execution_id: str) -> int:
        """Move an unfinished attempt past the threshold to failed."""
        now = utcnow()
        result = await db.execute(
            update(SchedulerExecution)
            .where(
                SchedulerExecution.execution_id == execution_id,
                SchedulerExecution.status.in_(UNFINISHED),
                SchedulerExecution.started_at < now - self.stale_after,
            )
            .values(
                status=ExecutionStatus.FAILED.value,
                error=self.stale_error,
                completed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    async def _claim_retry(self, db: AsyncSession, execution_id: str) -> AcquireResult:
        """Reopen a failed attempt; only the caller whose UPDATE lands wins."""
        result = await db.execute(
            update(SchedulerExecution)
            .where(
                SchedulerExecution.execution_id == execution_id,
                SchedulerExecution.status == ExecutionStatus.FAILED.value,
            )
            .values(
                status=ExecutionStatus.PENDING.value,
                started_at=utcnow(),
                completed_at=None,
                duration_ms=None,
                retry_count=SchedulerExecution.retry_count + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        claimed = result.rowcount == 1
        execution = await self.get(db, execution_id)
        if execution is None:
            raise LookupError(f"Execution {execution_id} disappeared while retrying")

        if claimed:
            logger.info(
                "Execution retry claimed",
                execution_id=execution_id,
                retry_count=execution.retry_count,
            )
        return AcquireResult(execution=execution, should_execute=claimed, is_new=False)

    async def mark_started(
        self,
        db: AsyncSession,
        execution_id: str,
    ) -> Optional[SchedulerExecution]:
        """
        Transition pending -> running and stamp the start time.

        Returns:
            The execution, unchanged unless it was pending; None if unknown.
        """
        execution = await self.get(db, execution_id)
        if execution is None:
            logger.warning("mark_started on unknown execution", execution_id=execution_id)
            return None

        if execution.status != ExecutionStatus.PENDING.value:
            logger.info(
                "Execution not pending, start ignored",
                execution_id=execution_id,
                status=execution.status,
            )
            return execution

        execution.status = ExecutionStatus.RUNNING.value
        execution.started_at = utcnow()
        await db.commit()

        return execution

    async def mark_completed(
        self,
        db: AsyncSession,
        execution_id: str,
    ) -> Optional[SchedulerExecution]:
        """
        Transition to completed and record the duration.

        Completing twice is harmless: the first terminal transition's
        timestamps and duration are kept.
        """
        execution = await self.get(db, execution_id)
        if execution is None:
            logger.warning("mark_completed on unknown execution", execution_id=execution_id)
            return None

        if execution.status == ExecutionStatus.COMPLETED.value:
            return execution

        now = utcnow()
        execution.status = ExecutionStatus.COMPLETED.value
        execution.completed_at = now
        execution.duration_ms = _millis_between(execution.started_at, now)
        await db.commit()

        logger.info(
            "Execution completed",
            execution_id=execution_id,
            duration_ms=execution.duration_ms,
        )
        return execution

    async def mark_failed(
        self,
        db: AsyncSession,
        execution_id: str,
        error: Any,
    ) -> Optional[SchedulerExecution]:
        """
        Transition to failed, keeping the error text.

        The next ``acquire_or_join`` for the same key performs the retry.
        A completed execution is never downgraded.
        """
        execution = await self.get(db, execution_id)
        if execution is None:
            logger.warning("mark_failed on unknown execution", execution_id=execution_id)
            return None

        if execution.status == ExecutionStatus.COMPLETED.value:
            logger.warning("Refusing to fail a completed execution", execution_id=execution_id)
            return execution

        now = utcnow()
        execution.status = ExecutionStatus.FAILED.value
        execution.completed_at = now
        execution.duration_ms = _millis_between(execution.started_at, now)
        execution.error = str(error)
        await db.commit()

        logger.warning(
            "Execution failed",
            execution_id=execution_id,
            error=execution.error,
            retry_count=execution.retry_count,
        )
        return execution

    async def stats(
        self,
        db: AsyncSession,
        hours: int = 24,
    ) -> Dict[str, Any]:
        """
        Aggregate execution outcomes for monitoring.

        Counts are limited to executions created within the window, except
        ``running`` which counts everything currently running.
        """
        since = utcnow() - timedelta(hours=hours)

        result = await db.execute(
            select(SchedulerExecution.status, func.count(SchedulerExecution.id))
            .where(SchedulerExecution.created_at >= since)
            .group_by(SchedulerExecution.status)
        )
        by_status = {status: count for status, count in result.all()}

        running = await db.scalar(
            select(func.count(SchedulerExecution.id))
            .where(SchedulerExecution.status == ExecutionStatus.RUNNING.value)
        ) or 0

        avg_duration = await db.scalar(
            select(func.avg(SchedulerExecution.duration_ms))
            .where(
                SchedulerExecution.status == ExecutionStatus.COMPLETED.value,
                SchedulerExecution.duration_ms.isnot(None),
                SchedulerExecution.created_at >= since,
            )
        )

        total = sum(by_status.values())
        completed = by_status.get(ExecutionStatus.COMPLETED.value, 0)
        failed = by_status.get(ExecutionStatus.FAILED.value, 0)

        return {
            "window_hours": hours,
            "total": total,
            "completed": completed,
            "failed": failed,
            "running": running,
            "pending": by_status.get(ExecutionStatus.PENDING.value, 0),
            "success_rate": round(completed / total * 100, 1) if total else None,
            "avg_duration_ms": int(round(float(avg_duration))) if avg_duration is not None else 0,
        }

    async def stats_by_user(
        self,
        db: AsyncSession,
        hours: int = 24,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Per-user outcome counts for the busiest users in the window."""
        since = utcnow() - timedelta(hours=hours)
        total = func.count(SchedulerExecution.id).label("total")

        result = await db.execute(
            select(
                SchedulerExecution.user_id,
                total,
                func.sum(case((SchedulerExecution.status == ExecutionStatus.COMPLETED.value, 1), else_=0)),
                func.sum(case((SchedulerExecution.status == ExecutionStatus.FAILED.value, 1), else_=0)),
                func.avg(SchedulerExecution.duration_ms),
            )
            .where(SchedulerExecution.created_at >= since)
            .group_by(SchedulerExecution.user_id)
            .order_by(total.desc())
            .limit(limit)
        )

        return [
            {
                "user_id": user_id,
                "total": count,
                "completed": int(completed or 0),
                "failed": int(failed or 0),
                "avg_duration_ms": int(round(float(avg))) if avg is not None else None,
            }
            for user_id, count, completed, failed, avg in result.all()
        ]

    async def recent(
        self,
        db: AsyncSession,
        limit: int = 10,
        status: Optional[ExecutionStatus] = None,
    ) -> List[SchedulerExecution]:
        """Newest executions first, optionally filtered by status."""
        query = select(SchedulerExecution)
        if status is not None:
            query = query.where(SchedulerExecution.status == ExecutionStatus(status).value)

        result = await db.execute(
            query.order_by(SchedulerExecution.created_at.desc(), SchedulerExecution.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def reconcile_stale(self, db: AsyncSession) -> int:
        """
        Fail every unfinished execution past the stale threshold.

        Same transition ``acquire_or_join`` applies lazily, run eagerly so
        abandoned jobs show up in monitoring before anyone retries them.
        """
        now = utcnow()
        result = await db.execute(
            update(SchedulerExecution)
            .where(
                SchedulerExecution.status.in_(UNFINISHED),
                SchedulerExecution.started_at < now - self.stale_after,
            )
            .values(
                status=ExecutionStatus.FAILED.value,
                error=self.stale_error,
                completed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        count = result.rowcount
        if count > 0:
            logger.warning("Reconciled stale executions", count=count)

        return count

    async def purge_expired(self, db: AsyncSession) -> int:
        """Delete executions older than the retention window."""
        result = await db.execute(
            delete(SchedulerExecution)
            .where(SchedulerExecution.created_at < utcnow() - self.retention)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        count = result.rowcount
        if count > 0:
            logger.info("Purged old executions", count=count)

        return count


def _millis_between(start, end) -> int:
    return max(int((end - start).total_seconds() * 1000), 0)


# Singleton instance
execution_tracker = ExecutionTracker()
