"""
Scheduler Execution Model

Tracks scheduled summary executions for idempotency and monitoring.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fetchnews.db.connection import Base
from fetchnews.db.types import UTCDateTime, utcnow


class ExecutionStatus(str, Enum):
    """Lifecycle states of a scheduled execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _escape_key_part(value: str) -> str:
    # Order matters: "%" before "-"
    return value.replace("%", "%25").replace("-", "%2D")


def build_execution_id(user_id: str, summary_id: str, scheduled_date: date) -> str:
    """
    Idempotency key: the same triple always yields the same key.

    The "-" separator is escaped inside the parts, so two different
    triples never share a key.
    """
    return f"{_escape_key_part(user_id)}-{_escape_key_part(summary_id)}-{scheduled_date.isoformat()}"


class SchedulerExecution(Base):
    """
    One attempted run of a scheduled summary for a user on a calendar day.

    Retries reuse the same ``execution_id`` and bump ``retry_count``.
    Rows older than the retention window are purged by a scheduled task.
    """

    __tablename__ = "scheduler_executions"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "scheduled_date",
            "summary_id",
            name="uq_scheduler_executions_user_date_summary",
        ),
        Index("ix_scheduler_executions_status_created", "status", "created_at"),
        CheckConstraint("retry_count >= 0", name="ck_scheduler_executions_retry_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Idempotency key
    execution_id: Mapped[str] = mapped_column(
        String(600),
        unique=True,
        nullable=False,
        index=True,
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    summary_id: Mapped[str] = mapped_column(String(128), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=ExecutionStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    # Timing
    started_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Job parameters at creation time, informational only
    topics: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<SchedulerExecution(execution_id='{self.execution_id}', status='{self.status}')>"

    def age(self, now: Optional[datetime] = None) -> timedelta:
        """Time elapsed since the current attempt started."""
        return (now or utcnow()) - self.started_at

    def is_stale(self, threshold: timedelta, now: Optional[datetime] = None) -> bool:
        """An unfinished attempt that has been going on for too long."""
        if self.status not in (ExecutionStatus.PENDING.value, ExecutionStatus.RUNNING.value):
            return False
        return self.age(now) > threshold

    def to_dict(self) -> Dict[str, Any]:
        """Convert execution to dictionary."""
        return {
            "execution_id": self.execution_id,
            "user_id": self.user_id,
            "summary_id": self.summary_id,
            "scheduled_date": self.scheduled_date.isoformat(),
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "topics": list(self.topics or []),
            "error": self.error,
            "retry_count": self.retry_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
