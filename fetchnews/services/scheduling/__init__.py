"""
Scheduling Services Package.

Exports the execution tracker and the scheduled summary runner.
"""

from fetchnews.services.scheduling.execution_tracker import (
    AcquireResult,
    ExecutionTracker,
    execution_tracker,
)
from fetchnews.services.scheduling.runner import (
    RunOutcome,
    RunStatus,
    ScheduledSummaryJob,
    ScheduledSummaryRunner,
    scheduled_summary_runner,
)

__all__ = [
    "AcquireResult",
    "ExecutionTracker",
    "execution_tracker",
    "RunOutcome",
    "RunStatus",
    "ScheduledSummaryJob",
    "ScheduledSummaryRunner",
    "scheduled_summary_runner",
]
