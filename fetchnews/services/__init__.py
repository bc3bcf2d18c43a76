"""
Services Package.

Exports all services.
"""

from fetchnews.services.runtime_settings import RuntimeSettings, RuntimeSettingsSnapshot
from fetchnews.services.scheduling import (
    AcquireResult,
    ExecutionTracker,
    RunOutcome,
    RunStatus,
    ScheduledSummaryJob,
    ScheduledSummaryRunner,
    execution_tracker,
    scheduled_summary_runner,
)
from fetchnews.services.summaries import (
    CircuitBreaker,
    CircuitOpenError,
    SummaryGenerator,
    TopicCache,
    TopicSummary,
    TopicSummaryService,
    summary_generator,
    topic_cache,
    topic_summary_service,
)

__all__ = [
    # Scheduling
    "AcquireResult",
    "ExecutionTracker",
    "execution_tracker",
    "RunOutcome",
    "RunStatus",
    "ScheduledSummaryJob",
    "ScheduledSummaryRunner",
    "scheduled_summary_runner",
    # Summaries
    "CircuitBreaker",
    "CircuitOpenError",
    "SummaryGenerator",
    "summary_generator",
    "TopicCache",
    "topic_cache",
    "TopicSummary",
    "TopicSummaryService",
    "topic_summary_service",
    # Settings
    "RuntimeSettings",
    "RuntimeSettingsSnapshot",
]
