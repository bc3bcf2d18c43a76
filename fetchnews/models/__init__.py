"""
Models package.

Exports all SQLAlchemy models.
"""

from fetchnews.models.execution import (
    ExecutionStatus,
    SchedulerExecution,
    build_execution_id,
)
from fetchnews.models.global_settings import GLOBAL_SETTINGS_KEY, GlobalSettings
from fetchnews.models.topic_cache import TopicSummaryCache

__all__ = [
    # Scheduling
    "SchedulerExecution",
    "ExecutionStatus",
    "build_execution_id",
    # Summaries
    "TopicSummaryCache",
    # Settings
    "GlobalSettings",
    "GLOBAL_SETTINGS_KEY",
]
