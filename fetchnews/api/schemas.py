"""
Pydantic Schemas for API Request/Response Models

Following official Pydantic V2 documentation:
https://docs.pydantic.dev/latest/
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================

class ExecutionStatusEnum(str, Enum):
    """Execution lifecycle states."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class HealthStatusEnum(str, Enum):
    """Overall scheduler health."""
    HEALTHY = "healthy"
    WARNING = "warning"
    DEGRADED = "degraded"
    CRITICAL = "critical"


# =============================================================================
# Base Schemas
# =============================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


# =============================================================================
# Execution Schemas
# =============================================================================

class ExecutionResponse(BaseSchema):
    """One scheduler execution."""
    execution_id: str
    user_id: str
    summary_id: str
    scheduled_date: date
    status: ExecutionStatusEnum
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    topics: List[str] = []
    error: Optional[str] = None
    retry_count: int = 0
    created_at: datetime


class ExecutionListResponse(BaseSchema):
    """Recent executions."""
    executions: List[ExecutionResponse]


class ExecutionStats(BaseSchema):
    """Execution outcome counts for a time window."""
    window_hours: int
    total: int
    completed: int
    failed: int
    running: int
    pending: int
    success_rate: Optional[float] = None
    avg_duration_ms: int = 0


class UserExecutionStats(BaseSchema):
    """Per-user execution counts."""
    user_id: str
    total: int
    completed: int
    failed: int
    avg_duration_ms: Optional[int] = None


class ExecutionStatsResponse(BaseSchema):
    """Overall and per-user execution statistics."""
    overall: ExecutionStats
    by_user: List[UserExecutionStats]
    period: str


class CircuitBreakerStatus(BaseSchema):
    """Circuit breaker snapshot."""
    state: str
    failure_count: int
    success_count: int
    failure_threshold: int
    seconds_until_retry: int
    seconds_since_state_change: int
    description: Optional[str] = None


class SchedulerHealthResponse(BaseSchema):
    """Scheduler health summary."""
    status: HealthStatusEnum
    health_score: int
    issues: List[str]
    timestamp: datetime
    metrics: Dict[str, Any]


# =============================================================================
# Topic Cache Schemas
# =============================================================================

class TopicCount(BaseSchema):
    """Live entry count for a topic."""
    topic: str
    count: int


class TopicCacheStatsResponse(BaseSchema):
    """Topic cache statistics."""
    total: int
    by_topic: List[TopicCount]
    oldest_summary: Optional[datetime] = None
    newest_summary: Optional[datetime] = None


class TopicCacheExpireResponse(BaseSchema):
    """Result of an administrative expiry."""
    deleted_entries: int


# =============================================================================
# Admin Schemas
# =============================================================================

class ScheduledSummaryRunRequest(BaseSchema):
    """Run one scheduled summary now."""
    user_id: str = Field(..., min_length=1, max_length=64)
    summary_id: str = Field(..., min_length=1, max_length=128)
    scheduled_date: date
    topics: List[str] = Field(default_factory=list, max_length=50)
    word_count: Optional[int] = Field(None, ge=10, le=2000)
    country: Optional[str] = Field(None, min_length=2, max_length=8)

    @field_validator("topics")
    @classmethod
    def strip_topics(cls, v: List[str]) -> List[str]:
        """Drop blank topics."""
        return [t.strip() for t in v if t and t.strip()]


class ScheduledSummaryRunResponse(BaseSchema):
    """Runner outcome."""
    status: str
    execution_id: Optional[str] = None
    sections: List[Dict[str, Any]] = []
    error: Optional[str] = None
    reason: Optional[str] = None


class RuntimeSettingsResponse(BaseSchema):
    """Current runtime settings snapshot."""
    trending_topics: List[str]
    trending_topics_with_sources: Dict[str, Any]
    last_trending_update: Optional[datetime] = None
    global_news_sources: List[str]
    global_news_sources_enabled: bool
    version: int
