"""
Summary Services Package.

Exports topic summary caching and generation services.
"""

from fetchnews.services.summaries.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
)
from fetchnews.services.summaries.generator import (
    GeneratedSummary,
    SummaryGenerator,
    summary_generator,
)
from fetchnews.services.summaries.topic_cache import TopicCache, normalize_topic, topic_cache
from fetchnews.services.summaries.topic_summary_service import (
    TopicSummary,
    TopicSummaryService,
    topic_summary_service,
)

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "GeneratedSummary",
    "SummaryGenerator",
    "summary_generator",
    "TopicCache",
    "normalize_topic",
    "topic_cache",
    "TopicSummary",
    "TopicSummaryService",
    "topic_summary_service",
]
