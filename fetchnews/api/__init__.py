"""
API Package.

Exports API components.
"""

from fetchnews.api.routes import (
    admin_router,
    scheduler_router,
    topic_cache_router,
)

__all__ = [
    "admin_router",
    "scheduler_router",
    "topic_cache_router",
]
