"""
API Routes Package.

Exports all API routers.
"""

from fetchnews.api.routes.admin import router as admin_router
from fetchnews.api.routes.scheduler_health import router as scheduler_router
from fetchnews.api.routes.topic_cache import router as topic_cache_router

__all__ = [
    "admin_router",
    "scheduler_router",
    "topic_cache_router",
]
