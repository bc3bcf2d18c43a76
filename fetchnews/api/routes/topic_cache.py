"""
Topic Cache API Routes

Monitoring and administrative expiry for the shared topic summary cache.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.api.middleware import verify_admin_token
from fetchnews.api.schemas import TopicCacheExpireResponse, TopicCacheStatsResponse
from fetchnews.config.logging import get_logger
from fetchnews.db import get_db_session
from fetchnews.services.summaries import topic_cache

logger = get_logger(__name__)

router = APIRouter(
    prefix="/topic-cache",
    tags=["Topic Cache"],
    dependencies=[Depends(verify_admin_token)],
)


@router.get("/stats", response_model=TopicCacheStatsResponse)
async def get_topic_cache_stats(
    db: AsyncSession = Depends(get_db_session),
) -> TopicCacheStatsResponse:
    """Live entry counts per topic."""
    return TopicCacheStatsResponse(**await topic_cache.stats(db))


@router.post("/expire", response_model=TopicCacheExpireResponse)
async def expire_topic_cache(
    db: AsyncSession = Depends(get_db_session),
) -> TopicCacheExpireResponse:
    """Remove entries already past their expiry."""
    deleted = await topic_cache.expire_now(db)
    logger.info("Manual topic cache expiry", deleted=deleted)
    return TopicCacheExpireResponse(deleted_entries=deleted)
