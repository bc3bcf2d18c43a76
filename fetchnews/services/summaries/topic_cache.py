"""
Topic Summary Cache Service

Shares generated topic summaries across users so each topic is summarized
once per freshness window instead of once per user.
"""

from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.config.logging import get_logger
from fetchnews.config.settings import Settings, get_settings
from fetchnews.db.types import utcnow
from fetchnews.models import TopicSummaryCache

logger = get_logger(__name__)


def normalize_topic(topic: str) -> str:
    """Cache key form of a topic name."""
    return topic.strip().lower()


def normalize_source_article(article: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep the provenance fields of an article."""
    source = article.get("source")
    if isinstance(source, Mapping):
        source = source.get("name") or source.get("id") or ""

    published_at = article.get("publishedAt", article.get("published_at"))
    if hasattr(published_at, "isoformat"):
        published_at = published_at.isoformat()

    return {
        "title": article.get("title"),
        "url": article.get("url"),
        "source": source,
        "publishedAt": published_at,
    }


class TopicCache:
    """
    Topic summary cache.

    Features:
    - 12-hour TTL per entry
    - Word count tolerance band (a 200-word summary serves 160-240 word requests)
    - Exact country match
    - Newest entry wins; entries are never overwritten
    """

    def __init__(self, config: Optional[Settings] = None):
        """Initialize the topic cache."""
        config = config or get_settings()
        self.ttl = timedelta(hours=config.topic_cache_ttl_hours)
        self.tolerance_percent = config.topic_cache_size_tolerance_percent
        self.default_word_count = config.default_word_count
        self.default_country = config.default_country

    async def lookup(
        self,
        db: AsyncSession,
        topic: str,
        word_count: Optional[int] = None,
        country: Optional[str] = None,
    ) -> Optional[TopicSummaryCache]:
        """
        Find a fresh cached summary for a topic.

        Matches entries where the requested word count falls within the
        tolerance band around the stored word count, bounds inclusive.

        Args:
            db: Database session.
            topic: Topic name, any casing or padding.
            word_count: Requested summary length.
            country: Country code, matched exactly.

        Returns:
            Newest matching entry or None.
        """
        normalized = normalize_topic(topic)
        word_count = word_count or self.default_word_count
        country = country or self.default_country

        # stored * (100 - t)% <= requested <= stored * (100 + t)%, in integers
        requested = word_count * 100
        query = (
            select(TopicSummaryCache)
            .where(
                TopicSummaryCache.topic == normalized,
                TopicSummaryCache.country == country,
                TopicSummaryCache.word_count * (100 - self.tolerance_percent) <= requested,
                TopicSummaryCache.word_count * (100 + self.tolerance_percent) >= requested,
                TopicSummaryCache.expires_at > utcnow(),
            )
            .order_by(TopicSummaryCache.created_at.desc())
            .limit(1)
        )

        result = await db.execute(query)
        entry = result.scalar_one_or_none()

        if entry:
            logger.info(
                "Topic cache hit",
                topic=normalized,
                word_count=word_count,
                cached_word_count=entry.word_count,
                country=country,
            )
        else:
            logger.info("Topic cache miss", topic=normalized, word_count=word_count, country=country)

        return entry

    async def store(
        self,
        db: AsyncSession,
        topic: str,
        summary: str,
        word_count: Optional[int] = None,
        country: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        source_articles: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> TopicSummaryCache:
        """
        Store a freshly generated summary.

        Always inserts; earlier entries for the topic stay until they expire.

        Returns:
            Created cache entry.
        """
        now = utcnow()
        sources = [normalize_source_article(a) for a in (source_articles or [])]

        entry = TopicSummaryCache(
            topic=normalize_topic(topic),
            summary=summary,
            word_count=word_count or self.default_word_count,
            country=country or self.default_country,
            summary_metadata=dict(metadata or {}),
            source_articles=sources,
            article_count=len(sources),
            created_at=now,
            expires_at=now + self.ttl,
        )

        db.add(entry)
        await db.commit()

        logger.info(
            "Topic cache save",
            topic=entry.topic,
            word_count=entry.word_count,
            country=entry.country,
            expires_at=entry.expires_at.isoformat(),
        )

        return entry

    async def stats(self, db: AsyncSession) -> Dict[str, Any]:
        """Live entry counts for monitoring."""
        live = TopicSummaryCache.expires_at > utcnow()

        total = await db.scalar(select(func.count(TopicSummaryCache.id)).where(live)) or 0

        count = func.count(TopicSummaryCache.id).label("count")
        result = await db.execute(
            select(TopicSummaryCache.topic, count)
            .where(live)
            .group_by(TopicSummaryCache.topic)
            .order_by(count.desc(), TopicSummaryCache.topic)
            .limit(20)
        )
        by_topic: List[Dict[str, Any]] = [
            {"topic": topic, "count": n} for topic, n in result.all()
        ]

        oldest = await db.scalar(select(func.min(TopicSummaryCache.created_at)).where(live))
        newest = await db.scalar(select(func.max(TopicSummaryCache.created_at)).where(live))

        return {
            "total": total,
            "by_topic": by_topic,
            "oldest_summary": oldest,
            "newest_summary": newest,
        }

    async def expire_now(self, db: AsyncSession) -> int:
        """
        Delete entries that are already past their expiry.

        Returns:
            Number of entries deleted.
        """
        result = await db.execute(
            delete(TopicSummaryCache)
            .where(TopicSummaryCache.expires_at <= utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        count = result.rowcount
        logger.info("Cleared expired topic summaries", count=count)

        return count


# Singleton instance
topic_cache = TopicCache()
