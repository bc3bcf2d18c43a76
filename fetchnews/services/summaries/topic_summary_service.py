"""
Topic Summary Service

Cache-first retrieval of per-topic summaries: look up, generate on a miss,
store for the next caller.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.config.logging import get_logger
from fetchnews.services.summaries.generator import SummaryGenerator, summary_generator
from fetchnews.services.summaries.topic_cache import (
    TopicCache,
    normalize_source_article,
    topic_cache,
)

logger = get_logger(__name__)

# Provenance kept per cached summary
MAX_SOURCE_ARTICLES = 5


@dataclass
class TopicSummary:
    """Summary for one topic, from cache or freshly generated."""
    topic: str
    summary: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    source_articles: List[Dict[str, Any]] = field(default_factory=list)
    from_cache: bool = False
    article_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "summary": self.summary,
            "metadata": self.metadata,
            "source_articles": self.source_articles,
            "from_cache": self.from_cache,
            "article_count": self.article_count,
        }


class TopicSummaryService:
    """Topic summaries shared across users through the topic cache."""

    def __init__(self, cache: TopicCache, generator: SummaryGenerator):
        self.cache = cache
        self.generator = generator

    async def get_topic_summary(
        self,
        db: AsyncSession,
        topic: str,
        word_count: Optional[int] = None,
        country: Optional[str] = None,
        force_refresh: bool = False,
        articles: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> TopicSummary:
        """
        Get a summary for a topic, generating it only on a cache miss.

        Generation errors propagate to the caller.
        """
        word_count = word_count or self.cache.default_word_count
        country = country or self.cache.default_country

        if not force_refresh:
            cached = await self.cache.lookup(db, topic, word_count, country)
            if cached:
                return TopicSummary(
                    topic=topic,
                    summary=cached.summary,
                    metadata=dict(cached.summary_metadata or {}),
                    source_articles=list(cached.source_articles or []),
                    from_cache=True,
                    article_count=cached.article_count,
                )

        logger.info("Generating new topic summary", topic=topic, word_count=word_count, country=country)
        generated = await self.generator.generate(topic, word_count, articles)
        sources = [normalize_source_article(a) for a in generated.source_articles[:MAX_SOURCE_ARTICLES]]

        if generated.fallback:
            # Fallback text is never shared
            logger.info("Not caching fallback summary", topic=topic)
        else:
            await self.cache.store(
                db,
                topic,
                generated.summary,
                word_count=word_count,
                country=country,
                metadata=generated.metadata,
                source_articles=sources,
            )

        return TopicSummary(
            topic=topic,
            summary=generated.summary,
            metadata=dict(generated.metadata),
            source_articles=sources,
            from_cache=False,
            article_count=len(generated.source_articles),
        )

    async def get_multiple(
        self,
        db: AsyncSession,
        topics: Sequence[str],
        word_count: Optional[int] = None,
        country: Optional[str] = None,
        force_refresh: bool = False,
    ) -> List[TopicSummary]:
        """Summaries for several topics, one after another on the same session."""
        results = []
        for topic in topics:
            results.append(
                await self.get_topic_summary(db, topic, word_count, country, force_refresh=force_refresh)
            )

        hits = sum(1 for r in results if r.from_cache)
        logger.info(
            "Topic summaries ready",
            topics=len(results),
            cache_hits=hits,
            generated=len(results) - hits,
        )
        return results


# Singleton instance
topic_summary_service = TopicSummaryService(topic_cache, summary_generator)
