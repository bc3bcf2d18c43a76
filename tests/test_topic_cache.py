"""
Unit Tests for TopicCache

Lookups honour topic normalization, the word count tolerance band,
exact country match and expiry; the newest entry wins.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from fetchnews.db.types import utcnow
from fetchnews.models import TopicSummaryCache
from fetchnews.services.summaries import TopicCache, normalize_topic
from fetchnews.services.summaries.topic_cache import normalize_source_article


async def _age(db, entry_id, hours):
    """Shift an entry's lifetime into the past"""
    now = utcnow()
    await db.execute(
        update(TopicSummaryCache)
        .where(TopicSummaryCache.id == entry_id)
        .values(
            created_at=now - timedelta(hours=hours),
            expires_at=now - timedelta(hours=hours) + timedelta(hours=12),
        )
    )
    await db.commit()


class TestNormalization:
    """Key and provenance normalization"""

    def test_topic_is_trimmed_and_lowercased(self):
        assert normalize_topic("  Technology ") == "technology"
        assert normalize_topic("AI") == normalize_topic("ai")

    def test_source_article_keeps_provenance_fields(self):
        article = {
            "title": "Chip shortage eases",
            "url": "https://example.com/chips",
            "source": {"id": "reuters", "name": "Reuters"},
            "publishedAt": datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc),
            "content": "full text that should not be cached",
        }

        normalized = normalize_source_article(article)

        assert normalized == {
            "title": "Chip shortage eases",
            "url": "https://example.com/chips",
            "source": "Reuters",
            "publishedAt": "2024-01-15T08:30:00+00:00",
        }


class TestLookup:
    """Hit and miss rules"""

    @pytest.fixture
    def cache(self, test_settings):
        return TopicCache(test_settings)

    @pytest.fixture
    async def stored(self, cache, db):
        return await cache.store(
            db,
            "Technology",
            "Here is the technology news.",
            word_count=200,
            country="us",
            metadata={"sentiment": "neutral"},
            source_articles=[{"title": "A", "url": "https://example.com/a", "source": "Wire"}],
        )

    @pytest.mark.asyncio
    async def test_store_normalizes_and_sets_expiry(self, stored):
        assert stored.topic == "technology"
        assert stored.article_count == 1
        assert stored.expires_at - stored.created_at == timedelta(hours=12)

    @pytest.mark.asyncio
    async def test_exact_request_hits(self, cache, db, stored):
        entry = await cache.lookup(db, "technology", 200, "us")

        assert entry is not None
        assert entry.id == stored.id
        assert entry.summary == "Here is the technology news."
        assert entry.summary_metadata == {"sentiment": "neutral"}

    @pytest.mark.asyncio
    async def test_topic_casing_and_padding_ignored(self, cache, db, stored):
        assert await cache.lookup(db, "  TECHNOLOGY ", 200, "us") is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("word_count", [160, 180, 220, 240])
    async def test_word_count_within_band_hits(self, cache, db, stored, word_count):
        assert await cache.lookup(db, "technology", word_count, "us") is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("word_count", [159, 241, 400])
    async def test_word_count_outside_band_misses(self, cache, db, stored, word_count):
        assert await cache.lookup(db, "technology", word_count, "us") is None

    @pytest.mark.asyncio
    async def test_other_country_misses(self, cache, db, stored):
        assert await cache.lookup(db, "technology", 200, "gb") is None

    @pytest.mark.asyncio
    async def test_defaults_apply_when_omitted(self, cache, db, stored):
        assert await cache.lookup(db, "technology") is not None

    @pytest.mark.asyncio
    async def test_expired_entry_misses(self, cache, db, stored):
        await _age(db, stored.id, hours=13)

        assert await cache.lookup(db, "technology", 200, "us") is None

    @pytest.mark.asyncio
    async def test_newest_entry_wins(self, cache, db, stored):
        await _age(db, stored.id, hours=2)
        newer = await cache.store(db, "technology", "Fresher technology news.", word_count=210, country="us")

        entry = await cache.lookup(db, "technology", 200, "us")

        assert entry.id == newer.id
        assert entry.summary == "Fresher technology news."


class TestMaintenance:
    """Stats and administrative expiry"""

    @pytest.fixture
    def cache(self, test_settings):
        return TopicCache(test_settings)

    @pytest.mark.asyncio
    async def test_stats_count_live_entries(self, cache, db):
        await cache.store(db, "tech", "one")
        await cache.store(db, "tech", "two", word_count=400)
        await cache.store(db, "sports", "three")
        expired = await cache.store(db, "politics", "four")
        await _age(db, expired.id, hours=24)

        stats = await cache.stats(db)

        assert stats["total"] == 3
        assert stats["by_topic"][0] == {"topic": "tech", "count": 2}
        assert {"topic": "sports", "count": 1} in stats["by_topic"]
        assert stats["oldest_summary"] <= stats["newest_summary"]

    @pytest.mark.asyncio
    async def test_stats_on_empty_cache(self, cache, db):
        stats = await cache.stats(db)

        assert stats["total"] == 0
        assert stats["by_topic"] == []
        assert stats["oldest_summary"] is None

    @pytest.mark.asyncio
    async def test_expire_now_removes_only_expired(self, cache, db):
        live = await cache.store(db, "tech", "live")
        expired = await cache.store(db, "tech", "stale")
        await _age(db, expired.id, hours=13)

        assert await cache.expire_now(db) == 1
        assert await cache.expire_now(db) == 0

        entry = await cache.lookup(db, "tech")
        assert entry.id == live.id
