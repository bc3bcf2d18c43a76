"""
Tests for trending topic summary pre-generation

Runs the task body against SQLite with a recording generator in place of
the model.
"""

from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest

from fetchnews.services import RuntimeSettings
from fetchnews.services.summaries import GeneratedSummary, TopicCache, TopicSummaryService
from fetchnews.tasks import scheduled_summaries


class RecordingGenerator:
    """Generator that records every (topic, word_count) request"""

    def __init__(self):
        self.calls = []

    async def generate(self, topic, word_count, articles=None):
        self.calls.append((topic, word_count))
        return GeneratedSummary(summary=f"{topic} in {word_count} words", metadata={"model": "test"})


@pytest.fixture
def generator():
    return RecordingGenerator()


@pytest.fixture
def cache(test_settings):
    return TopicCache(test_settings)


@pytest.fixture
def run_pregeneration(session_factory, test_settings, cache, generator):
    """Run the task body wired to the test database"""

    @asynccontextmanager
    async def db_context():
        async with session_factory() as session:
            yield session
            await session.commit()

    async def run(config=test_settings):
        service = TopicSummaryService(cache, generator)
        with patch.object(scheduled_summaries, "get_db_context", db_context), \
                patch.object(scheduled_summaries, "topic_summary_service", service), \
                patch.object(scheduled_summaries, "get_settings", return_value=config):
            return await scheduled_summaries._pregenerate_topic_summaries_async()

    return run


class TestPregenerateTopicSummaries:

    @pytest.mark.asyncio
    async def test_generates_each_topic_at_each_word_count(self, run_pregeneration, generator, cache, db):
        await RuntimeSettings().update_trending_topics(db, ["AI", "Climate"])

        result = await run_pregeneration()

        assert result == {"topics": 2, "generated": 4}
        assert sorted(generator.calls) == [
            ("AI", 200),
            ("AI", 300),
            ("Climate", 200),
            ("Climate", 300),
        ]
        assert await cache.lookup(db, "ai", word_count=300) is not None

    @pytest.mark.asyncio
    async def test_regenerates_topics_already_cached(self, run_pregeneration, generator, cache, db):
        await RuntimeSettings().update_trending_topics(db, ["AI"])
        await cache.store(db, "AI", "stale text", word_count=200)

        result = await run_pregeneration()

        assert result["generated"] == 2
        assert ("AI", 200) in generator.calls
        entry = await cache.lookup(db, "ai", word_count=200)
        assert entry.summary == "AI in 200 words"

    @pytest.mark.asyncio
    async def test_topic_limit_keeps_priority_order(self, run_pregeneration, generator, test_settings, db):
        await RuntimeSettings().update_trending_topics(db, ["AI", "Climate", "Elections"])
        config = test_settings.model_copy(update={"pregenerate_topic_limit": 2})

        result = await run_pregeneration(config)

        assert result["topics"] == 2
        assert {topic for topic, _ in generator.calls} == {"AI", "Climate"}

    @pytest.mark.asyncio
    async def test_no_trending_topics(self, run_pregeneration, generator):
        result = await run_pregeneration()

        assert result == {"topics": 0, "generated": 0}
        assert generator.calls == []
