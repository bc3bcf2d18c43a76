"""
Unit Tests for RuntimeSettings and merge_with_retry

The settings row is created on first load, and partial updates survive a
concurrent writer by re-reading and re-merging.
"""

import pytest
from sqlalchemy import create_engine, text

from fetchnews.db import ConcurrentUpdateError, merge_with_retry
from fetchnews.models import GLOBAL_SETTINGS_KEY, GlobalSettings
from fetchnews.services.runtime_settings import RuntimeSettings


@pytest.fixture
def sync_engine(db_path):
    """Independent connection playing the part of another process"""
    engine = create_engine(f"sqlite:///{db_path}")
    yield engine
    engine.dispose()


def _bump_concurrently(sync_engine):
    with sync_engine.begin() as conn:
        conn.execute(
            text(
                "UPDATE global_settings "
                "SET version_id = version_id + 1, global_news_sources_enabled = 1 "
                "WHERE key = :key"
            ),
            {"key": GLOBAL_SETTINGS_KEY},
        )


class TestRuntimeSettings:
    """Load, read and update"""

    def test_get_before_load_raises(self):
        with pytest.raises(RuntimeError):
            RuntimeSettings().get()

    @pytest.mark.asyncio
    async def test_load_creates_row_once(self, db, session_factory):
        first = await RuntimeSettings().load(db)

        async with session_factory() as other:
            second = await RuntimeSettings().load(other)

        assert first.version == 1
        assert second.version == 1
        assert first.trending_topics == []
        assert first.global_news_sources_enabled is False

    @pytest.mark.asyncio
    async def test_update_trending_topics(self, db, session_factory):
        runtime_settings = RuntimeSettings()
        await runtime_settings.load(db)

        snapshot = await runtime_settings.update_trending_topics(
            db,
            ["ai", "climate"],
            {"ai": [{"title": "Model launch"}]},
        )

        assert snapshot.trending_topics == ["ai", "climate"]
        assert snapshot.trending_topics_with_sources == {"ai": [{"title": "Model launch"}]}
        assert snapshot.last_trending_update is not None
        assert snapshot.version == 2
        assert runtime_settings.get() is snapshot

        async with session_factory() as other:
            reloaded = await RuntimeSettings().load(other)
        assert reloaded.trending_topics == ["ai", "climate"]

    @pytest.mark.asyncio
    async def test_refresh_sees_other_writers(self, db, session_factory):
        reader = RuntimeSettings()
        await reader.load(db)

        async with session_factory() as other:
            await RuntimeSettings().update_global_news_sources(other, ["bbc-news", "reuters"])

        assert reader.get().global_news_sources == []
        refreshed = await reader.refresh(db)
        assert refreshed.global_news_sources == ["bbc-news", "reuters"]
        assert refreshed.global_news_sources_enabled is True


class TestMergeWithRetry:
    """Optimistic concurrency on the settings row"""

    @pytest.mark.asyncio
    async def test_conflict_is_re_merged(self, db, sync_engine):
        await RuntimeSettings().load(db)
        calls = 0

        def merge(row):
            nonlocal calls
            calls += 1
            if calls == 1:
                _bump_concurrently(sync_engine)
            row.trending_topics = ["ai"]

        row = await merge_with_retry(
            db,
            GlobalSettings,
            GlobalSettings.key == GLOBAL_SETTINGS_KEY,
            merge,
        )

        assert calls == 2
        assert row.trending_topics == ["ai"]
        # The concurrent writer's change was kept
        assert row.global_news_sources_enabled is True
        assert row.version_id == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, db, sync_engine):
        await RuntimeSettings().load(db)

        def merge(row):
            _bump_concurrently(sync_engine)
            row.trending_topics = ["ai"]

        with pytest.raises(ConcurrentUpdateError):
            await merge_with_retry(
                db,
                GlobalSettings,
                GlobalSettings.key == GLOBAL_SETTINGS_KEY,
                merge,
                max_attempts=2,
            )

    @pytest.mark.asyncio
    async def test_missing_row_returns_none(self, db):
        result = await merge_with_retry(
            db,
            GlobalSettings,
            GlobalSettings.key == "nope",
            lambda row: None,
        )

        assert result is None
