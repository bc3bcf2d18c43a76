"""
Pytest configuration and shared fixtures for fetchnews tests
"""

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from fetchnews.config.settings import Settings
from fetchnews.db import create_session_factory, init_db


@pytest.fixture
def test_settings():
    """Settings isolated from the environment"""
    return Settings(
        app_env="test",
        admin_token=None,
        google_api_key=None,
        enable_background_scheduler=False,
        stale_execution_minutes=10,
        execution_retention_days=7,
        topic_cache_ttl_hours=12,
        topic_cache_size_tolerance_percent=20,
        default_word_count=200,
        default_country="us",
    )


@pytest.fixture
def db_path(tmp_path):
    """File-backed SQLite database so separate sessions really are separate connections"""
    return tmp_path / "fetchnews-test.db"


@pytest.fixture
async def engine(db_path):
    """Async engine with all tables created"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        poolclass=NullPool,
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory configured like the application's"""
    return create_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    """A single database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def scheduled_date():
    """Calendar day used by execution tests"""
    return date(2024, 1, 15)
