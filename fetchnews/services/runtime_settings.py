"""
Runtime Settings Service

Admin-managed settings stored in the single ``global_settings`` row,
loaded once at startup and refreshed explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fetchnews.config.logging import get_logger
from fetchnews.db.transactions import merge_with_retry
from fetchnews.db.types import utcnow
from fetchnews.models import GLOBAL_SETTINGS_KEY, GlobalSettings

logger = get_logger(__name__)


@dataclass(frozen=True)
class RuntimeSettingsSnapshot:
    """Immutable copy of the settings row."""
    trending_topics: List[str] = field(default_factory=list)
    trending_topics_with_sources: Dict[str, Any] = field(default_factory=dict)
    last_trending_update: Optional[datetime] = None
    global_news_sources: List[str] = field(default_factory=list)
    global_news_sources_enabled: bool = False
    version: int = 0

    @classmethod
    def from_row(cls, row: GlobalSettings) -> "RuntimeSettingsSnapshot":
        return cls(
            trending_topics=list(row.trending_topics or []),
            trending_topics_with_sources=dict(row.trending_topics_with_sources or {}),
            last_trending_update=row.last_trending_update,
            global_news_sources=list(row.global_news_sources or []),
            global_news_sources_enabled=row.global_news_sources_enabled,
            version=row.version_id,
        )


class RuntimeSettings:
    """
    Process-wide runtime settings.

    Created once per process and handed to whoever needs it; ``get`` never
    touches the database, ``refresh`` does.
    """

    def __init__(self, key: str = GLOBAL_SETTINGS_KEY):
        self.key = key
        self._snapshot: Optional[RuntimeSettingsSnapshot] = None

    async def _fetch(self, db: AsyncSession) -> Optional[GlobalSettings]:
        result = await db.execute(
            select(GlobalSettings)
            .where(GlobalSettings.key == self.key)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def load(self, db: AsyncSession) -> RuntimeSettingsSnapshot:
        """Read the settings row, creating it on first use."""
        row = await self._fetch(db)

        if row is None:
            db.add(GlobalSettings(key=self.key))
            try:
                await db.commit()
                logger.info("Created global settings", key=self.key)
            except IntegrityError:
                # Another process created it first
                await db.rollback()
            row = await self._fetch(db)

        self._snapshot = RuntimeSettingsSnapshot.from_row(row)
        return self._snapshot

    def get(self) -> RuntimeSettingsSnapshot:
        """Current snapshot."""
        if self._snapshot is None:
            raise RuntimeError("Runtime settings not loaded")
        return self._snapshot

    async def refresh(self, db: AsyncSession) -> RuntimeSettingsSnapshot:
        """Re-read the settings row."""
        snapshot = await self.load(db)
        logger.info("Refreshed runtime settings", version=snapshot.version)
        return snapshot

    async def _update(self, db: AsyncSession, merge) -> RuntimeSettingsSnapshot:
        await self.load(db)
        row = await merge_with_retry(db, GlobalSettings, GlobalSettings.key == self.key, merge)
        self._snapshot = RuntimeSettingsSnapshot.from_row(row)
        return self._snapshot

    async def update_trending_topics(
        self,
        db: AsyncSession,
        topics: Sequence[str],
        topics_with_sources: Optional[Mapping[str, Any]] = None,
    ) -> RuntimeSettingsSnapshot:
        """Replace the trending topics list."""

        def merge(row: GlobalSettings) -> None:
            row.trending_topics = list(topics)
            row.trending_topics_with_sources = dict(topics_with_sources or {})
            row.last_trending_update = utcnow()

        snapshot = await self._update(db, merge)
        logger.info("Updated trending topics", count=len(snapshot.trending_topics))
        return snapshot

    async def update_global_news_sources(
        self,
        db: AsyncSession,
        sources: Optional[Sequence[str]],
        enabled: bool = True,
    ) -> RuntimeSettingsSnapshot:
        """Replace the global news source list and its switch."""

        def merge(row: GlobalSettings) -> None:
            row.global_news_sources = list(sources or [])
            row.global_news_sources_enabled = enabled

        snapshot = await self._update(db, merge)
        logger.info(
            "Updated global news sources",
            count=len(snapshot.global_news_sources),
            enabled=snapshot.global_news_sources_enabled,
        )
        return snapshot
