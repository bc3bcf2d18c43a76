"""
Global Settings Model

Single-row table holding admin-managed, process-wide settings.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fetchnews.db.connection import Base
from fetchnews.db.types import UTCDateTime, utcnow

GLOBAL_SETTINGS_KEY = "global"


class GlobalSettings(Base):
    """
    The one settings row, looked up by ``key``.

    ``version_id`` enables optimistic concurrency: an UPDATE against a row
    someone else changed since we read it matches nothing and raises.
    """

    __tablename__ = "global_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        default=GLOBAL_SETTINGS_KEY,
    )

    trending_topics: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    trending_topics_with_sources: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    last_trending_update: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    global_news_sources: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    global_news_sources_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<GlobalSettings(key='{self.key}', version={self.version_id})>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "trending_topics": list(self.trending_topics or []),
            "trending_topics_with_sources": dict(self.trending_topics_with_sources or {}),
            "last_trending_update": self.last_trending_update.isoformat() if self.last_trending_update else None,
            "global_news_sources": list(self.global_news_sources or []),
            "global_news_sources_enabled": self.global_news_sources_enabled,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version_id,
        }
