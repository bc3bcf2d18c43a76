"""
Topic Summary Cache Model

Pre-generated summaries per topic, shared across all users.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fetchnews.db.connection import Base
from fetchnews.db.types import UTCDateTime, utcnow


class TopicSummaryCache(Base):
    """
    One reusable generated summary for a topic.

    Entries are never mutated. Several may coexist for the same topic
    (different word counts, countries, or successive refreshes); lookups
    prefer the newest. Expired rows are logically absent until removed.
    """

    __tablename__ = "topic_summary_cache"
    __table_args__ = (
        Index("ix_topic_summary_cache_lookup", "topic", "word_count", "country", "expires_at"),
        CheckConstraint("expires_at > created_at", name="ck_topic_summary_cache_expiry"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Lower-cased, trimmed
    topic: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    summary: Mapped[str] = mapped_column(Text, nullable=False)
    word_count: Mapped[int] = mapped_column(Integer, default=200, nullable=False)
    country: Mapped[str] = mapped_column(String(8), default="us", nullable=False)

    # enhancedTags, sentiment, keyEntities, importance
    summary_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        default=dict,
        nullable=False,
    )
    source_articles: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    article_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<TopicSummaryCache(topic='{self.topic}', word_count={self.word_count}, country='{self.country}')>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert cache entry to dictionary."""
        return {
            "id": str(self.id),
            "topic": self.topic,
            "summary": self.summary,
            "word_count": self.word_count,
            "country": self.country,
            "metadata": dict(self.summary_metadata or {}),
            "source_articles": list(self.source_articles or []),
            "article_count": self.article_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if cache entry has expired."""
        return (now or utcnow()) >= self.expires_at
