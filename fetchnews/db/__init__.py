"""
Database package.

Exports database utilities and base classes.
"""

from fetchnews.db.connection import (
    Base,
    async_session_factory,
    close_db,
    create_session_factory,
    engine,
    get_db_context,
    get_db_session,
    init_db,
)
from fetchnews.db.transactions import ConcurrentUpdateError, merge_with_retry

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "create_session_factory",
    "get_db_session",
    "get_db_context",
    "init_db",
    "close_db",
    "merge_with_retry",
    "ConcurrentUpdateError",
]
