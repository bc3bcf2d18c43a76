"""
Conflict-safe partial updates.

Read-merge-write against rows that carry a SQLAlchemy ``version_id_col``.
A concurrent writer bumps the version, our flush matches zero rows and
raises ``StaleDataError``; the row is then re-read and the merge re-applied.
"""

from typing import Any, Callable, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_none,
)

from fetchnews.config.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")


class ConcurrentUpdateError(Exception):
    """Raised when a row kept changing underneath every merge attempt."""
    pass


async def merge_with_retry(
    db: AsyncSession,
    model: Type[ModelT],
    where: Any,
    merge: Callable[[ModelT], None],
    max_attempts: int = 3,
) -> Optional[ModelT]:
    """
    Apply ``merge`` to the row matching ``where`` and commit.

    Args:
        db: Database session.
        model: Mapped class with a version column.
        where: Filter clause selecting exactly one row.
        merge: Mutates the freshly loaded row in place.
        max_attempts: Attempts before giving up.

    Returns:
        The updated row, or None when no row matches.

    Raises:
        ConcurrentUpdateError: Every attempt lost the race.
    """
    query = select(model).where(where).execution_options(populate_existing=True)

    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(StaleDataError),
            stop=stop_after_attempt(max_attempts),
            wait=wait_none(),
        ):
            with attempt:
                row = (await db.execute(query)).scalar_one_or_none()
                if row is None:
                    return None

                merge(row)
                try:
                    await db.commit()
                except StaleDataError:
                    await db.rollback()
                    logger.debug(
                        "Version conflict, re-merging",
                        model=model.__name__,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise
                return row
    except RetryError as e:
        raise ConcurrentUpdateError(
            f"{model.__name__} update conflicted {max_attempts} times"
        ) from e

    return None
