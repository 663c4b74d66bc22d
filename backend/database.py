"""Database engine and session management."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import ColumnElement, case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from backend.config import settings
from backend.exceptions import StorageFailureError

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.database_url, echo=settings.debug)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# For callers: re-runs a whole unit of work, with a fresh session, after a storage failure
retry_storage = retry(
    retry=retry_if_exception_type(StorageFailureError),
    stop=stop_after_attempt(settings.storage_retry_attempts),
    wait=wait_exponential(multiplier=0.05, max=1),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def count_where(condition: ColumnElement[bool]) -> ColumnElement[int]:
    """SUM(CASE WHEN condition THEN 1 ELSE 0 END), zero over an empty set."""
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


async def get_session() -> AsyncSession:  # type: ignore[misc]
    """Yield a database session for FastAPI dependency injection."""
    async with async_session() as session:
        yield session


@asynccontextmanager
async def storage_errors(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Roll back and re-raise database errors as StorageFailureError.

    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Write conflict during %s: %s", operation, e.orig)
        raise StorageFailureError(f"Write conflict during {operation}") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Storage failure during %s: %s", operation, e)
        raise StorageFailureError(f"Storage unavailable during {operation}") from e
