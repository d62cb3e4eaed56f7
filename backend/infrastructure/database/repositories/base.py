"""Session scoping shared by the SQLAlchemy repositories."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.domain.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

# Failures that mean "database unreachable" rather than "bad statement"
_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    Open a short-lived session, translating connectivity failures.

    Raises:
        StoreUnavailableError: If the database cannot be reached
    """
    try:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
    except _UNAVAILABLE_ERRORS as e:
        logger.error("Content store unavailable: %s", e)
        raise StoreUnavailableError("Content store is unavailable") from e
