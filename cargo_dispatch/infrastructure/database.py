"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.  The engine
is built explicitly by the application factory (or a test) and handed to the
services; nothing here holds a process-wide connection.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm.exc import StaleDataError

from cargo_dispatch.config import Settings
from cargo_dispatch.domain.errors import ConflictError, StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


def create_engine(settings: Settings) -> AsyncEngine:
    kwargs = {}
    if not settings.database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
    return create_async_engine(settings.database_url, echo=False, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on success, rollback on any error.

    Storage failures surface as ``StorageError``; a lost optimistic-lock race
    on an order row surfaces as ``ConflictError``.  Domain errors raised by
    the caller pass through unchanged.
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except StaleDataError as exc:
        logger.warning("stale_write: %s", exc)
        raise ConflictError("Order was modified concurrently, please retry") from exc
    except SQLAlchemyError as exc:
        logger.exception("storage_error")
        raise StorageError("Storage is temporarily unavailable") from exc
