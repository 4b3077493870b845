# src/atlas/utils/database.py
from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from src.atlas.config import settings
from src.atlas.utils.errors import Unavailable

# Configure logging for better error tracing
logger = logging.getLogger(__name__)

# Driver/pool failures that mean "the store is not reachable right now"
STORE_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)

T = TypeVar("T")


def _engine_kwargs(url: str) -> dict[str, Any]:
    kw: dict[str, Any] = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        # SQLite has no server-side pool sizing or connect timeout argument
        return kw
    kw.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_TIMEOUT,
        connect_args={"timeout": settings.DB_TIMEOUT, "command_timeout": settings.DB_OPERATION_TIMEOUT},
    )
    return kw


def build_engine(url: str):
    try:
        eng = create_async_engine(url, **_engine_kwargs(url))
    except SQLAlchemyError as e:
        logger.error("Error creating database engine: %s", e)
        raise
    logger.info("Database engine ready for %s", eng.url.render_as_string(hide_password=True))
    return eng


def build_sessionmaker(eng) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        eng,
        class_=AsyncSession,
        autoflush=False,          # To avoid flushing automatically
        expire_on_commit=False,   # Don't expire objects after commit
    )


engine = build_engine(settings.database_url)
AsyncSessionLocal = build_sessionmaker(engine)

# Base class for SQLAlchemy ORM models
Base = declarative_base()


async def get_db():
    """FastAPI dependency: one session per request, closed (and rolled back) afterwards."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_models(eng=None) -> None:
    # Import so every table is registered on Base.metadata
    from src.atlas import models  # noqa: F401

    async with (eng or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def store_operation(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """
    Bound a store call by DB_OPERATION_TIMEOUT and turn driver/pool failures
    into Unavailable so callers never hang on an unreachable database.
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.wait_for(fn(*args, **kwargs), timeout=settings.DB_OPERATION_TIMEOUT)
        except asyncio.TimeoutError as exc:
            logger.error("Store operation %s timed out after %ss", fn.__name__, settings.DB_OPERATION_TIMEOUT)
            raise Unavailable(f"Zone store did not answer within {settings.DB_OPERATION_TIMEOUT}s") from exc
        except STORE_UNAVAILABLE_ERRORS as exc:
            logger.error("Store operation %s failed: %s", fn.__name__, exc)
            raise Unavailable() from exc

    return wrapper
