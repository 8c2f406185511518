"""Async SQLAlchemy engine and per-request sessions.

Only the wingman/bot persistence tables live here; the engine is created
lazily from settings so importing models never opens a connection.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from wingman.config import get_settings

logger = logging.getLogger("db")


class Base(DeclarativeBase):
    """Declarative base shared by users, conversations, messages and summaries."""


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is not None:
        return _engine

    settings = get_settings()
    options: dict[str, Any] = {"pool_pre_ping": True}
    if settings.database_disable_pooling or settings.database_url.startswith("sqlite"):
        options["poolclass"] = NullPool
    else:
        options["pool_size"] = 5
        options["max_overflow"] = 10

    _engine = create_async_engine(settings.database_url, **options)
    logger.info(
        "Database engine created",
        extra={
            "service": "db",
            "metadata": {
                "database": settings._redact_url(settings.database_url),
                "pooled": "poolclass" not in options,
            },
        },
    )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(create_tables: bool = False) -> None:
    """Check connectivity at startup, optionally creating missing tables.

    An unreachable database is logged but does not stop the service:
    generation can still run and the persistence paths degrade on their own.
    """
    import wingman.models  # noqa: F401  (registers tables on Base.metadata)

    try:
        async with get_engine().begin() as conn:
            if create_tables:
                await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Database unavailable at startup",
            extra={"service": "db", "error": str(exc)},
        )
        return
    logger.info(
        "Database ready",
        extra={"service": "db", "metadata": {"tables": sorted(Base.metadata.tables), "create_tables": create_tables}},
    )


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine disposed", extra={"service": "db"})


__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "get_session",
    "init_db",
    "close_db",
]
