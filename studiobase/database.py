"""
Database

Async SQLAlchemy engine, session factory and declarative base.
"""

import logging
from collections.abc import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from studiobase.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLite honour SAVEPOINT.

    The sqlite3 driver defers BEGIN until the first DML statement, which
    breaks nested transactions. Turn that off and emit BEGIN ourselves.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)
if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for all document tables."""


async def init_db() -> None:
    """Create tables and indexes that do not exist yet."""
    # Import models so every table is registered on the metadata
    import studiobase.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured (%d tables)", len(Base.metadata.tables))


async def close_db() -> None:
    """Dispose of pooled connections."""
    await engine.dispose()


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding a database session.

    Stores commit their own writes; anything left pending when the
    request fails is rolled back here.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
