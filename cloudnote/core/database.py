"""
Database Configuration.

SQLAlchemy async engine and session factory creation for both runtime
targets. The local target is a single SQLite file opened in WAL mode
with a busy timeout; the managed target is PostgreSQL with a pooled
asyncpg engine. Nothing is created at import time.
"""

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cloudnote.core.config import AppConfig, get_app_config, get_database_url, resolve_project_path
from cloudnote.core.logging import get_logger

logger = get_logger(__name__)


def _apply_sqlite_pragmas(busy_timeout_ms: int):
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return _on_connect


def create_sqlite_engine(url: str, busy_timeout_ms: int = 5000) -> AsyncEngine:
    """
    Create an async engine for a SQLite file.

    Args:
        url: sqlite+aiosqlite URL
        busy_timeout_ms: How long a writer waits on a locked database

    Returns:
        AsyncEngine with WAL and busy_timeout set on every connection
    """
    engine = create_async_engine(
        url,
        connect_args={"timeout": busy_timeout_ms / 1000},
    )
    event.listen(engine.sync_engine, "connect", _apply_sqlite_pragmas(busy_timeout_ms))
    return engine


def create_engine_for_backend(app_config: AppConfig | None = None) -> AsyncEngine:
    """
    Create the async engine for the configured storage backend.

    Returns:
        SQLAlchemy async engine instance
    """
    app_config = app_config or get_app_config()
    db_config = app_config.database
    url = get_database_url(app_config)

    if db_config.storage.backend == "local":
        sqlite_path = resolve_project_path(db_config.sqlite.path)
        sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_sqlite_engine(url, db_config.sqlite.busy_timeout_ms)
        logger.debug("Database engine created", extra={"backend": "sqlite", "path": str(sqlite_path)})
        return engine

    pg = db_config.postgres
    engine = create_async_engine(
        url,
        pool_size=pg.pool_size,
        max_overflow=pg.max_overflow,
        pool_timeout=pg.pool_timeout,
        pool_recycle=pg.pool_recycle,
        pool_pre_ping=True,
        echo=pg.echo,
    )
    logger.debug("Database engine created", extra={"backend": "postgresql", "host": pg.host})
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create a session factory bound to the engine.

    Returns:
        SQLAlchemy async session factory
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    from cloudnote.models.base import Base

    # Register every mapped table on the metadata
    import cloudnote.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured", extra={"tables": sorted(Base.metadata.tables)})
