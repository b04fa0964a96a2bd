"""Async database engine and session factory."""

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from liftlog.core.config import Settings, get_settings

settings = get_settings()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ships with foreign keys off; cascades and restrictions need them on."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # The driver would otherwise defer BEGIN until the first write; _begin_immediate issues it
    dbapi_connection.isolation_level = None


def _begin_immediate(conn):
    """Take SQLite's write lock when the transaction starts, so transactions serialize."""
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, *, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine; SQLite connections get foreign keys and immediate transactions."""
    engine = create_async_engine(url, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        event.listen(engine.sync_engine, "begin", _begin_immediate)
    return engine


def _engine_from_settings(cfg: Settings) -> AsyncEngine:
    if cfg.is_sqlite:
        return build_engine(cfg.async_database_url, echo=cfg.debug)
    return build_engine(
        cfg.async_database_url,
        echo=cfg.debug,
        pool_size=cfg.database_pool_size,
        max_overflow=cfg.database_max_overflow,
    )


engine = _engine_from_settings(settings)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields an async DB session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
