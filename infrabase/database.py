"""SQLAlchemy engines (sync for writes, async for reads), session factories, and base model."""

from __future__ import annotations

from sqlalchemy import Connection, Engine, create_engine, event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import NullPool

from infrabase.config import Settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ships with FK enforcement off; ON DELETE CASCADE needs it."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_kwargs(url: str, settings: Settings) -> dict:
    if _is_sqlite(url):
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


def make_sync_engine(settings: Settings) -> Engine:
    """Blocking engine backing the transactional write path."""
    url = settings.database_url_sync
    kwargs = _engine_kwargs(url, settings)
    if not _is_sqlite(url):
        kwargs["isolation_level"] = "READ COMMITTED"
    engine = create_engine(url, echo=False, **kwargs)
    if _is_sqlite(url):
        _enable_sqlite_foreign_keys(engine)
    return engine


def make_async_engine(settings: Settings) -> AsyncEngine:
    """Non-blocking engine backing the concurrent read path."""
    url = settings.database_url
    kwargs = _engine_kwargs(url, settings)
    if _is_sqlite(url):
        # A pooled aiosqlite connection is bound to the loop that opened it
        kwargs["poolclass"] = NullPool
    engine = create_async_engine(url, echo=False, **kwargs)
    if _is_sqlite(url):
        _enable_sqlite_foreign_keys(engine.sync_engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)


def make_async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def init_db(bind: Engine | Connection) -> None:
    """Create every inventory table that does not exist yet."""
    import infrabase.models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind)
