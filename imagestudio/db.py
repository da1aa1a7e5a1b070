"""
Database connection and session management for the local history store.
"""

from functools import lru_cache
from pathlib import Path

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from imagestudio.config import settings
from imagestudio.models import Base


def _prepare_sqlite_url(url: str) -> URL:
    """Expand ~ in a file-backed SQLite URL and create its parent directory."""
    parsed = make_url(url)
    if not parsed.get_backend_name().startswith("sqlite"):
        return parsed
    database = parsed.database
    if not database or database == ":memory:":
        return parsed
    path = Path(database).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return parsed.set(database=str(path))


def create_engine(url: str) -> AsyncEngine:
    """Create an async engine for a history database URL."""
    return create_async_engine(_prepare_sqlite_url(url), echo=settings.debug)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@lru_cache
def _get_engine() -> AsyncEngine:
    """Lazily create async engine (cached)."""
    return create_engine(settings.history_db_url)


@lru_cache
def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create session factory (cached)."""
    return create_session_factory(_get_engine())


async def init_db(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
