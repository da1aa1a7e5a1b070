"""Device-local history of generation attempts.

One flat collection keyed by record id. Records are written once (upsert by
id), listed newest-first, and removed only individually or all at once.
Every operation runs in its own session, so concurrent callers never share a
transaction.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from imagestudio.adapters.base import GeneratedImage
from imagestudio.constants import DEFAULT_HISTORY_LIMIT
from imagestudio.db import (
    _get_engine,
    _get_session_factory,
    create_engine,
    create_session_factory,
    init_db,
)
from imagestudio.models import HistoryEntry

logger = logging.getLogger(__name__)


def new_record_id() -> str:
    return uuid.uuid4().hex


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class HistoryRecord:
    """One generation attempt: either a success with images or a failure with an error."""

    id: str
    prompt: str
    model: str
    images: list[GeneratedImage] = field(default_factory=list)
    error: str | None = None
    created_at: int = field(default_factory=now_millis)

    def __post_init__(self) -> None:
        if self.images and self.error:
            raise ValueError("History record cannot have both images and an error")
        if not self.images and not self.error:
            raise ValueError("History record needs either images or an error")

    @property
    def succeeded(self) -> bool:
        return not self.error

    @classmethod
    def success(cls, prompt: str, model: str, images: list[GeneratedImage]) -> "HistoryRecord":
        return cls(id=new_record_id(), prompt=prompt, model=model, images=list(images))

    @classmethod
    def failure(cls, prompt: str, model: str, error: str) -> "HistoryRecord":
        return cls(id=new_record_id(), prompt=prompt, model=model, error=error or "Unknown error")


def _to_row(record: HistoryRecord) -> HistoryEntry:
    return HistoryEntry(
        id=record.id,
        prompt=record.prompt,
        model=record.model,
        images=[image.to_dict() for image in record.images],
        error=record.error,
        created_at=record.created_at,
    )


def _from_row(row: HistoryEntry) -> HistoryRecord:
    return HistoryRecord(
        id=row.id,
        prompt=row.prompt,
        model=row.model,
        images=[GeneratedImage.from_dict(item) for item in row.images or []],
        error=row.error,
        created_at=row.created_at,
    )


class HistoryStore:
    """Async SQLite-backed history store.

    Tables are created lazily on first use.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        engine: AsyncEngine | None = None,
    ):
        """Initialize history store.

        Args:
            session_factory: Session factory to use. Defaults to the cached
                factory for HISTORY_DB_URL.
            engine: Engine used to create tables. Defaults to the cached engine.
        """
        self._engine = engine or _get_engine()
        self._session_factory = session_factory or _get_session_factory()
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    @classmethod
    def from_url(cls, url: str) -> "HistoryStore":
        """Create a store with its own engine for a database URL."""
        engine = create_engine(url)
        return cls(session_factory=create_session_factory(engine), engine=engine)

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if not self._schema_ready:
                await init_db(self._engine)
                self._schema_ready = True

    async def add(self, record: HistoryRecord) -> None:
        """Insert a record, overwriting any existing record with the same id."""
        await self._ensure_schema()
        async with self._session_factory() as session:
            await session.merge(_to_row(record))
            await session.commit()
        logger.debug(f"Stored history record {record.id}")

    async def delete(self, record_id: str) -> None:
        """Remove one record. Unknown ids are ignored."""
        await self._ensure_schema()
        async with self._session_factory() as session:
            await session.execute(delete(HistoryEntry).where(HistoryEntry.id == record_id))
            await session.commit()

    async def clear(self) -> None:
        """Remove every record."""
        await self._ensure_schema()
        async with self._session_factory() as session:
            await session.execute(delete(HistoryEntry))
            await session.commit()
        logger.info("Cleared history")

    async def close(self) -> None:
        """Dispose of the underlying engine."""
        await self._engine.dispose()

    # Defined last: the method name shadows the builtin inside the class body
    async def list(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[HistoryRecord]:
        """Return up to ``limit`` records, newest first.

        Ties on created_at are ordered by id descending.
        """
        if limit <= 0:
            return []
        await self._ensure_schema()
        async with self._session_factory() as session:
            result = await session.execute(
                select(HistoryEntry)
                .order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
                .limit(limit)
            )
            return [_from_row(row) for row in result.scalars().all()]


class HistoryRecorder:
    """Dispatches history writes as background tasks.

    ``record()`` never awaits the write and never raises for storage
    failures: a failed write is logged at WARNING and dropped. Use
    ``drain()`` to wait for outstanding writes (e.g. before process exit).
    """

    def __init__(self, store: HistoryStore):
        self._store = store
        self._tasks: set[asyncio.Task[None]] = set()

    def record(self, record: HistoryRecord) -> asyncio.Task[None]:
        """Schedule a write without awaiting it. Requires a running event loop."""
        task = asyncio.create_task(self._write(record))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _write(self, record: HistoryRecord) -> None:
        try:
            await self._store.add(record)
        except Exception as e:
            logger.warning(f"Failed to store history record {record.id}: {e}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks)
