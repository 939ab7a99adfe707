"""
Cache Store - durable key-value contract keyed by source id.

============================================================
CONTRACT
============================================================
- read(source_id)         -> CacheEntry | None
- write(source_id, entry) -> True on success, False on failure

Reads and writes are atomic per key: an entry is replaced whole and
no partial entry is ever observable. A failed write leaves the previous
entry in place (last successful write wins). No ordering guarantee
across different source ids.

============================================================
ADAPTERS
============================================================
- InMemoryCacheStore: process-local dict of immutable entries
- SqlCacheStore: SQLAlchemy table, one row per source

============================================================
"""

import asyncio
import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import nullcontext
from typing import Iterable, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.clock import from_epoch, to_epoch_ms
from news_sources.models import NewsItem

from .exceptions import CacheError
from .models import CacheEntry, EntryStatus
from .orm import Base, CachedSource


logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Abstract async key-value store for cache entries."""

    @abstractmethod
    async def read(self, source_id: str) -> Optional[CacheEntry]:
        """
        Read the entry for a source.

        Returns None on a cold cache.

        Raises:
            CacheError: store could not be read
        """
        pass

    @abstractmethod
    async def write(self, source_id: str, entry: CacheEntry) -> bool:
        """Replace the entry for a source. Returns False on failure."""
        pass

    async def read_many(self, source_ids: Iterable[str]) -> dict[str, CacheEntry]:
        """Read several entries; missing ones are omitted."""
        entries: dict[str, CacheEntry] = {}
        for source_id in source_ids:
            entry = await self.read(source_id)
            if entry is not None:
                entries[source_id] = entry
        return entries

    async def close(self) -> None:
        """Release resources. Override if needed."""
        pass


# ============================================================
# IN-MEMORY ADAPTER
# ============================================================

class InMemoryCacheStore(CacheStore):
    """
    Process-local store.

    Entries are frozen dataclasses and a dict assignment replaces the
    whole value, so readers see either the old or the new entry.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def read(self, source_id: str) -> Optional[CacheEntry]:
        return self._entries.get(source_id)

    async def write(self, source_id: str, entry: CacheEntry) -> bool:
        self._entries[source_id] = entry
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


# ============================================================
# SQL ADAPTER
# ============================================================

def _encode_items(items: Iterable[NewsItem]) -> str:
    return json.dumps([item.to_dict() for item in items], ensure_ascii=False)


def _decode_row(row: CachedSource) -> CacheEntry:
    items = tuple(NewsItem.from_dict(d) for d in json.loads(row.data))
    return CacheEntry(
        source_id=row.source_id,
        items=items,
        fetched_at=from_epoch(row.updated),
        status=EntryStatus(row.status),
    )


class SqlCacheStore(CacheStore):
    """
    SQLAlchemy-backed store.

    Each write is one transaction that upserts the row for the source.
    Synchronous engine work runs in a worker thread so the event loop
    never blocks on the database.

    Usage:
        store = SqlCacheStore("sqlite:///news_cache.db")
        await store.write("hackernews", entry)
        entry = await store.read("hackernews")
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        echo: bool = False,
    ) -> None:
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = self._create_engine(database_url, echo)

        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        # A StaticPool shares one connection, so calls from worker threads are serialized.
        self._lock = threading.Lock() if isinstance(engine.pool, StaticPool) else None

        Base.metadata.create_all(engine)
        logger.info(f"SQL cache store ready ({engine.url.render_as_string(hide_password=True)})")

    @staticmethod
    def _create_engine(database_url: str, echo: bool) -> Engine:
        if database_url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
            return create_engine(database_url, echo=echo, **kwargs)
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    def _guard(self):
        return self._lock if self._lock is not None else nullcontext()

    def _read_sync(self, source_id: str) -> Optional[CacheEntry]:
        with self._guard(), self._session_factory() as session:
            row = session.get(CachedSource, source_id)
            if row is None:
                return None
            return _decode_row(row)

    def _write_sync(self, source_id: str, entry: CacheEntry) -> None:
        with self._guard(), self._session_factory() as session:
            with session.begin():
                session.merge(CachedSource(
                    source_id=source_id,
                    updated=to_epoch_ms(entry.fetched_at),
                    data=_encode_items(entry.items),
                    status=entry.status.value,
                ))

    async def read(self, source_id: str) -> Optional[CacheEntry]:
        try:
            return await asyncio.to_thread(self._read_sync, source_id)
        except SQLAlchemyError as e:
            raise CacheError(f"Cache read failed: {e}", source_name=source_id) from e
        except (ValueError, KeyError, TypeError) as e:
            raise CacheError(f"Corrupt cache row: {e}", source_name=source_id) from e

    async def write(self, source_id: str, entry: CacheEntry) -> bool:
        try:
            await asyncio.to_thread(self._write_sync, source_id, entry)
        except SQLAlchemyError as e:
            logger.warning(f"[{source_id}] Cache write failed: {e}")
            return False
        except (TypeError, ValueError) as e:
            logger.warning(f"[{source_id}] Cache write failed, items not serializable: {e}")
            return False
        return True

    async def close(self) -> None:
        self._engine.dispose()


def create_store(database_url: Optional[str] = None) -> CacheStore:
    """SqlCacheStore when a database URL is configured, in-memory otherwise."""
    if database_url:
        return SqlCacheStore(database_url)
    logger.info("DATABASE_URL not set, using in-memory cache store")
    return InMemoryCacheStore()
