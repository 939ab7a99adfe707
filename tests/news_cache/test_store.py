"""
Cache Store Tests.

============================================================
PURPOSE
============================================================
Both adapters honor the same contract: whole-entry replacement per key,
None on a cold cache, write failures reported as False.

============================================================
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from news_cache.exceptions import CacheError
from news_cache.models import CacheEntry, EntryStatus
from news_cache.orm import Base, CachedSource
from news_cache.store import InMemoryCacheStore, SqlCacheStore, create_store
from news_sources.models import NewsItem


FETCHED_AT = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_entry(source_id="s1", count=3, fetched_at=FETCHED_AT):
    items = tuple(
        NewsItem(
            id=str(i),
            title=f"Story {i}",
            url=f"https://example.com/{i}",
            mobile_url=f"https://m.example.com/{i}" if i == 0 else None,
            publication_time=FETCHED_AT - timedelta(hours=i),
            extra={"info": f"{i} points"},
        )
        for i in range(count)
    )
    return CacheEntry(source_id=source_id, items=items, fetched_at=fetched_at)


def memory_engine():
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryCacheStore()
    return SqlCacheStore("sqlite://")


# ============================================================
# CONTRACT (both adapters)
# ============================================================

class TestStoreContract:
    """Tests shared by every adapter."""

    @pytest.mark.asyncio
    async def test_cold_cache(self, store):
        assert await store.read("s1") is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, store):
        entry = make_entry()

        assert await store.write("s1", entry) is True
        read = await store.read("s1")

        assert read == entry
        assert read.status == EntryStatus.FRESH

    @pytest.mark.asyncio
    async def test_write_replaces_whole_entry(self, store):
        await store.write("s1", make_entry(count=5))
        newer = make_entry(count=2, fetched_at=FETCHED_AT + timedelta(minutes=10))

        await store.write("s1", newer)
        read = await store.read("s1")

        assert len(read.items) == 2
        assert read.fetched_at == newer.fetched_at

    @pytest.mark.asyncio
    async def test_empty_entry(self, store):
        entry = make_entry(count=0)
        await store.write("s1", entry)

        read = await store.read("s1")

        assert read is not None
        assert read.items == ()

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, store):
        await store.write("s1", make_entry("s1", count=1))
        await store.write("s2", make_entry("s2", count=2))

        entries = await store.read_many(["s1", "s2", "s3"])

        assert set(entries) == {"s1", "s2"}
        assert len(entries["s2"].items) == 2


# ============================================================
# SQL ADAPTER
# ============================================================

class TestSqlCacheStore:
    """Tests specific to SqlCacheStore."""

    def test_requires_url_or_engine(self):
        with pytest.raises(ValueError):
            SqlCacheStore()

    @pytest.mark.asyncio
    async def test_row_layout(self):
        engine = memory_engine()
        store = SqlCacheStore(engine=engine)
        await store.write("s1", make_entry(count=1))

        with Session(engine) as session:
            row = session.get(CachedSource, "s1")
            assert row.updated == 1767268800000
            assert row.status == "fresh"
            assert '"id": "0"' in row.data

    @pytest.mark.asyncio
    async def test_corrupt_row_raises_cache_error(self):
        engine = memory_engine()
        store = SqlCacheStore(engine=engine)
        with Session(engine) as session, session.begin():
            session.add(CachedSource(source_id="s1", updated=1767268800000, data="{not json", status="fresh"))

        with pytest.raises(CacheError):
            await store.read("s1")

    @pytest.mark.asyncio
    async def test_missing_table(self):
        engine = memory_engine()
        store = SqlCacheStore(engine=engine)
        Base.metadata.drop_all(engine)

        assert await store.write("s1", make_entry()) is False
        with pytest.raises(CacheError):
            await store.read("s1")

    @pytest.mark.asyncio
    async def test_unserializable_extra_reports_write_failure(self):
        store = SqlCacheStore(engine=memory_engine())
        item = NewsItem(id="a", title="A", url="https://example.com/a", extra={"seen": FETCHED_AT})

        assert await store.write("s1", CacheEntry("s1", (item,), FETCHED_AT)) is False
        assert await store.read("s1") is None

    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'cache.db'}"
        first = SqlCacheStore(url)
        await first.write("s1", make_entry())
        await first.close()

        second = SqlCacheStore(url)
        read = await second.read("s1")
        await second.close()

        assert read == make_entry()


def test_create_store():
    assert isinstance(create_store(None), InMemoryCacheStore)
    assert isinstance(create_store("sqlite://"), SqlCacheStore)
