"""Tests for the key-value storage backends."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.dialects import mysql
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from pricecomparer.db.base import Base
from pricecomparer.db.models.core import KeyValueEntry
from pricecomparer.services import storage as storage_module
from pricecomparer.services.query_state import QueryStateManager
from pricecomparer.services.storage import (
    DatabaseStore,
    InMemoryStore,
    RedisStore,
    build_store,
    scoped_key,
)


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value.encode("utf-8")

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_in_memory_store_roundtrip():
    store = InMemoryStore()
    assert await store.get("lastQuery") is None

    await store.set("lastQuery", "iphone")
    await store.set("lastQuery", "pixel")

    assert await store.get("lastQuery") == "pixel"


@pytest.mark.asyncio
async def test_redis_store_decodes_bytes():
    client = FakeRedis()
    store = RedisStore(client)

    await store.set("lastQuery", "café")
    assert client.data["lastQuery"] == "café".encode("utf-8")
    assert await store.get("lastQuery") == "café"
    assert await store.get("missing") is None

    await store.close()
    assert client.closed is True


@pytest.mark.asyncio
async def test_database_store_upserts_single_row(session, session_scope):
    store = DatabaseStore(session_scope)

    assert await store.get("lastQuery") is None
    await store.set("lastQuery", "iphone")
    await store.set("lastQuery", "iphone 15")

    assert await store.get("lastQuery") == "iphone 15"
    result = await session.execute(select(KeyValueEntry))
    rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].key == "lastQuery"


@pytest.mark.asyncio
async def test_database_store_concurrent_sets_keep_one_row(session, session_scope):
    store = DatabaseStore(session_scope)

    await asyncio.gather(store.set("lastQuery", "iphone"), store.set("lastQuery", "pixel"))

    result = await session.execute(select(KeyValueEntry))
    rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].value == "pixel"


@pytest_asyncio.fixture
async def sqlite_sessions(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/kv.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(bind=engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_database_store_overlapping_submits_keep_newest(sqlite_sessions):
    store = DatabaseStore(sqlite_sessions)
    manager = QueryStateManager(store)

    await manager.submit("first")
    await manager.submit("second")
    await manager.drain()

    assert await QueryStateManager(store).restore_last() == "second"
    async with sqlite_sessions() as session:
        result = await session.execute(select(KeyValueEntry))
        assert [row.value for row in result.scalars()] == ["second"]


def test_mysql_upsert_uses_on_duplicate_key_update():
    stmt = storage_module._upsert("mysql", "lastQuery", "iphone")

    sql = str(stmt.compile(dialect=mysql.dialect()))

    assert "ON DUPLICATE KEY UPDATE" in sql


def test_upsert_rejects_unknown_dialect():
    with pytest.raises(ValueError):
        storage_module._upsert("oracle", "lastQuery", "iphone")


def test_scoped_key():
    assert scoped_key("lastQuery", None) == "lastQuery"
    assert scoped_key("lastQuery", 42) == "lastQuery:42"


@pytest.mark.asyncio
async def test_build_store_defaults_to_memory():
    settings = SimpleNamespace(storage=SimpleNamespace(backend="memory"))
    store = await build_store(settings)
    assert isinstance(store, InMemoryStore)


@pytest.mark.asyncio
async def test_build_store_redis_requires_url():
    settings = SimpleNamespace(
        storage=SimpleNamespace(backend="redis"),
        redis=SimpleNamespace(url=None),
    )
    with pytest.raises(ValueError):
        await build_store(settings)


@pytest.mark.asyncio
async def test_build_store_redis_uses_url(monkeypatch):
    captured = {}

    def fake_from_url(url, **kwargs):
        captured["url"] = url
        captured["kwargs"] = kwargs
        return FakeRedis()

    monkeypatch.setattr(storage_module.aioredis, "from_url", fake_from_url)
    settings = SimpleNamespace(
        storage=SimpleNamespace(backend="redis"),
        redis=SimpleNamespace(url="redis://localhost:6379/0"),
    )

    store = await build_store(settings)

    assert isinstance(store, RedisStore)
    assert captured["url"] == "redis://localhost:6379/0"
    assert captured["kwargs"] == {"decode_responses": True}
