"""Async key-value stores used to persist the last submitted query."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from redis import asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from pricecomparer.config import AppSettings
from pricecomparer.db.models.core import KeyValueEntry, utc_now
from pricecomparer.db.session import Database
from pricecomparer.logging import logger

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class KeyValueStore(ABC):
    """Best-effort async string store."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class InMemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value


class RedisStore(KeyValueStore):
    """Store backed by ``redis.asyncio``; values are decoded as UTF-8."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        value = await self._client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        await self._client.set(key, value)

    async def close(self) -> None:
        await self._client.aclose()


class DatabaseStore(KeyValueStore):
    """Store backed by the ``key_value_entries`` table.

    ``session_scope`` yields an ``AsyncSession``; writes commit inside it.
    """

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    async def get(self, key: str) -> str | None:
        async with self._session_scope() as session:
            entry = await self._find(session, key)
            return entry.value if entry is not None else None

    async def set(self, key: str, value: str) -> None:
        async with self._session_scope() as session:
            dialect = session.get_bind().dialect.name
            await session.execute(_upsert(dialect, key, value))
            await session.commit()

    @staticmethod
    async def _find(session: AsyncSession, key: str) -> KeyValueEntry | None:
        stmt = select(KeyValueEntry).where(KeyValueEntry.key == key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


def _upsert(dialect: str, key: str, value: str):
    """Single-statement insert-or-update keyed on ``key_value_entries.key``."""

    row = {"key": key, "value": value, "updated_at": utc_now()}
    if dialect == "mysql":
        stmt = mysql.insert(KeyValueEntry).values(**row)
        return stmt.on_duplicate_key_update(
            value=stmt.inserted["value"],
            updated_at=stmt.inserted["updated_at"],
        )
    if dialect in {"sqlite", "postgresql"}:
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = insert(KeyValueEntry).values(**row)
        return stmt.on_conflict_do_update(
            index_elements=[KeyValueEntry.key],
            set_={"value": stmt.excluded["value"], "updated_at": stmt.excluded["updated_at"]},
        )
    raise ValueError(f"Unsupported database dialect for key-value upsert: {dialect}")


def scoped_key(base_key: str, scope: int | str | None) -> str:
    """Return the slot name for one chat; ``None`` keeps the bare key."""

    if scope is None:
        return base_key
    return f"{base_key}:{scope}"


async def build_store(settings: AppSettings) -> KeyValueStore:
    """Instantiate the storage backend selected in settings."""

    backend = settings.storage.backend
    if backend == "redis":
        if not settings.redis.url:
            raise ValueError("Redis storage backend requires PRICECOMPARER_REDIS__URL.")
        store: KeyValueStore = RedisStore.from_url(settings.redis.url)
    elif backend == "database":
        database = Database(settings=settings)
        await database.create_schema()
        store = _OwnedDatabaseStore(database)
    else:
        store = InMemoryStore()
    logger.info("storage_backend_ready", backend=backend)
    return store


class _OwnedDatabaseStore(DatabaseStore):
    def __init__(self, database: Database) -> None:
        super().__init__(database.session)
        self._database = database

    async def close(self) -> None:
        await self._database.dispose()


__all__ = [
    "DatabaseStore",
    "InMemoryStore",
    "KeyValueStore",
    "RedisStore",
    "build_store",
    "scoped_key",
]
