"""Current search text plus the persisted "last query" slot."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from pricecomparer.domain.models import Query
from pricecomparer.logging import logger
from pricecomparer.services.exceptions import EmptyQuery, PersistenceFailure
from pricecomparer.services.storage import KeyValueStore

LAST_QUERY_KEY = "lastQuery"

NavigateCallback = Callable[[Query], Awaitable[None] | None]


def normalize_query(raw_text: str | None) -> Query:
    """Trim user input, raising ``EmptyQuery`` when nothing is left."""

    text = (raw_text or "").strip()
    if not text:
        raise EmptyQuery()
    return text


class QueryStateManager:
    """Owns the search input and persists every accepted query.

    Writes are scheduled as background tasks so ``submit`` never waits on the
    store. Each write waits for the one before it, so the last submit wins;
    a failed write is logged and otherwise ignored.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = LAST_QUERY_KEY,
        on_navigate: NavigateCallback | None = None,
    ) -> None:
        self._store = store
        self.key = key
        self._on_navigate = on_navigate
        self._pending: set[asyncio.Task[None]] = set()
        self._last_write: asyncio.Task[None] | None = None
        self._submits = 0
        self.current_text = ""
        self.restored = False

    def set_text(self, text: str) -> None:
        self.current_text = text

    async def restore_last(self) -> Query | None:
        self.restored = True
        submits_before = self._submits
        try:
            value = await self._store.get(self.key)
        except Exception as exc:
            logger.warning("restore_last_query_failed", key=self.key, error=str(exc))
            return None
        if value is None or not value.strip():
            return None
        # A submit that landed during the read is newer than the stored value.
        if self._submits == submits_before:
            self.current_text = value
        return value

    async def submit(self, raw_text: str | None) -> Query:
        query = normalize_query(raw_text)
        self._submits += 1
        self.current_text = query
        self._schedule_persist(query)
        if self._on_navigate is not None:
            result = self._on_navigate(query)
            if asyncio.iscoroutine(result):
                await result
        return query

    async def drain(self) -> None:
        """Wait for every pending write; failures were already logged."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def _schedule_persist(self, query: Query) -> None:
        task = asyncio.create_task(self._persist(query, self._last_write))
        self._last_write = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self, query: Query, previous: asyncio.Task[None] | None) -> None:
        # Writes land in submit order so the slot always ends on the newest query.
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        try:
            await self._store.set(self.key, query)
        except Exception as exc:
            failure = PersistenceFailure(f"Could not persist last query: {exc}")
            logger.warning("persist_last_query_failed", key=self.key, error=str(failure))
        else:
            logger.debug("last_query_persisted", key=self.key)


__all__ = ["LAST_QUERY_KEY", "QueryStateManager", "normalize_query"]
