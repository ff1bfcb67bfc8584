"""Per-chat query state and fetch generations."""

from __future__ import annotations

import asyncio

from pricecomparer.services.query_state import LAST_QUERY_KEY, QueryStateManager
from pricecomparer.services.shopping import FetchGeneration
from pricecomparer.services.storage import KeyValueStore, scoped_key


class ChatSearchRegistry:
    """Lazily creates one ``QueryStateManager`` and ``FetchGeneration`` per chat.

    Each chat gets its own slot in the shared store so chats never read each
    other's last query.
    """

    def __init__(self, store: KeyValueStore, *, base_key: str = LAST_QUERY_KEY) -> None:
        self.store = store
        self.base_key = base_key
        self._managers: dict[int, QueryStateManager] = {}
        self._generations: dict[int, FetchGeneration] = {}

    def manager_for(self, chat_id: int) -> QueryStateManager:
        manager = self._managers.get(chat_id)
        if manager is None:
            manager = QueryStateManager(self.store, key=scoped_key(self.base_key, chat_id))
            self._managers[chat_id] = manager
        return manager

    async def restored_manager(self, chat_id: int) -> QueryStateManager:
        """Return the chat's manager, reading its persisted slot on first use."""

        manager = self.manager_for(chat_id)
        if not manager.restored:
            await manager.restore_last()
        return manager

    def generation_for(self, chat_id: int) -> FetchGeneration:
        return self._generations.setdefault(chat_id, FetchGeneration())

    async def drain(self) -> None:
        await asyncio.gather(*(manager.drain() for manager in self._managers.values()))


__all__ = ["ChatSearchRegistry"]
