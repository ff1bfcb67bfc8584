"""Bind chat/user identifiers to structlog context for each update."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

import structlog
from aiogram import BaseMiddleware
from aiogram.types import Message, TelegramObject


class LogContextMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        context: dict[str, Any] = {}
        if isinstance(event, Message):
            context["chat_id"] = event.chat.id
            if event.from_user is not None:
                context["user_id"] = event.from_user.id
        with structlog.contextvars.bound_contextvars(**context):
            return await handler(event, data)


__all__ = ["LogContextMiddleware"]
