"""Log unhandled bot errors and optionally notify the administrator."""

from __future__ import annotations

import traceback

from aiogram import Bot
from aiogram.dispatcher.event.bases import UNHANDLED
from aiogram.types import ErrorEvent, Update

from pricecomparer.bot.utils.messages import TELEGRAM_MESSAGE_LIMIT
from pricecomparer.bot.utils.telegram import bot_send_with_retry
from pricecomparer.config import AppSettings
from pricecomparer.logging import logger

TRACEBACK_CHAR_LIMIT = 1800
TEXT_CHAR_LIMIT = 300


class ErrorMonitor:
    """Async callable plugged into the aiogram error observer."""

    def __init__(self, settings: AppSettings) -> None:
        self._settings = settings

    async def __call__(self, event: ErrorEvent, bot: Bot):
        return await self.handle_error(event, bot)

    async def handle_error(self, event: ErrorEvent, bot: Bot):
        update_id = getattr(event.update, "update_id", None)
        logger.error(
            "bot_error_captured",
            exception_type=event.exception.__class__.__name__,
            exception=str(event.exception),
            update_id=update_id,
        )

        admin_id = self._settings.admin_telegram_id
        if admin_id is None:
            return UNHANDLED

        try:
            await bot_send_with_retry(
                bot, chat_id=admin_id, text=self.build_message(event), parse_mode=None
            )
        except Exception:
            logger.exception("error_monitor_notification_failed", update_id=update_id)
        return UNHANDLED

    def build_message(self, event: ErrorEvent) -> str:
        update = event.update
        exception = event.exception
        chat_id, user_id, text = self._describe_message(update)

        lines = [
            "BOT ERROR DETECTED",
            f"Environment: {self._settings.environment}",
            f"Exception: {exception.__class__.__name__}: {exception}",
            f"Update ID: {getattr(update, 'update_id', 'unknown')}",
            f"Chat: {chat_id}",
            f"User: {user_id}",
        ]
        if text:
            lines.append(f"Text: {_truncate(text, TEXT_CHAR_LIMIT)}")
        trace = "".join(
            traceback.format_exception(exception.__class__, exception, exception.__traceback__)
        ).strip()
        if trace:
            lines.extend(["", "Traceback:", _truncate(trace, TRACEBACK_CHAR_LIMIT)])
        return _truncate("\n".join(lines), TELEGRAM_MESSAGE_LIMIT)

    @staticmethod
    def _describe_message(update: Update | None) -> tuple[str, str, str]:
        message = getattr(update, "message", None) if update is not None else None
        if message is None:
            return "unknown", "unknown", ""
        chat = getattr(message, "chat", None)
        user = getattr(message, "from_user", None)
        return (
            str(chat.id) if chat is not None else "unknown",
            str(user.id) if user is not None else "unknown",
            message.text or "",
        )


def _truncate(value: str, limit: int) -> str:
    value = value.strip()
    if len(value) <= limit:
        return value
    return f"{value[: limit - 15].rstrip()}\n...[truncated]"


__all__ = ["ErrorMonitor"]
