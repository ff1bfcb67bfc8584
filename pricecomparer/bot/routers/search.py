"""Telegram handlers for the product search flow."""

from __future__ import annotations

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message

from pricecomparer.bot.sessions import ChatSearchRegistry
from pricecomparer.bot.utils.messages import iter_chunks, render_outcome
from pricecomparer.bot.utils.telegram import answer_with_retry, edit_with_retry
from pricecomparer.domain.models import Loading
from pricecomparer.i18n import I18nService
from pricecomparer.logging import logger
from pricecomparer.services.exceptions import EmptyQuery
from pricecomparer.services.shopping import ShoppingSearchService

router = Router()


def _locale(message: Message) -> str | None:
    if message.from_user is None:
        return None
    return getattr(message.from_user, "language_code", None)


@router.message(CommandStart())
async def handle_start(
    message: Message,
    registry: ChatSearchRegistry,
    i18n: I18nService,
) -> None:
    locale = _locale(message)
    name = message.from_user.full_name if message.from_user else ""
    await answer_with_retry(
        message,
        i18n.gettext("start.greeting", locale=locale, name=name),
        parse_mode=None,
    )
    manager = await registry.restored_manager(message.chat.id)
    if manager.current_text:
        await answer_with_retry(
            message,
            i18n.gettext("start.last_query", locale=locale, query=manager.current_text),
            parse_mode=None,
        )


@router.message(Command("last"))
async def handle_last(
    message: Message,
    registry: ChatSearchRegistry,
    i18n: I18nService,
) -> None:
    locale = _locale(message)
    manager = await registry.restored_manager(message.chat.id)
    if manager.current_text:
        text = i18n.gettext("last.value", locale=locale, query=manager.current_text)
    else:
        text = i18n.gettext("last.none", locale=locale)
    await answer_with_retry(message, text, parse_mode=None)


@router.message(Command("search"))
async def handle_search_command(
    message: Message,
    command: CommandObject,
    registry: ChatSearchRegistry,
    shopping_service: ShoppingSearchService,
    i18n: I18nService,
) -> None:
    await run_search(
        message,
        command.args or "",
        registry=registry,
        shopping_service=shopping_service,
        i18n=i18n,
    )


@router.message(F.text & ~F.text.startswith("/"))
async def handle_text(
    message: Message,
    registry: ChatSearchRegistry,
    shopping_service: ShoppingSearchService,
    i18n: I18nService,
) -> None:
    await run_search(
        message,
        message.text or "",
        registry=registry,
        shopping_service=shopping_service,
        i18n=i18n,
    )


async def run_search(
    message: Message,
    raw_text: str,
    *,
    registry: ChatSearchRegistry,
    shopping_service: ShoppingSearchService,
    i18n: I18nService,
) -> None:
    locale = _locale(message)
    chat_id = message.chat.id
    manager = await registry.restored_manager(chat_id)
    try:
        query = await manager.submit(raw_text)
    except EmptyQuery:
        await answer_with_retry(message, i18n.gettext("search.usage", locale=locale), parse_mode=None)
        return

    generation = registry.generation_for(chat_id)
    token = generation.begin()
    placeholder = None
    async for outcome in shopping_service.fetch(query):
        if isinstance(outcome, Loading):
            placeholder = await answer_with_retry(
                message, render_outcome(outcome, i18n, locale=locale), parse_mode=None
            )
            continue

        if not generation.is_current(token):
            logger.info(
                "stale_outcome_discarded",
                query=query,
                token=token,
                current_token=generation.current,
            )
            if placeholder is not None:
                await _replace_placeholder(
                    message, placeholder, i18n.gettext("search.superseded", locale=locale, query=query)
                )
            return

        chunks = list(iter_chunks(outcome, i18n, locale=locale))
        await _replace_placeholder(message, placeholder, chunks[0])
        for chunk in chunks[1:]:
            await answer_with_retry(message, chunk, parse_mode=None)


async def _replace_placeholder(message: Message, placeholder, text: str) -> None:
    if placeholder is not None and hasattr(placeholder, "edit_text"):
        try:
            await edit_with_retry(placeholder, text, parse_mode=None)
            return
        except TelegramBadRequest as exc:
            logger.warning("placeholder_edit_failed", error=str(exc))
    await answer_with_retry(message, text, parse_mode=None)


__all__ = [
    "handle_last",
    "handle_search_command",
    "handle_start",
    "handle_text",
    "router",
    "run_search",
]
