"""Application entrypoint."""

from __future__ import annotations

import asyncio

import httpx
from aiogram import Bot, Dispatcher
from aiogram.client.session.aiohttp import AiohttpSession

from pricecomparer.bot.middlewares import LogContextMiddleware, ThrottleMiddleware
from pricecomparer.bot.routers import setup_routers
from pricecomparer.bot.sessions import ChatSearchRegistry
from pricecomparer.config import get_settings
from pricecomparer.i18n import I18nService
from pricecomparer.logging import configure_logging, logger
from pricecomparer.services.error_monitor import ErrorMonitor
from pricecomparer.services.shopping import ShoppingSearchService
from pricecomparer.services.storage import build_store


async def main() -> None:
    configure_logging()
    settings = get_settings()

    session = (
        AiohttpSession(proxy=settings.telegram_proxy) if settings.telegram_proxy else None
    )
    bot = Bot(token=settings.telegram_token.get_secret_value(), session=session)
    dp = Dispatcher()
    dp.include_router(setup_routers())
    dp.errors.register(ErrorMonitor(settings=settings))

    dp.message.outer_middleware(LogContextMiddleware())
    dp.message.middleware(ThrottleMiddleware(settings))

    store = await build_store(settings)
    registry = ChatSearchRegistry(store, base_key=settings.storage.last_query_key)
    i18n = I18nService(default_locale=settings.default_language)

    async with httpx.AsyncClient() as http_client:
        shopping_service = ShoppingSearchService(http_client, settings=settings.shopping)
        logger.info(
            "bot_starting",
            environment=settings.environment,
            storage_backend=settings.storage.backend,
        )
        try:
            await dp.start_polling(
                bot,
                registry=registry,
                shopping_service=shopping_service,
                i18n=i18n,
            )
        finally:
            await registry.drain()
            await store.close()
            logger.info("bot_stopped")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
