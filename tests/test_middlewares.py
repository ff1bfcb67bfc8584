"""Tests for the throttle and logging-context middlewares."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import structlog

from pricecomparer.bot.middlewares import log_context as log_context_module
from pricecomparer.bot.middlewares import throttle as throttle_module
from pricecomparer.bot.middlewares.log_context import LogContextMiddleware
from pricecomparer.bot.middlewares.throttle import ThrottleMiddleware


class DummyFromUser:
    def __init__(self, user_id: int = 1, language_code: str = "en") -> None:
        self.id = user_id
        self.language_code = language_code


class DummyMessage:
    def __init__(self, text: str = "iphone", from_user: DummyFromUser | None = None) -> None:
        self.text = text
        self.from_user = from_user or DummyFromUser()
        self.chat = SimpleNamespace(id=500, type="private")
        self.answers: list[tuple[str, str | None]] = []

    async def answer(self, text: str, parse_mode: str | None = None):
        self.answers.append((text, parse_mode))
        return text


def _settings(max_requests: int = 2, interval_seconds: int = 60) -> SimpleNamespace:
    return SimpleNamespace(
        default_language="en",
        request_limit=SimpleNamespace(max_requests=max_requests, interval_seconds=interval_seconds),
    )


@pytest.fixture(autouse=True)
def patch_aiogram_message(monkeypatch):
    monkeypatch.setattr(throttle_module, "Message", DummyMessage)
    monkeypatch.setattr(log_context_module, "Message", DummyMessage)


@pytest.mark.asyncio
async def test_throttle_blocks_after_limit():
    middleware = ThrottleMiddleware(_settings(max_requests=2))
    calls: list[str] = []

    async def handler(event, data):
        calls.append(event.text)
        return "handled"

    message = DummyMessage()
    assert await middleware(handler, message, {}) == "handled"
    assert await middleware(handler, message, {}) == "handled"
    assert await middleware(handler, message, {}) is None

    assert len(calls) == 2
    assert message.answers == [("Too many requests, please slow down.", None)]


@pytest.mark.asyncio
async def test_throttle_tracks_users_separately():
    middleware = ThrottleMiddleware(_settings(max_requests=1))

    async def handler(event, data):
        return "handled"

    assert await middleware(handler, DummyMessage(from_user=DummyFromUser(1)), {}) == "handled"
    assert await middleware(handler, DummyMessage(from_user=DummyFromUser(2)), {}) == "handled"


@pytest.mark.asyncio
async def test_throttle_ignores_non_message_events():
    middleware = ThrottleMiddleware(_settings(max_requests=1))

    async def handler(event, data):
        return "passed"

    assert await middleware(handler, object(), {}) == "passed"
    assert await middleware(handler, object(), {}) == "passed"


@pytest.mark.asyncio
async def test_log_context_binds_chat_and_user():
    middleware = LogContextMiddleware()
    seen = {}

    async def handler(event, data):
        seen.update(structlog.contextvars.get_contextvars())
        return "ok"

    result = await middleware(handler, DummyMessage(from_user=DummyFromUser(7)), {})

    assert result == "ok"
    assert seen == {"chat_id": 500, "user_id": 7}
    assert structlog.contextvars.get_contextvars() == {}
