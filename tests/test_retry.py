"""Tests for the async retry helper."""

from __future__ import annotations

import pytest

from pricecomparer.utils import retry as retry_module
from pricecomparer.utils.retry import retry_async


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    async def _sleep(delay):
        return None

    monkeypatch.setattr(retry_module.asyncio, "sleep", _sleep)


@pytest.mark.asyncio
async def test_retry_async_recovers_after_transient_error():
    attempts = {"count": 0}

    async def operation():
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise ConnectionError("flaky")
        return "ok"

    assert await retry_async(operation, max_attempts=3, base_delay=0) == "ok"
    assert attempts["count"] == 3


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_unlisted_errors():
    attempts = {"count": 0}

    async def operation():
        attempts["count"] += 1
        raise ValueError("bad request")

    with pytest.raises(ValueError):
        await retry_async(operation, max_attempts=3, retry_on=(ConnectionError,))
    assert attempts["count"] == 1


@pytest.mark.asyncio
async def test_retry_async_reraises_after_last_attempt():
    async def operation():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await retry_async(operation, max_attempts=2)
