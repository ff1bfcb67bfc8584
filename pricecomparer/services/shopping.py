"""SerpApi Google Shopping integration: fetch, parse and normalize offers."""

from __future__ import annotations

import itertools
from typing import Any, AsyncIterator, Mapping, Sequence

import httpx

from pricecomparer.config import ShoppingSearchSettings
from pricecomparer.domain.models import (
    MAX_RESULTS,
    Failed,
    FetchOutcome,
    Loading,
    OfferRecord,
    Query,
    Succeeded,
)
from pricecomparer.logging import logger
from pricecomparer.services.exceptions import (
    FetchError,
    NetworkError,
    ProviderConfigError,
    ProviderError,
)

RESULT_FIELDS: tuple[str, ...] = ("shopping_results", "organic_results")
PRICE_FIELDS: tuple[str, ...] = ("price", "price_text")
THUMBNAIL_FIELDS: tuple[str, ...] = ("thumbnail", "image")


def select_results(payload: Any, fields: Sequence[str] = RESULT_FIELDS) -> list[Any]:
    """Return the first non-empty result list among ``fields``.

    Absent, empty and non-list fields fall through to the next name.
    """

    if not isinstance(payload, Mapping):
        return []
    for name in fields:
        candidate = payload.get(name)
        if isinstance(candidate, list) and candidate:
            return candidate
    return []


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def first_present(raw: Mapping[str, Any], fields: Sequence[str]) -> str | None:
    for name in fields:
        value = _text(raw.get(name))
        if value:
            return value
    return None


def to_offer(raw: Any) -> OfferRecord:
    if not isinstance(raw, Mapping):
        return OfferRecord()
    return OfferRecord(
        title=_text(raw.get("title")) or "",
        price=first_present(raw, PRICE_FIELDS) or "",
        thumbnail_url=first_present(raw, THUMBNAIL_FIELDS),
        source_name=_text(raw.get("source")),
    )


def parse_offers(payload: Any, limit: int = MAX_RESULTS) -> list[OfferRecord]:
    limit = max(0, min(limit, MAX_RESULTS))
    return [to_offer(raw) for raw in select_results(payload)[:limit]]


class FetchGeneration:
    """Monotonic tokens that let a consumer drop outcomes of superseded queries."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._current = 0

    def begin(self) -> int:
        self._current = next(self._counter)
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current

    @property
    def current(self) -> int:
        return self._current


class ShoppingSearchService:
    """One provider request per query; no retries."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: ShoppingSearchSettings | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or ShoppingSearchSettings()

    @staticmethod
    def _read_secret(secret: Any) -> str | None:
        if not secret:
            return None
        try:
            return secret.get_secret_value()
        except AttributeError:
            return str(secret)

    def _build_params(self, query: Query) -> dict[str, str]:
        api_key = self._read_secret(self._settings.serpapi_api_key)
        if not api_key:
            raise ProviderConfigError("SerpApi key is not configured.")
        return {
            "engine": self._settings.serpapi_engine,
            "q": query,
            "api_key": api_key,
        }

    async def search(self, query: Query) -> list[OfferRecord]:
        params = self._build_params(query)
        request_kwargs: dict[str, Any] = {
            "params": params,
            "headers": {"User-Agent": self._settings.user_agent},
        }
        if self._settings.request_timeout_seconds is not None:
            request_kwargs["timeout"] = self._settings.request_timeout_seconds

        try:
            response = await self._client.get(str(self._settings.base_url), **request_kwargs)
        except httpx.RequestError as exc:
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text
            logger.warning("shopping_provider_rejected", status=exc.response.status_code, body=body[:500])
            raise ProviderError(exc.response.status_code, body) from exc

        try:
            payload = response.json()
        except ValueError:
            logger.warning("shopping_provider_invalid_json", status=response.status_code)
            payload = None
        return parse_offers(payload, self._settings.max_results)

    async def fetch(self, query: Query) -> AsyncIterator[FetchOutcome]:
        """Yield ``Loading`` and then exactly one terminal outcome."""

        yield Loading(query=query)
        try:
            offers = await self.search(query)
        except ProviderError as exc:
            yield Failed(
                query=query,
                message=str(exc),
                error_kind="provider",
                status=exc.status,
                body=exc.body,
            )
            return
        except NetworkError as exc:
            logger.warning("shopping_fetch_network_error", query=query, error=exc.message)
            yield Failed(query=query, message=exc.message, error_kind="network")
            return
        except FetchError as exc:
            logger.warning("shopping_fetch_misconfigured", error=str(exc))
            yield Failed(query=query, message=str(exc), error_kind="config")
            return
        logger.info("shopping_fetch_succeeded", query=query, results=len(offers))
        yield Succeeded(query=query, results=offers)


__all__ = [
    "FetchGeneration",
    "ShoppingSearchService",
    "first_present",
    "parse_offers",
    "select_results",
    "to_offer",
]
