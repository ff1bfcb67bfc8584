"""Plain-text rendering of fetch outcomes for Telegram."""

from __future__ import annotations

from typing import Iterable

from pricecomparer.domain.models import Failed, FetchOutcome, Loading, OfferRecord, Succeeded
from pricecomparer.i18n import I18nService

# Telegram messages are limited to 4096 characters.
TELEGRAM_MESSAGE_LIMIT = 3900


def format_offer(index: int, offer: OfferRecord, *, price_missing: str = "") -> str:
    lines = [f"{index}. {offer.title}".rstrip()]
    details = [offer.price or price_missing]
    if offer.source_name:
        details.append(offer.source_name)
    detail_line = " · ".join(part for part in details if part)
    if detail_line:
        lines.append(f"   {detail_line}")
    if offer.thumbnail_url:
        lines.append(f"   {offer.thumbnail_url}")
    return "\n".join(lines)


def render_outcome(outcome: FetchOutcome, i18n: I18nService, *, locale: str | None = None) -> str:
    if isinstance(outcome, Loading):
        return i18n.gettext("search.loading", locale=locale, query=outcome.query)
    if isinstance(outcome, Failed):
        return i18n.gettext("search.failed", locale=locale, message=outcome.message)
    if isinstance(outcome, Succeeded):
        if not outcome.results:
            return i18n.gettext("search.empty", locale=locale, query=outcome.query)
        price_missing = i18n.gettext("search.price_missing", locale=locale)
        blocks = [i18n.gettext("search.header", locale=locale, query=outcome.query)]
        blocks.extend(
            format_offer(idx, offer, price_missing=price_missing)
            for idx, offer in enumerate(outcome.results, start=1)
        )
        return "\n\n".join(blocks)
    raise TypeError(f"Unsupported outcome: {outcome!r}")


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split on blank lines so each chunk fits in one Telegram message."""

    chunks: list[str] = []
    buffer = ""
    for block in text.split("\n\n"):
        candidate = f"{buffer}\n\n{block}" if buffer else block
        if len(candidate) <= limit:
            buffer = candidate
            continue
        if buffer:
            chunks.append(buffer)
        while len(block) > limit:
            chunks.append(block[:limit])
            block = block[limit:]
        buffer = block
    if buffer:
        chunks.append(buffer)
    return chunks


def iter_chunks(outcome: FetchOutcome, i18n: I18nService, *, locale: str | None = None) -> Iterable[str]:
    yield from split_message(render_outcome(outcome, i18n, locale=locale))
