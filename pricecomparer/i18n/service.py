"""File-based i18n helper with in-memory caching."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

LOCALES_PATH = Path(__file__).with_name("locales")


@lru_cache(maxsize=16)
def _load_locale(locales_path: Path, locale: str) -> dict[str, str]:
    file_path = locales_path / f"{locale}.json"
    if not file_path.exists():
        return {}
    with file_path.open("r", encoding="utf-8") as fp:
        return json.load(fp)


class I18nService:
    def __init__(self, *, locales_path: str | Path | None = None, default_locale: str = "en") -> None:
        self.locales_path = Path(locales_path or LOCALES_PATH)
        self.default_locale = default_locale

    def gettext(self, key: str, *, locale: str | None = None, **kwargs: Any) -> str:
        loc = self._base_locale(locale or self.default_locale)
        text = self._lookup(loc, key)
        if text is None and loc != self.default_locale:
            text = self._lookup(self.default_locale, key)
        if text is None:
            text = key
        return text.format(**kwargs) if kwargs else text

    @staticmethod
    def _base_locale(locale: str) -> str:
        # Telegram reports tags such as "pt-br"; locale files are keyed by language.
        return locale.lower().replace("_", "-").split("-", 1)[0]

    def _lookup(self, locale: str, key: str) -> str | None:
        return _load_locale(self.locales_path, locale).get(key)


__all__ = ["I18nService"]
