"""Tests for the I18nService translation lookup and fallback."""

from __future__ import annotations

import json
from pathlib import Path

from pricecomparer.i18n import I18nService


def test_gettext_returns_translated_string(tmp_path: Path):
    locale_dir = tmp_path / "locales"
    locale_dir.mkdir()
    (locale_dir / "en.json").write_text('{"greet": "Hello {name}"}', encoding="utf-8")
    service = I18nService(locales_path=locale_dir, default_locale="en")

    text = service.gettext("greet", name="World")
    assert text == "Hello World"


def test_gettext_falls_back_to_default(tmp_path: Path):
    locale_dir = tmp_path / "locales"
    locale_dir.mkdir()
    (locale_dir / "en.json").write_text('{"greet": "Hello"}', encoding="utf-8")
    service = I18nService(locales_path=locale_dir, default_locale="en")

    assert service.gettext("greet", locale="es") == "Hello"
    assert service.gettext("missing.key") == "missing.key"


def test_gettext_strips_region_from_telegram_locale():
    service = I18nService(default_locale="en")

    assert service.gettext("last.none", locale="pt-BR") == "Você ainda não buscou nada."
    assert service.gettext("last.none", locale="en_US") == "You have not searched for anything yet."


def test_bundled_locales_share_keys():
    service = I18nService()
    en = set(_keys(service.locales_path / "en.json"))
    pt = set(_keys(service.locales_path / "pt.json"))
    assert en == pt


def _keys(path: Path) -> list[str]:
    return list(json.loads(path.read_text(encoding="utf-8")))
