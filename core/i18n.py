"""
core/i18n.py -- Locale tables and per-request translators.

Locale tables are flat JSON objects in locales/<code>.json mapping an English
source string to its translation. Lookups that miss (unknown key, or a
supported locale with no table on disk) return the source string unchanged,
so English is always a complete fallback.

A Translator is built per request by the locale middleware and travels with
the request (request.state.translator) into every template context. Nothing
here is registered globally.

Usage:
    localizer = Localizer(Path("locales"), supported=["en", "fr"], default="en")
    locale = localizer.negotiate(cookie_value, accept_language_header)
    t = localizer.translator(locale)
    t("Passwords do not match.")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger("alliance.i18n")


class Translator:
    """Callable lookup bound to a single locale."""

    def __init__(self, locale: str, table: dict[str, str]) -> None:
        self.locale = locale
        self._table = table

    def __call__(self, key: str, **params: object) -> str:
        text = self._table.get(key) or key
        if params:
            try:
                return text.format(**params)
            except (KeyError, IndexError, ValueError):
                logger.warning("Bad placeholders in %r for locale %s", key, self.locale)
                return key.format(**params)
        return text


class Localizer:
    def __init__(self, directory: Path, supported: list[str], default: str) -> None:
        self.supported = list(supported)
        self.default = default
        self._tables: dict[str, dict[str, str]] = {}
        for code in self.supported:
            self._tables[code] = _load_table(directory / f"{code}.json")
        logger.info(
            "Loaded locale tables: %s",
            ", ".join(f"{c}={len(t)}" for c, t in self._tables.items()),
        )

    def is_supported(self, locale: str | None) -> bool:
        return bool(locale) and locale in self._tables

    def negotiate(self, cookie_locale: str | None, accept_language: str | None = None) -> str:
        """Resolve the display locale: cookie, then Accept-Language, then default."""
        if self.is_supported(cookie_locale):
            return cookie_locale
        for candidate in _parse_accept_language(accept_language or ""):
            if self.is_supported(candidate):
                return candidate
            primary = candidate.split("-", 1)[0]
            if self.is_supported(primary):
                return primary
        return self.default

    def translator(self, locale: str) -> Translator:
        if not self.is_supported(locale):
            locale = self.default
        return Translator(locale, self._tables[locale])


def _load_table(path: Path) -> dict[str, str]:
    if not path.is_file():
        logger.debug("No locale table at %s -- falling back to source strings", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Could not read locale table %s", path)
        return {}
    if not isinstance(data, dict):
        logger.error("Locale table %s is not a JSON object", path)
        return {}
    return {str(k): str(v) for k, v in data.items()}


def _parse_accept_language(header: str) -> list[str]:
    """Return language tags from an Accept-Language header, highest q first."""
    weighted: list[tuple[float, int, str]] = []
    for position, part in enumerate(header.split(",")):
        piece = part.strip()
        if not piece:
            continue
        tag, _, params = piece.partition(";")
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        tag = tag.strip().lower()
        if tag and tag != "*" and quality > 0:
            weighted.append((-quality, position, tag))
    return [tag for _, _, tag in sorted(weighted)]
