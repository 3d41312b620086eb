from __future__ import annotations

"""
Internationalization (i18n) utilities for error and email messages.

Every error raised by the identity core carries a message key (its ``code``);
this module resolves that key into text for a given language. Translations are
loaded with gettext from ``user_service/locales``. When compiled ``.mo`` files
are missing or stale, the matching ``.po`` file is parsed into an in-memory
fallback catalog so that newly added messages are still translated.
"""

import gettext
import os
from typing import Dict, Optional

from user_service.core.config.settings import settings
from user_service.core.logging import logger

LOCALES_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "locales")

_translations: Dict[str, gettext.NullTranslations] = {}
_fallback_catalogs: Dict[str, Dict[str, str]] = {}


def _parse_po_file(po_path: str) -> Dict[str, str]:
    """Parse single-line ``msgid``/``msgstr`` pairs from a ``.po`` file."""
    catalog: Dict[str, str] = {}
    current_msgid: Optional[str] = None
    with open(po_path, "r", encoding="utf-8") as po_file:
        for raw_line in po_file:
            line = raw_line.strip()
            if line.startswith("msgid "):
                current_msgid = line[6:].strip().strip('"')
            elif line.startswith("msgstr ") and current_msgid is not None:
                msgstr = line[7:].strip().strip('"')
                if current_msgid:
                    catalog[current_msgid] = msgstr or current_msgid
                current_msgid = None
    return catalog


def setup_i18n() -> None:
    """
    Load translations for every supported language.

    Raises:
        FileNotFoundError: If the locales directory is not found.
    """
    if not os.path.exists(LOCALES_PATH):
        raise FileNotFoundError(f"Locales directory not found: {LOCALES_PATH}")

    for lang in settings.SUPPORTED_LANGUAGES:
        _translations[lang] = gettext.translation(
            domain="messages",
            localedir=LOCALES_PATH,
            languages=[lang],
            fallback=True,
        )

        po_path = os.path.join(LOCALES_PATH, lang, "LC_MESSAGES", "messages.po")
        catalog: Dict[str, str] = {}
        if os.path.exists(po_path):
            try:
                catalog = _parse_po_file(po_path)
            except (OSError, UnicodeDecodeError) as exc:  # pragma: no cover
                logger.warning("i18n_po_parse_failed", lang=lang, error=str(exc))
        _fallback_catalogs[lang] = catalog
        logger.debug("i18n_initialized", language=lang, entries=len(catalog))


def get_translated_message(key: str, locale: str | None = None) -> str:
    """
    Retrieve the translated message for ``key``.

    Unsupported locales fall back to ``settings.DEFAULT_LANGUAGE``; unknown keys
    fall back to the key itself.

    Args:
        key: The message key to translate.
        locale: The target language code.

    Returns:
        The translated message or the key if no translation exists.
    """
    if not _translations:
        setup_i18n()

    locale = locale or settings.DEFAULT_LANGUAGE
    if locale not in _translations:
        logger.warning(
            "unsupported_locale_requested",
            requested_locale=locale,
            fallback_locale=settings.DEFAULT_LANGUAGE,
        )
        locale = settings.DEFAULT_LANGUAGE

    translation = _translations.get(locale)
    if translation is None:
        logger.error("translation_missing_for_locale", locale=locale)
        return key

    translated = translation.gettext(key)
    if translated == key:
        translated = _fallback_catalogs.get(locale, {}).get(key, key)
        if translated == key:
            logger.warning("translation_key_not_found", key=key, locale=locale)

    return translated
