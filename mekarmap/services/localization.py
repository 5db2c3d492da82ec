# SPDX-License-Identifier: Apache-2.0

"""
Localization resolver for dotted translation keys.

Lookups walk the nested string table of the active language. A missing key
or a key that resolves to a sub-table falls back to the raw key string, so the
presentation layer never receives an exception.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..models.enums import Language, LookupStatus
from ..middleware.error_handler import ValidationException
from .storage import StorageService, Slots

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = Language.ENGLISH.value

AVAILABLE_LANGUAGES = {
    Language.INDONESIAN.value: "Bahasa Indonesia",
    Language.SUNDANESE.value: "Basa Sunda",
    Language.ENGLISH.value: "English",
}


@dataclass
class TranslationLookup:
    """Result of walking a translation key."""
    status: LookupStatus
    value: Optional[str] = None


def substitute_params(template: str, params: Optional[Mapping[str, Any]]) -> str:
    """Replace every ``{{name}}`` with the stringified parameter value."""
    if not params:
        return template

    result = template
    for name, value in params.items():
        result = result.replace("{{" + str(name) + "}}", str(value))
    return result


class LocalizationService:
    """
    Resolves translation keys in the persisted active language.

    The active language is read from storage on every lookup, so a change made
    through any service instance takes effect immediately.
    """

    def __init__(self, storage: StorageService, tables: Dict[str, Dict[str, Any]],
                 default_language: str = DEFAULT_LANGUAGE):
        if default_language not in AVAILABLE_LANGUAGES:
            raise ValueError(f"Unsupported default language: {default_language}")
        self.storage = storage
        self.tables = tables
        self.default_language = default_language

    @property
    def available_languages(self) -> Dict[str, str]:
        return dict(AVAILABLE_LANGUAGES)

    @property
    def language(self) -> str:
        """Active language code."""
        saved = self.storage.read_value(Slots.ACTIVE_LANGUAGE)
        if saved in AVAILABLE_LANGUAGES:
            return saved
        if saved is not None:
            logger.warning(f"Ignoring unsupported saved language: {saved}")
        return self.default_language

    def set_language(self, language: str) -> None:
        """
        Persist the active language.

        Raises:
            ValidationException: If the language is not supported
            StorageWriteError: If the choice could not be persisted
        """
        language = getattr(language, "value", language)
        if language not in AVAILABLE_LANGUAGES:
            raise ValidationException(
                f"Unsupported language: {language}",
                [{"field": "language", "message": "Unsupported language", "input": language}]
            )

        self.storage.write(Slots.ACTIVE_LANGUAGE, language)
        logger.info("Active language changed", extra={"language": language})

    def lookup(self, key: str, language: Optional[str] = None) -> TranslationLookup:
        """
        Walk a dotted key through the string table.

        Args:
            key: Dotted translation key
            language: Language to use instead of the active one

        Returns:
            TranslationLookup with status OK, NOT_FOUND, or CORRUPT when the key
            names a sub-table instead of a string
        """
        language = language or self.language
        value: Any = self.tables.get(language, {})

        for segment in key.split("."):
            if isinstance(value, dict) and segment in value:
                value = value[segment]
            else:
                logger.warning(f"Translation key not found: {key} in language {language}")
                return TranslationLookup(LookupStatus.NOT_FOUND)

        if not isinstance(value, str):
            logger.warning(f"Translation value is not a string for key: {key}")
            return TranslationLookup(LookupStatus.CORRUPT)

        return TranslationLookup(LookupStatus.OK, value)

    def resolve(self, key: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Resolve a key to a display string in the active language.

        Args:
            key: Dotted translation key
            params: Values substituted into ``{{name}}`` placeholders

        Returns:
            Translated string, or the raw key when it cannot be resolved
        """
        result = self.lookup(key)
        if result.status != LookupStatus.OK:
            return key
        return substitute_params(result.value, params)

    # Short alias used by view builders
    t = resolve
