"""
Message localization from JSON catalogs shipped in ``fsis/i18n``.

Lookup order: requested language, then English, then the key itself
wrapped as ``⧼key⧽`` so missing translations are visible but harmless.
"""

import json
import re
from importlib import resources

import structlog

from fsis.services.interface import Localizer

logger = structlog.get_logger()

FALLBACK_LANGUAGE = "en"

# Language codes like "en", "de", "pt-br", "zh-hans"
_LANGUAGE_CODE = re.compile(r"^[a-z]{2,3}(-[a-z0-9]{2,8})*$")


def load_catalogs(package: str = "fsis.i18n") -> dict[str, dict[str, str]]:
    """Load every ``<lang>.json`` catalog from a package directory."""
    catalogs: dict[str, dict[str, str]] = {}
    for entry in resources.files(package).iterdir():
        if not entry.name.endswith(".json"):
            continue
        language = entry.name[: -len(".json")].lower()
        data = json.loads(entry.read_text(encoding="utf-8"))
        catalogs[language] = {k: v for k, v in data.items() if not k.startswith("@")}
    return catalogs


class CatalogLocalizer(Localizer):
    """Localizer backed by in-memory message catalogs."""

    def __init__(
        self,
        catalogs: dict[str, dict[str, str]] | None = None,
        default_language: str = FALLBACK_LANGUAGE,
    ):
        self.catalogs = catalogs if catalogs is not None else load_catalogs()
        self.default_language = default_language.lower()

    def normalize_language(self, language: str | None) -> str:
        """Pick the catalog language for a requested code."""
        if not language:
            return self.default_language

        code = language.strip().lower().replace("_", "-")
        if not _LANGUAGE_CODE.match(code):
            return self.default_language

        # "de-at" falls back to "de" when there is no dedicated catalog
        while code and code not in self.catalogs:
            code = code.rpartition("-")[0]
        return code or self.default_language

    def message(self, key: str, language: str | None = None) -> str:
        for code in (self.normalize_language(language), self.default_language, FALLBACK_LANGUAGE):
            text = self.catalogs.get(code, {}).get(key)
            if text is not None:
                return text

        logger.warning("missing_message", key=key, language=language)
        return f"⧼{key}⧽"
