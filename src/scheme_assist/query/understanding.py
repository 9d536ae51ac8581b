"""Query normalization, language detection, and eligibility-intent extraction."""

from __future__ import annotations

import re
import unicodedata

from langdetect import DetectorFactory, LangDetectException, detect

from scheme_assist.models.domain import EligibilityIntent
from scheme_assist.observability.logger import get_logger

logger = get_logger("query_understanding")

DetectorFactory.seed = 0

ELIGIBILITY_PHRASES = (
    "eligible",
    "eligibility",
    "qualify",
    "qualified",
    "can i apply",
    "can i get",
    "am i entitled",
    "am i allowed",
    "पात्र",
    "पात्रता",
    "क्या मैं",
    "मिल सकता",
    "मिल सकती",
)


def normalize(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    return re.sub(r"\s+", " ", text).strip()


def detect_language(text: str, default: str = "en") -> str:
    try:
        return detect(text)
    except LangDetectException:
        return default


class KeywordIntentClassifier:
    """Flags eligibility questions and picks out a named scheme, if any.

    ``scheme_aliases`` maps lowercase spoken names (e.g. "kisan samman nidhi")
    to scheme ids.
    """

    def __init__(self, scheme_aliases: dict[str, str] | None = None) -> None:
        self._aliases = {k.casefold(): v for k, v in (scheme_aliases or {}).items()}

    def add_alias(self, alias: str, scheme_id: str) -> None:
        self._aliases[alias.casefold()] = scheme_id

    async def classify(self, text: str, language: str) -> EligibilityIntent | None:
        q = normalize(text).casefold()
        if not any(phrase in q for phrase in ELIGIBILITY_PHRASES):
            return None
        scheme_id = self._match_scheme(q)
        logger.info("eligibility_intent", language=language, scheme_id=scheme_id)
        return EligibilityIntent(scheme_id=scheme_id)

    def _match_scheme(self, q: str) -> str | None:
        # longest alias wins so "pm kisan maandhan" beats "pm kisan"
        for alias in sorted(self._aliases, key=len, reverse=True):
            if alias in q:
                return self._aliases[alias]
        return None
