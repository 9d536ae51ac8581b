"""Protocols for translation and intent classification."""

from __future__ import annotations

from typing import Protocol

from scheme_assist.models.domain import EligibilityIntent


class Translator(Protocol):
    async def translate(self, text: str, source: str, target: str) -> str: ...


class IntentClassifier(Protocol):
    async def classify(self, text: str, language: str) -> EligibilityIntent | None:
        """Return an intent when the user is asking whether they qualify."""
        ...
