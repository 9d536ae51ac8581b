"""Translator backed by the generation provider."""

from __future__ import annotations

from scheme_assist.generation.prompt_templates import (
    TRANSLATION_PROMPT,
    TRANSLATION_SYSTEM,
    language_name,
)
from scheme_assist.observability.logger import get_logger
from scheme_assist.protocols.llm import LLMProvider

logger = get_logger("translator")


class LLMTranslator:
    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def translate(self, text: str, source: str, target: str) -> str:
        if source == target or not text.strip():
            return text
        prompt = TRANSLATION_PROMPT.format(
            source_name=language_name(source),
            target_name=language_name(target),
            text=text,
        )
        translated = await self._llm.generate(prompt, system=TRANSLATION_SYSTEM, temperature=0.0)
        logger.debug("translated", source=source, target=target, chars=len(translated))
        return translated.strip()
