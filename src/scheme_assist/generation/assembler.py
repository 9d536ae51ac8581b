"""Grounded answer assembly: prompt, generate, check grounding, fall back."""

from __future__ import annotations

import re

from scheme_assist.cache import keys
from scheme_assist.cache.ttl_cache import MISS
from scheme_assist.context import GENERATION, ServiceContext
from scheme_assist.exceptions import CircuitOpenError, ExternalProviderError, GroundingFailure
from scheme_assist.generation import messages
from scheme_assist.generation.grounding import grounding_score
from scheme_assist.generation.prompt_templates import ASSISTANT_PERSONA, build_answer_prompt
from scheme_assist.models.domain import Answer, Fallback, RetrievedDocument
from scheme_assist.observability.logger import get_logger
from scheme_assist.protocols.llm import LLMProvider

logger = get_logger("assembler")

_CITATION_RE = re.compile(r"\[([A-Za-z0-9_\-.]+)\]")


class GenerationAssembler:
    def __init__(self, llm: LLMProvider, context: ServiceContext) -> None:
        self._llm = llm
        self._ctx = context
        self._guard = context.guard(GENERATION)
        self._threshold = context.settings.grounding_overlap_threshold
        self._temperature = context.settings.gemini_temperature
        self._max_tokens = context.settings.gemini_max_tokens

    async def assemble(
        self,
        query_text: str,
        documents: list[RetrievedDocument],
        language: str,
    ) -> Answer | Fallback:
        cache_key = keys.query_key(query_text, language)
        try:
            answer = await self._generate_grounded(query_text, documents, language)
        except GroundingFailure as e:
            logger.warning("grounding_failed", error=str(e), documents=len(documents))
            return Fallback(
                reason=messages.INSUFFICIENT_INFORMATION,
                message=messages.message(messages.INSUFFICIENT_INFORMATION, language),
            )
        except (ExternalProviderError, CircuitOpenError) as e:
            logger.error(
                "generation_unavailable",
                service=GENERATION,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._cached_or_fallback(cache_key, language)

        self._ctx.cache.put(keys.RESPONSE, cache_key, answer)
        return answer

    async def _generate_grounded(
        self,
        query_text: str,
        documents: list[RetrievedDocument],
        language: str,
    ) -> Answer:
        prompt = build_answer_prompt(query_text, documents, language)
        text = await self._call_llm(prompt)
        score = grounding_score(text, documents)
        if score >= self._threshold:
            return self._answer(text, documents, score, regenerated=False)

        logger.info("answer_ungrounded_regenerating", score=round(score, 4))
        strict_prompt = build_answer_prompt(query_text, documents, language, strict=True)
        text = await self._call_llm(strict_prompt)
        score = grounding_score(text, documents)
        if score >= self._threshold:
            return self._answer(text, documents, score, regenerated=True)

        raise GroundingFailure(
            f"answer overlap {score:.2f} below threshold {self._threshold:.2f} after regeneration"
        )

    async def _call_llm(self, prompt: str) -> str:
        return await self._guard.call(
            "generate",
            self._llm.generate,
            prompt,
            system=ASSISTANT_PERSONA,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

    def _cached_or_fallback(self, cache_key: str, language: str) -> Answer | Fallback:
        cached = self._ctx.cache.get(keys.RESPONSE, cache_key)
        if cached is not MISS:
            logger.info("generation_served_from_cache")
            return Answer(
                text=cached.text,
                scheme_ids=list(cached.scheme_ids),
                grounding_score=cached.grounding_score,
                regenerated=cached.regenerated,
                from_cache=True,
            )
        return Fallback(
            reason=messages.GENERATION_UNAVAILABLE,
            message=messages.message(messages.GENERATION_UNAVAILABLE, language),
        )

    @staticmethod
    def _answer(
        text: str, documents: list[RetrievedDocument], score: float, regenerated: bool
    ) -> Answer:
        known = {d.scheme_id for d in documents}
        cited = [s for s in dict.fromkeys(_CITATION_RE.findall(text)) if s in known]
        if not cited:
            cited = list(dict.fromkeys(d.scheme_id for d in documents))
        logger.info(
            "generated_answer",
            answer_len=len(text),
            grounding=round(score, 4),
            regenerated=regenerated,
            schemes=cited,
        )
        return Answer(text=text.strip(), scheme_ids=cited, grounding_score=score, regenerated=regenerated)
