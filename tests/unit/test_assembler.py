"""Tests for grounded answer assembly and its fallbacks."""

import pytest
from conftest import ScriptedLLM

from scheme_assist.cache import keys
from scheme_assist.context import GENERATION
from scheme_assist.exceptions import ExternalProviderError
from scheme_assist.generation import messages
from scheme_assist.generation.assembler import GenerationAssembler
from scheme_assist.models.domain import Answer, Fallback

GROUNDED = "[PM-KISAN] Eligible farmer families receive 6000 rupees per year in three instalments."
UNGROUNDED = "The weather in Mumbai is sunny today."
QUESTION = "What are the PM-KISAN benefits?"


async def trip_breaker(breaker, times):
    async def down():
        raise ExternalProviderError(breaker.service, "generate", "down")

    for _ in range(times):
        with pytest.raises(ExternalProviderError):
            await breaker.call(down)


async def test_grounded_answer_is_returned_and_cached(context, sample_documents):
    llm = ScriptedLLM([GROUNDED])
    assembler = GenerationAssembler(llm, context)

    result = await assembler.assemble(QUESTION, sample_documents, "en")

    assert isinstance(result, Answer)
    assert result.scheme_ids == ["PM-KISAN"]
    assert result.grounding_score >= context.settings.grounding_overlap_threshold
    assert not result.regenerated
    assert llm.calls == 1
    cached = context.cache.get(keys.RESPONSE, keys.query_key(QUESTION, "en"))
    assert cached.text == GROUNDED


async def test_ungrounded_answer_regenerated_once_with_strict_prompt(context, sample_documents):
    llm = ScriptedLLM([UNGROUNDED, GROUNDED])
    assembler = GenerationAssembler(llm, context)

    result = await assembler.assemble(QUESTION, sample_documents, "en")

    assert isinstance(result, Answer)
    assert result.regenerated
    assert llm.calls == 2
    assert llm.prompts[1] != llm.prompts[0]


async def test_twice_ungrounded_falls_back_without_third_call(context, sample_documents):
    llm = ScriptedLLM([UNGROUNDED, UNGROUNDED, GROUNDED])
    assembler = GenerationAssembler(llm, context)

    result = await assembler.assemble(QUESTION, sample_documents, "hi")

    assert isinstance(result, Fallback)
    assert result.reason == messages.INSUFFICIENT_INFORMATION
    assert result.message == messages.message(messages.INSUFFICIENT_INFORMATION, "hi")
    assert llm.calls == 2


async def test_provider_failure_serves_cached_response(context, sample_documents):
    assembler = GenerationAssembler(ScriptedLLM([GROUNDED]), context)
    await assembler.assemble(QUESTION, sample_documents, "en")

    failing = GenerationAssembler(ScriptedLLM(), context)
    result = await failing.assemble(QUESTION, sample_documents, "en")

    assert isinstance(result, Answer)
    assert result.from_cache
    assert result.text == GROUNDED


async def test_provider_failure_without_cache_is_templated_fallback(context, sample_documents):
    llm = ScriptedLLM([ExternalProviderError("generation", "generate", "quota", transient=False)])
    assembler = GenerationAssembler(llm, context)

    result = await assembler.assemble(QUESTION, sample_documents, "en")

    assert isinstance(result, Fallback)
    assert result.reason == messages.GENERATION_UNAVAILABLE
    assert llm.calls == 1


async def test_open_circuit_skips_provider(context, sample_documents):
    await trip_breaker(context.breakers[GENERATION], context.settings.breaker_failure_threshold)
    llm = ScriptedLLM(default=GROUNDED)
    assembler = GenerationAssembler(llm, context)

    result = await assembler.assemble(QUESTION, sample_documents, "en")

    assert isinstance(result, Fallback)
    assert result.reason == messages.GENERATION_UNAVAILABLE
    assert llm.calls == 0


async def test_unknown_citations_fall_back_to_document_schemes(context, sample_documents):
    text = "[FAKE-1] Eligible farmer families receive 6000 rupees per year."
    assembler = GenerationAssembler(ScriptedLLM([text]), context)
    result = await assembler.assemble(QUESTION, sample_documents, "en")
    assert result.scheme_ids == ["PM-KISAN", "PMAY-G"]
