"""Query orchestrator: drives one query through its lifecycle under a deadline."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Awaitable
from dataclasses import dataclass
from functools import partial

import structlog

from scheme_assist.context import INTENT, TRANSLATION, ServiceContext
from scheme_assist.eligibility.rules import EligibilityResult, SetValue
from scheme_assist.eligibility.service import EligibilityService
from scheme_assist.exceptions import (
    CircuitOpenError,
    ConfigurationError,
    ExternalProviderError,
    ValidationError,
)
from scheme_assist.generation import messages
from scheme_assist.generation.assembler import GenerationAssembler
from scheme_assist.models.domain import (
    Answer,
    EligibilityIntent,
    EligibilityRecord,
    NoMatch,
    Query,
    QueryRecord,
    QueryState,
    RankedDocuments,
)
from scheme_assist.models.schemas import (
    Citation,
    EligibilityPayload,
    FailurePayload,
    QueryRequest,
    QueryResponse,
    RuleOutcome,
)
from scheme_assist.observability.logger import get_logger
from scheme_assist.observability.metrics import (
    log_eligibility_metrics,
    log_query_metrics,
    log_retrieval_metrics,
)
from scheme_assist.observability.tracing import TraceContext
from scheme_assist.pipeline.state_machine import transition
from scheme_assist.protocols.language import IntentClassifier, Translator
from scheme_assist.protocols.stores import RecordStore
from scheme_assist.query.understanding import detect_language, normalize
from scheme_assist.retrieval.retrieval_engine import RetrievalEngine
from scheme_assist.speech.speech_gateway import SpeechGateway

logger = get_logger("query_orchestrator")

PIVOT_LANGUAGE = "en"

_REMOTE_ERRORS = (ExternalProviderError, CircuitOpenError)


@dataclass
class _Outcome:
    response: QueryResponse
    eligibility: EligibilityResult | None = None


class QueryOrchestrator:
    def __init__(
        self,
        retrieval: RetrievalEngine,
        assembler: GenerationAssembler,
        eligibility: EligibilityService,
        intent_classifier: IntentClassifier,
        context: ServiceContext,
        translator: Translator | None = None,
        speech: SpeechGateway | None = None,
        record_store: RecordStore | None = None,
    ) -> None:
        self._retrieval = retrieval
        self._assembler = assembler
        self._eligibility = eligibility
        self._intent = intent_classifier
        self._intent_guard = context.guard(INTENT)
        self._ctx = context
        self._translator = translator
        self._translation_guard = context.guard(TRANSLATION)
        self._speech = speech
        self._records = record_store
        self._settings = context.settings

    async def handle(self, request: QueryRequest) -> QueryResponse:
        text = normalize(request.text)
        language = request.language or detect_language(text, self._settings.default_language)
        query = Query(user_id=request.user_id, text=text, language=language)
        trace = TraceContext(trace_id=query.query_id)
        return await self._run(
            query,
            trace,
            self._answer_query(query, trace, request),
            request.deadline_ms,
        )

    async def handle_voice(
        self,
        audio: bytes,
        language: str,
        user_id: str,
        deadline_ms: int | None = None,
        voice: str | None = None,
    ) -> QueryResponse:
        if self._speech is None:
            raise ConfigurationError("no speech provider configured")
        query = Query(user_id=user_id, text="", language=language)
        trace = TraceContext(trace_id=query.query_id)
        request = QueryRequest(text="", user_id=user_id, language=language, speak=True, voice=voice)
        return await self._run(
            query,
            trace,
            self._answer_voice(query, trace, request, audio),
            deadline_ms,
        )

    async def _run(
        self,
        query: Query,
        trace: TraceContext,
        work: Awaitable[_Outcome],
        deadline_ms: int | None,
    ) -> QueryResponse:
        budget_s = (deadline_ms or self._settings.default_deadline_ms) / 1000
        structlog.contextvars.bind_contextvars(request_id=query.query_id, user_id=query.user_id)
        try:
            try:
                outcome = await asyncio.wait_for(work, timeout=budget_s)
            except asyncio.TimeoutError:
                logger.error(
                    "query_deadline_exceeded",
                    state=query.state.value,
                    budget_ms=round(budget_s * 1000),
                    elapsed_ms=round(trace.elapsed_ms, 2),
                    stages=trace.summary(),
                )
                outcome = _Outcome(
                    self._fail(query, "timeout", messages.TIMEOUT, detail=f"state={query.state.value}")
                )

            response = outcome.response
            if query.state is QueryState.RESPONSE_READY:
                transition(query, QueryState.DELIVERED)
            response.state = query.state.value
            response.latency_ms = round(trace.elapsed_ms, 2)

            log_query_metrics(
                query.query_id,
                response.status,
                response.state,
                query.language,
                trace.elapsed_ms,
                trace.stage_totals(),
                [s.stage for s in trace.spans if s.failed],
            )
            self._archive(query, response, outcome.eligibility)
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "user_id")

    async def _answer_voice(
        self,
        query: Query,
        trace: TraceContext,
        request: QueryRequest,
        audio: bytes,
    ) -> _Outcome:
        with trace.span("asr"):
            try:
                transcript = await self._speech.transcribe(audio, query.language)
            except _REMOTE_ERRORS as e:
                logger.warning("asr_failed", service="speech", error=str(e))
                return _Outcome(self._fail(query, "retry_prompt", messages.RETRY_PROMPT))
        query.text = normalize(transcript.text)
        return await self._answer_query(query, trace, request)

    async def _answer_query(
        self, query: Query, trace: TraceContext, request: QueryRequest
    ) -> _Outcome:
        if not query.text.strip():
            return _Outcome(self._fail(query, "retry_prompt", messages.RETRY_PROMPT))
        transition(query, QueryState.TRANSCRIPT_VALIDATED)

        working_text, working_language = await self._to_pivot(query, trace)

        transition(query, QueryState.RETRIEVING)
        with trace.span("retrieval"):
            try:
                outcome = await self._retrieval.retrieve(
                    working_text,
                    working_language,
                    k=request.top_k or self._settings.retrieval_top_k,
                )
            except ValidationError as e:
                return _Outcome(
                    self._fail(
                        query,
                        "validation",
                        messages.SERVICE_UNAVAILABLE,
                        detail=str(e),
                        retryable=False,
                    )
                )
            except _REMOTE_ERRORS as e:
                logger.error("retrieval_unavailable", error=str(e), error_type=type(e).__name__)
                return _Outcome(self._fail(query, "unavailable", messages.SERVICE_UNAVAILABLE))

        if isinstance(outcome, NoMatch):
            log_retrieval_metrics(query.query_id, 0, None, cached=False)
            transition(query, QueryState.RESPONSE_READY)
            return _Outcome(
                self._response(
                    query,
                    status="no_match",
                    answer=messages.message(messages.NO_MATCHING_SCHEMES, query.language),
                )
            )

        documents = outcome.documents
        log_retrieval_metrics(
            query.query_id, len(documents), documents[0].score, cached=outcome.from_cache
        )

        transition(query, QueryState.GENERATING)
        with trace.span("generation"):
            generated = await self._assembler.assemble(working_text, documents, working_language)

        if isinstance(generated, Answer):
            status = "answered"
            answer_text = await self._from_pivot(generated.text, working_language, query)
        else:
            status = "fallback"
            answer_text = messages.message(generated.reason, query.language)

        eligibility_result = None
        eligibility_payload = None
        intent = await self._classify(query)
        if intent is not None:
            scheme_id = intent.scheme_id or request.scheme_id or documents[0].scheme_id
            transition(query, QueryState.ELIGIBILITY_CHECK)
            with trace.span("eligibility", scheme_id=scheme_id):
                eligibility_result, eligibility_payload = await self._check_eligibility(
                    query, scheme_id
                )

        transition(query, QueryState.RESPONSE_READY)
        response = self._response(
            query,
            status=status,
            answer=answer_text,
            citations=_citations(outcome),
            eligibility=eligibility_payload,
            from_cache=isinstance(generated, Answer) and generated.from_cache,
        )

        if request.speak:
            await self._speak(response, query, request.voice, trace)
        return _Outcome(response, eligibility_result)

    async def _classify(self, query: Query) -> EligibilityIntent | None:
        try:
            return await self._intent_guard.call(
                "classify", self._intent.classify, query.text, query.language
            )
        except _REMOTE_ERRORS as e:
            logger.warning("intent_unavailable", error=str(e), error_type=type(e).__name__)
            return None

    async def _check_eligibility(
        self, query: Query, scheme_id: str
    ) -> tuple[EligibilityResult | None, EligibilityPayload]:
        try:
            result = await self._eligibility.check(query.user_id, scheme_id)
            guidance = None
            if result.reason is None and result.eligible:
                spec = await self._eligibility.get_spec(scheme_id)
                guidance = spec.application_guidance or None
        except ValidationError as e:
            logger.warning("eligibility_rules_missing", scheme_id=scheme_id, error=str(e))
            return None, _unavailable_payload(scheme_id, query.language)
        except _REMOTE_ERRORS as e:
            logger.error(
                "eligibility_unavailable",
                scheme_id=scheme_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None, _unavailable_payload(scheme_id, query.language)

        log_eligibility_metrics(
            query.query_id,
            scheme_id,
            result.eligible,
            len(result.passed_rules),
            len(result.failed_rules),
            result.reason,
        )

        if result.reason is not None:
            key = messages.INSUFFICIENT_PROFILE
        elif result.eligible:
            key = messages.ELIGIBLE
            if guidance:
                guidance = await self._from_pivot(guidance, PIVOT_LANGUAGE, query)
        else:
            key = messages.NOT_ELIGIBLE

        payload = EligibilityPayload(
            scheme_id=scheme_id,
            eligible=result.eligible,
            confidence=result.confidence,
            message=messages.message(key, query.language, scheme_id=scheme_id),
            reason=result.reason,
            missing_fields=[f.value for f in result.missing_fields],
            rules=[
                RuleOutcome(
                    field=e.rule.field.value,
                    operator=e.rule.operator.value,
                    value=(
                        sorted(e.rule.value.values)
                        if isinstance(e.rule.value, SetValue)
                        else e.rule.value.value
                    ),
                    required=e.rule.required,
                    passed=e.passed,
                    reason=e.reason,
                )
                for e in result.evaluations
            ],
            application_guidance=guidance,
        )
        return result, payload

    async def _to_pivot(self, query: Query, trace: TraceContext) -> tuple[str, str]:
        """Translate the question to the retrieval language when possible."""
        if self._translator is None or query.language == PIVOT_LANGUAGE:
            return query.text, query.language
        with trace.span("translate_in"):
            try:
                text = await self._translation_guard.call(
                    "translate", self._translator.translate, query.text, query.language, PIVOT_LANGUAGE
                )
            except _REMOTE_ERRORS as e:
                logger.warning("translation_degraded", direction="in", error=str(e))
                return query.text, query.language
        return text, PIVOT_LANGUAGE

    async def _from_pivot(self, text: str, from_language: str, query: Query) -> str:
        if self._translator is None or from_language == query.language:
            return text
        try:
            return await self._translation_guard.call(
                "translate", self._translator.translate, text, from_language, query.language
            )
        except _REMOTE_ERRORS as e:
            logger.warning("translation_degraded", direction="out", error=str(e))
            return text

    async def _speak(
        self, response: QueryResponse, query: Query, voice: str | None, trace: TraceContext
    ) -> None:
        if self._speech is None:
            logger.warning("tts_skipped", reason="no speech provider configured")
            response.speech_error = "speech_unavailable"
            return
        spoken = response.answer
        if response.eligibility is not None:
            spoken = f"{spoken} {response.eligibility.message}"
            if response.eligibility.application_guidance:
                spoken = f"{spoken} {response.eligibility.application_guidance}"
        with trace.span("tts"):
            try:
                speech = await self._speech.synthesize(spoken, query.language, voice)
            except _REMOTE_ERRORS as e:
                logger.error("tts_failed", service="speech", error=str(e))
                response.speech_error = "speech_unavailable"
                return
        response.audio_base64 = base64.b64encode(speech.audio).decode("ascii")
        response.audio_duration_s = speech.duration_s

    def _fail(
        self,
        query: Query,
        kind: str,
        message_key: str,
        detail: str | None = None,
        retryable: bool = True,
    ) -> QueryResponse:
        transition(query, QueryState.FAILED)
        text = messages.message(message_key, query.language)
        logger.warning("query_failed", kind=kind, detail=detail)
        return self._response(
            query,
            status="failed",
            answer=text,
            failure=FailurePayload(kind=kind, message=text, retryable=retryable, detail=detail),
        )

    @staticmethod
    def _response(query: Query, **fields) -> QueryResponse:
        return QueryResponse(
            query_id=query.query_id,
            state=query.state.value,
            language=query.language,
            **fields,
        )

    def _archive(
        self,
        query: Query,
        response: QueryResponse,
        eligibility: EligibilityResult | None,
    ) -> None:
        if self._records is None:
            return
        record = QueryRecord(
            query_id=query.query_id,
            user_id=query.user_id,
            text=query.text,
            language=query.language,
            created_at=query.created_at,
            state=query.state.value,
            status=response.status,
            answer=response.answer,
        )
        queue = self._ctx.write_queue
        queue.enqueue(
            "append_query_record",
            partial(self._records.append_query_record, record),
            user_id=query.user_id,
            query_id=query.query_id,
        )
        if eligibility is not None:
            queue.enqueue(
                "append_eligibility_record",
                partial(
                    self._records.append_eligibility_record,
                    EligibilityRecord(
                        query_id=query.query_id,
                        user_id=query.user_id,
                        scheme_id=eligibility.scheme_id,
                        eligible=eligibility.eligible,
                        confidence=eligibility.confidence,
                        reason=eligibility.reason,
                        evaluations=[
                            {"rule": e.rule.describe(), "passed": e.passed, "reason": e.reason}
                            for e in eligibility.evaluations
                        ],
                    ),
                ),
                user_id=query.user_id,
                query_id=query.query_id,
            )


def _citations(outcome: RankedDocuments) -> list[Citation]:
    return [
        Citation(
            scheme_id=d.scheme_id,
            chunk_id=d.chunk_id,
            section=d.section.value,
            score=round(d.score, 4),
        )
        for d in outcome.documents
    ]


def _unavailable_payload(scheme_id: str, language: str) -> EligibilityPayload:
    return EligibilityPayload(
        scheme_id=scheme_id,
        eligible=False,
        confidence=0.0,
        message=messages.message(messages.ELIGIBILITY_UNAVAILABLE, language, scheme_id=scheme_id),
        available=False,
    )
