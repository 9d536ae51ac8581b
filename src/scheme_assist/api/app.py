"""FastAPI application factory with lifespan management."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from pathlib import Path

from fastapi import FastAPI

from scheme_assist.api.middleware import RequestContextMiddleware
from scheme_assist.api.routes_health import router as health_router
from scheme_assist.api.routes_query import router as query_router
from scheme_assist.api.routes_schemes import router as schemes_router
from scheme_assist.config.settings import Settings
from scheme_assist.context import ServiceContext
from scheme_assist.eligibility.service import EligibilityService
from scheme_assist.embeddings.openai_embedder import OpenAIEmbedder
from scheme_assist.generation.assembler import GenerationAssembler
from scheme_assist.generation.gemini_provider import GeminiProvider
from scheme_assist.ingestion.scheme_indexer import SchemeIndexer
from scheme_assist.observability.logger import get_logger, setup_logging
from scheme_assist.pipeline.query_orchestrator import QueryOrchestrator
from scheme_assist.protocols.speech import SpeechProvider
from scheme_assist.query.understanding import KeywordIntentClassifier
from scheme_assist.retrieval.retrieval_engine import RetrievalEngine
from scheme_assist.speech.speech_gateway import SpeechGateway
from scheme_assist.storage.sqlite_profile_store import SQLiteProfileStore, SQLiteRuleStore
from scheme_assist.storage.sqlite_record_store import SQLiteRecordStore
from scheme_assist.translation.llm_translator import LLMTranslator
from scheme_assist.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("app")


def build_lifespan(speech_provider: SpeechProvider | None = None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = Settings()
        setup_logging(settings.log_level, json_output=settings.log_json)

        Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)

        # Storage
        profile_store = SQLiteProfileStore(settings.sqlite_db_path)
        await profile_store.initialize()
        rule_store = SQLiteRuleStore(settings.sqlite_db_path)
        record_store = SQLiteRecordStore(settings.sqlite_db_path)

        # Shared state: cache, breakers, write queue
        context = ServiceContext.create(settings, dead_letter_sink=record_store)

        # Providers
        embedder = OpenAIEmbedder(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            batch_size=settings.embedding_batch_size,
            _dimensions=settings.embedding_dimensions,
        )
        llm = GeminiProvider(api_key=settings.google_api_key, model=settings.gemini_model)
        vector_store = FAISSVectorStore(
            dimensions=settings.embedding_dimensions,
            index_path=settings.faiss_index_path,
        )

        # Core
        retrieval = RetrievalEngine(embedder, vector_store, context)
        assembler = GenerationAssembler(llm, context)
        eligibility = EligibilityService(profile_store, rule_store, context)
        speech = SpeechGateway(speech_provider, context) if speech_provider else None

        orchestrator = QueryOrchestrator(
            retrieval=retrieval,
            assembler=assembler,
            eligibility=eligibility,
            intent_classifier=KeywordIntentClassifier(settings.scheme_aliases),
            context=context,
            translator=LLMTranslator(llm),
            speech=speech,
            record_store=record_store,
        )

        app.state.orchestrator = orchestrator
        app.state.indexer = SchemeIndexer(embedder, vector_store, context)
        app.state.rule_store = rule_store
        app.state.vector_store = vector_store
        app.state.service_context = context
        app.state.settings = settings

        context.write_queue.start()
        sweeper = asyncio.create_task(context.cache.run_sweeper(settings.cache_sweep_interval_s))

        logger.info(
            "startup_complete",
            index_size=vector_store.size,
            voice_enabled=speech is not None,
        )

        yield

        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await context.write_queue.stop()
        vector_store.save()
        logger.info("shutdown_complete", pending_writes=context.write_queue.pending)

    return lifespan


def create_app(speech_provider: SpeechProvider | None = None) -> FastAPI:
    app = FastAPI(
        title="Scheme Assist",
        version="1.0.0",
        description="Voice-first welfare scheme assistant: retrieval, grounding and eligibility",
        lifespan=build_lifespan(speech_provider),
    )
    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(query_router, tags=["query"])
    app.include_router(schemes_router, tags=["schemes"])
    return app
