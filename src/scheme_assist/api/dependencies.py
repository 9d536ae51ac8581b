"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from scheme_assist.context import ServiceContext
from scheme_assist.ingestion.scheme_indexer import SchemeIndexer
from scheme_assist.pipeline.query_orchestrator import QueryOrchestrator
from scheme_assist.storage.sqlite_profile_store import SQLiteRuleStore
from scheme_assist.vectorstore.faiss_store import FAISSVectorStore


def get_orchestrator(request: Request) -> QueryOrchestrator:
    return request.app.state.orchestrator


def get_indexer(request: Request) -> SchemeIndexer:
    return request.app.state.indexer


def get_rule_store(request: Request) -> SQLiteRuleStore:
    return request.app.state.rule_store


def get_service_context(request: Request) -> ServiceContext:
    return request.app.state.service_context


def get_vector_store(request: Request) -> FAISSVectorStore:
    return request.app.state.vector_store
