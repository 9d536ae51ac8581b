"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from scheme_assist.api.dependencies import get_service_context, get_vector_store
from scheme_assist.context import ServiceContext
from scheme_assist.models.schemas import HealthResponse
from scheme_assist.resilience.circuit_breaker import BreakerState
from scheme_assist.vectorstore.faiss_store import FAISSVectorStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    context: ServiceContext = Depends(get_service_context),
    vector_store: FAISSVectorStore = Depends(get_vector_store),
) -> HealthResponse:
    breakers = {name: b.state.value for name, b in context.breakers.items()}
    degraded = any(state != BreakerState.CLOSED.value for state in breakers.values())
    return HealthResponse(
        status="degraded" if degraded else "ok",
        index_size=vector_store.size,
        cache_entries=context.cache.size,
        pending_writes=context.write_queue.pending,
        breakers=breakers,
    )
