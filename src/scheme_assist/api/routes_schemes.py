"""Scheme ingestion endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from scheme_assist.api.dependencies import get_indexer, get_rule_store, get_service_context
from scheme_assist.cache import keys
from scheme_assist.context import ServiceContext
from scheme_assist.eligibility.rules import spec_from_dict
from scheme_assist.exceptions import SchemeAssistError, ValidationError
from scheme_assist.ingestion.scheme_indexer import SchemeIndexer
from scheme_assist.models.schemas import SchemeIngestRequest, SchemeIngestResponse
from scheme_assist.storage.sqlite_profile_store import SQLiteRuleStore

router = APIRouter()


@router.post("/schemes", response_model=SchemeIngestResponse)
async def ingest_scheme(
    request: SchemeIngestRequest,
    indexer: SchemeIndexer = Depends(get_indexer),
    rule_store: SQLiteRuleStore = Depends(get_rule_store),
    context: ServiceContext = Depends(get_service_context),
) -> SchemeIngestResponse:
    try:
        spec = None
        if request.eligibility is not None:
            spec = spec_from_dict({**request.eligibility, "scheme_id": request.scheme_id})
        chunks = await indexer.index_scheme(request.scheme_id, request.sections)
        if spec is not None:
            await rule_store.save_spec(spec)
            context.cache.invalidate(keys.RULES, request.scheme_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except SchemeAssistError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return SchemeIngestResponse(
        scheme_id=request.scheme_id,
        chunks_indexed=chunks,
        rules_saved=spec is not None,
    )


@router.delete("/schemes/{scheme_id}", status_code=status.HTTP_204_NO_CONTENT)
async def retire_scheme(
    scheme_id: str,
    indexer: SchemeIndexer = Depends(get_indexer),
) -> None:
    try:
        await indexer.retire_scheme(scheme_id)
    except SchemeAssistError as e:
        raise HTTPException(status_code=500, detail=str(e))
