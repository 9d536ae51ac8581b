"""Text and voice query endpoints."""

from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException, status

from scheme_assist.api.dependencies import get_orchestrator
from scheme_assist.exceptions import ConfigurationError, SchemeAssistError, ValidationError
from scheme_assist.models.schemas import QueryRequest, QueryResponse, VoiceQueryRequest
from scheme_assist.pipeline.query_orchestrator import QueryOrchestrator

router = APIRouter()


@router.post("/query", response_model=QueryResponse)
async def query(
    request: QueryRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
) -> QueryResponse:
    try:
        return await orchestrator.handle(request)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except SchemeAssistError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/query/voice", response_model=QueryResponse)
async def voice_query(
    request: VoiceQueryRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
) -> QueryResponse:
    try:
        audio = base64.b64decode(request.audio_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="audio_base64 is not valid base64",
        )
    try:
        return await orchestrator.handle_voice(
            audio,
            request.language,
            request.user_id,
            deadline_ms=request.deadline_ms,
            voice=request.voice,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except SchemeAssistError as e:
        raise HTTPException(status_code=500, detail=str(e))
