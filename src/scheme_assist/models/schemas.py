"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from scheme_assist.models.domain import Section


class QueryRequest(BaseModel):
    text: str
    user_id: str
    language: str | None = None
    scheme_id: str | None = None
    deadline_ms: int | None = Field(default=None, gt=0)
    top_k: int | None = Field(default=None, ge=1, le=20)
    speak: bool = False
    voice: str | None = None


class VoiceQueryRequest(BaseModel):
    audio_base64: str
    user_id: str
    language: str = "en"
    deadline_ms: int | None = Field(default=None, gt=0)
    voice: str | None = None


class Citation(BaseModel):
    scheme_id: str
    chunk_id: str
    section: str
    score: float


class RuleOutcome(BaseModel):
    field: str
    operator: str
    value: float | str | list[str]
    required: bool
    passed: bool
    reason: str


class EligibilityPayload(BaseModel):
    scheme_id: str
    eligible: bool
    confidence: float
    message: str
    reason: str | None = None
    missing_fields: list[str] = Field(default_factory=list)
    rules: list[RuleOutcome] = Field(default_factory=list)
    application_guidance: str | None = None
    available: bool = True


class FailurePayload(BaseModel):
    kind: Literal["retry_prompt", "timeout", "unavailable", "validation"]
    message: str
    retryable: bool = True
    detail: str | None = None


class QueryResponse(BaseModel):
    query_id: str
    state: str
    status: Literal["answered", "no_match", "fallback", "failed"]
    language: str
    answer: str
    citations: list[Citation] = Field(default_factory=list)
    eligibility: EligibilityPayload | None = None
    failure: FailurePayload | None = None
    from_cache: bool = False
    audio_base64: str | None = None
    audio_duration_s: float | None = None
    speech_error: str | None = None
    latency_ms: float = 0.0


class SchemeIngestRequest(BaseModel):
    scheme_id: str
    sections: dict[Section, str]
    eligibility: dict | None = None


class SchemeIngestResponse(BaseModel):
    scheme_id: str
    chunks_indexed: int
    rules_saved: bool


class HealthResponse(BaseModel):
    status: str
    index_size: int
    cache_entries: int
    pending_writes: int
    breakers: dict[str, str]
