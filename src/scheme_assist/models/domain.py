"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4


class QueryState(str, Enum):
    RECEIVED = "received"
    TRANSCRIPT_VALIDATED = "transcript_validated"
    RETRIEVING = "retrieving"
    GENERATING = "generating"
    ELIGIBILITY_CHECK = "eligibility_check"
    RESPONSE_READY = "response_ready"
    DELIVERED = "delivered"
    FAILED = "failed"


class Section(str, Enum):
    ELIGIBILITY = "eligibility"
    BENEFITS = "benefits"
    PROCESS = "process"
    GENERAL = "general"


@dataclass
class Query:
    user_id: str
    text: str
    language: str
    query_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: QueryState = QueryState.RECEIVED
    history: list[QueryState] = field(default_factory=list)


@dataclass(frozen=True)
class RetrievedDocument:
    scheme_id: str
    chunk_id: str
    text: str
    section: Section
    score: float


@dataclass(frozen=True)
class RankedDocuments:
    documents: list[RetrievedDocument]
    from_cache: bool = False

    def __len__(self) -> int:
        return len(self.documents)


@dataclass(frozen=True)
class NoMatch:
    """Retrieval ran and found nothing relevant."""

    query_text: str
    language: str


@dataclass(frozen=True)
class IndexHit:
    chunk_id: str
    scheme_id: str
    text: str
    score: float
    section: Section = Section.GENERAL


@dataclass(frozen=True)
class SchemeChunk:
    chunk_id: str
    scheme_id: str
    text: str
    section: Section


@dataclass
class Answer:
    text: str
    scheme_ids: list[str]
    grounding_score: float
    regenerated: bool = False
    from_cache: bool = False


@dataclass
class Fallback:
    reason: str  # "insufficient_information", "generation_unavailable"
    message: str


@dataclass(frozen=True)
class Transcript:
    text: str
    confidence: float


@dataclass(frozen=True)
class SpeechAudio:
    audio: bytes
    duration_s: float


@dataclass(frozen=True)
class EligibilityIntent:
    scheme_id: str | None = None


@dataclass
class QueryRecord:
    query_id: str
    user_id: str
    text: str
    language: str
    created_at: datetime
    state: str
    status: str
    answer: str


@dataclass
class EligibilityRecord:
    query_id: str
    user_id: str
    scheme_id: str
    eligible: bool
    confidence: float
    reason: str | None
    evaluations: list[dict]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
