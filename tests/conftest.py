"""Shared test fixtures and fake capabilities."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from scheme_assist.config.settings import Settings
from scheme_assist.context import ServiceContext
from scheme_assist.eligibility.rules import CitizenProfile, SchemeEligibilitySpec, spec_from_dict
from scheme_assist.exceptions import ExternalProviderError
from scheme_assist.models.domain import (
    IndexHit,
    RetrievedDocument,
    SchemeChunk,
    Section,
    SpeechAudio,
    Transcript,
)

DIMENSIONS = 4


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeEmbedder:
    def __init__(self, failures: int = 0, dimensions: int = DIMENSIONS) -> None:
        self.calls = 0
        self.failures = failures
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed_query(self, query: str) -> list[float]:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ExternalProviderError("embedding", "embed_query", "rate limited")
        return [1.0] + [0.0] * (self._dimensions - 1)

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls += 1
        return [[1.0] + [0.0] * (self._dimensions - 1) for _ in texts]


class FakeVectorIndex:
    """Returns its hits unsorted and untruncated so ranking is the engine's job."""

    def __init__(self, hits: list[IndexHit] | None = None) -> None:
        self.hits = list(hits or [])
        self.calls = 0
        self.upserts: list[tuple[str, list[SchemeChunk]]] = []
        self.inactive: set[str] = set()

    async def query(self, vector: list[float], k: int) -> list[IndexHit]:
        self.calls += 1
        return [h for h in self.hits if h.scheme_id not in self.inactive]

    async def upsert(self, scheme_id, chunks, embeddings) -> None:
        self.upserts.append((scheme_id, list(chunks)))

    async def mark_inactive(self, scheme_id: str) -> None:
        self.inactive.add(scheme_id)


class ScriptedLLM:
    """Replays scripted outputs; exception instances in the script are raised."""

    def __init__(self, outputs: list | None = None, default: str | None = None) -> None:
        self.outputs = list(outputs or [])
        self.default = default
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt, system=None, temperature=0.1, max_tokens=1024) -> str:
        self.prompts.append(prompt)
        if self.outputs:
            out = self.outputs.pop(0)
        elif self.default is not None:
            out = self.default
        else:
            raise ExternalProviderError("generation", "generate", "script exhausted")
        if isinstance(out, BaseException):
            raise out
        return out


class FakeSpeechProvider:
    def __init__(self, transcript: str = "", asr_failures: int = 0, tts_failures: int = 0) -> None:
        self.transcript = transcript
        self.asr_failures = asr_failures
        self.tts_failures = tts_failures
        self.asr_calls = 0
        self.tts_calls = 0

    async def asr(self, audio: bytes, language: str) -> Transcript:
        self.asr_calls += 1
        if self.asr_failures > 0:
            self.asr_failures -= 1
            raise ExternalProviderError("speech", "asr", "vendor unavailable")
        return Transcript(text=self.transcript, confidence=0.93)

    async def tts(self, text: str, language: str, voice: str) -> SpeechAudio:
        self.tts_calls += 1
        if self.tts_failures > 0:
            self.tts_failures -= 1
            raise ExternalProviderError("speech", "tts", "vendor unavailable")
        return SpeechAudio(audio=b"RIFF-audio", duration_s=2.5)


class InMemoryProfileStore:
    def __init__(self, profiles: list[CitizenProfile] | None = None) -> None:
        self.profiles = {p.user_id: p for p in profiles or []}
        self.calls = 0

    async def get_profile(self, user_id: str) -> CitizenProfile | None:
        self.calls += 1
        return self.profiles.get(user_id)


class InMemoryRuleStore:
    def __init__(self, specs: list[SchemeEligibilitySpec] | None = None) -> None:
        self.specs = {s.scheme_id: s for s in specs or []}
        self.calls = 0

    async def get_spec(self, scheme_id: str) -> SchemeEligibilitySpec | None:
        self.calls += 1
        return self.specs.get(scheme_id)


class InMemoryRecordStore:
    def __init__(self) -> None:
        self.query_records = []
        self.eligibility_records = []

    async def append_query_record(self, record) -> None:
        self.query_records.append(record)

    async def append_eligibility_record(self, record) -> None:
        self.eligibility_records.append(record)


@pytest.fixture
def settings():
    """Test settings with temp paths and small budgets."""
    tmp = tempfile.mkdtemp()
    return Settings(
        openai_api_key="test-key",
        google_api_key="test-key",
        embedding_dimensions=DIMENSIONS,
        retry_max_attempts=3,
        retry_base_delay_s=0.1,
        breaker_failure_threshold=5,
        breaker_open_timeout_s=30.0,
        provider_call_timeout_s=5.0,
        sqlite_db_path=str(Path(tmp) / "test_scheme_assist.db"),
        faiss_index_path=str(Path(tmp) / "faiss_index"),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def context(settings, clock, sleeper):
    return ServiceContext.create(settings, clock=clock, sleep=sleeper)


@pytest.fixture
def sample_hits():
    return [
        IndexHit(
            chunk_id="PM-KISAN:benefits:000",
            scheme_id="PM-KISAN",
            text="Eligible farmer families receive 6000 rupees per year in three instalments.",
            score=0.82,
            section=Section.BENEFITS,
        ),
        IndexHit(
            chunk_id="PM-KISAN:eligibility:000",
            scheme_id="PM-KISAN",
            text="All landholding farmer families are eligible for income support.",
            score=0.91,
            section=Section.ELIGIBILITY,
        ),
        IndexHit(
            chunk_id="PMAY-G:general:000",
            scheme_id="PMAY-G",
            text="PMAY-G helps rural households without a pucca house build one.",
            score=0.40,
            section=Section.GENERAL,
        ),
    ]


@pytest.fixture
def sample_documents(sample_hits):
    return [
        RetrievedDocument(
            scheme_id=h.scheme_id,
            chunk_id=h.chunk_id,
            text=h.text,
            section=h.section,
            score=h.score,
        )
        for h in sorted(sample_hits, key=lambda h: -h.score)
    ]


@pytest.fixture
def kisan_spec():
    return spec_from_dict(
        {
            "scheme_id": "PM-KISAN",
            "combinator": "all",
            "rules": [
                {"field": "age", "operator": "ge", "value": 18, "required": True},
                {"field": "income", "operator": "le", "value": 250000, "required": True},
            ],
            "application_guidance": "Register on the PM-KISAN portal with your Aadhaar card.",
        }
    )


@pytest.fixture
def demo_profile():
    return CitizenProfile(user_id="u1", age=35, income=200000, caste_category="obc")
