"""Tests for retrieval ranking, caching and error propagation."""

import pytest
from conftest import FakeEmbedder, FakeVectorIndex

from scheme_assist.context import EMBEDDING
from scheme_assist.exceptions import CircuitOpenError, RetryExhaustedError, ValidationError
from scheme_assist.models.domain import IndexHit, NoMatch, RankedDocuments
from scheme_assist.resilience.circuit_breaker import BreakerState
from scheme_assist.retrieval.retrieval_engine import RetrievalEngine, rank_hits


async def test_scenario_a_ranked_then_cached(context, sample_hits, clock):
    embedder = FakeEmbedder()
    index = FakeVectorIndex(sample_hits)
    engine = RetrievalEngine(embedder, index, context)

    first = await engine.retrieve("PM-KISAN benefits", "en", k=2)

    assert isinstance(first, RankedDocuments)
    assert [d.chunk_id for d in first.documents] == [
        "PM-KISAN:eligibility:000",
        "PM-KISAN:benefits:000",
    ]
    assert [d.score for d in first.documents] == [0.91, 0.82]
    assert not first.from_cache

    clock.advance(60.0)
    second = await engine.retrieve("PM-KISAN benefits", "en", k=2)

    assert second.from_cache
    assert second.documents == first.documents
    assert embedder.calls == 1
    assert index.calls == 1


async def test_returns_min_of_k_and_available(context, sample_hits):
    engine = RetrievalEngine(FakeEmbedder(), FakeVectorIndex(sample_hits), context)
    result = await engine.retrieve("housing", "en", k=10)
    assert len(result) == 3
    scores = [d.score for d in result.documents]
    assert scores == sorted(scores, reverse=True)


def test_ties_broken_by_chunk_id():
    hits = [
        IndexHit(chunk_id="b", scheme_id="S", text="x", score=0.5),
        IndexHit(chunk_id="a", scheme_id="S", text="y", score=0.5),
        IndexHit(chunk_id="c", scheme_id="S", text="z", score=0.7),
    ]
    assert [d.chunk_id for d in rank_hits(hits, 3)] == ["c", "a", "b"]


async def test_empty_index_is_no_match_not_error(context):
    engine = RetrievalEngine(FakeEmbedder(), FakeVectorIndex([]), context)
    result = await engine.retrieve("anything", "hi", k=5)
    assert isinstance(result, NoMatch)
    assert result.language == "hi"


async def test_no_match_is_not_cached(context, sample_hits):
    index = FakeVectorIndex([])
    engine = RetrievalEngine(FakeEmbedder(), index, context)
    await engine.retrieve("pension", "en")
    index.hits = list(sample_hits)
    result = await engine.retrieve("pension", "en")
    assert isinstance(result, RankedDocuments)
    assert index.calls == 2


async def test_cache_entry_expires(context, sample_hits, clock, settings):
    embedder = FakeEmbedder()
    engine = RetrievalEngine(embedder, FakeVectorIndex(sample_hits), context)
    await engine.retrieve("PM-KISAN benefits", "en")
    clock.advance(settings.cache_retrieval_ttl_s + 1)
    result = await engine.retrieve("PM-KISAN benefits", "en")
    assert not result.from_cache
    assert embedder.calls == 2


async def test_language_is_part_of_cache_key(context, sample_hits):
    embedder = FakeEmbedder()
    engine = RetrievalEngine(embedder, FakeVectorIndex(sample_hits), context)
    await engine.retrieve("pm kisan", "en")
    await engine.retrieve("pm kisan", "hi")
    assert embedder.calls == 2


@pytest.mark.parametrize("text,k", [("", 5), ("   ", 5), ("pm kisan", 0)])
async def test_invalid_input_rejected(context, text, k):
    engine = RetrievalEngine(FakeEmbedder(), FakeVectorIndex([]), context)
    with pytest.raises(ValidationError):
        await engine.retrieve(text, "en", k=k)


async def test_dimension_mismatch_is_validation_error(context, sample_hits):
    engine = RetrievalEngine(FakeEmbedder(dimensions=8), FakeVectorIndex(sample_hits), context)
    with pytest.raises(ValidationError):
        await engine.retrieve("pm kisan", "en")


async def test_transient_embedding_failure_is_retried(context, sample_hits):
    embedder = FakeEmbedder(failures=1)
    engine = RetrievalEngine(embedder, FakeVectorIndex(sample_hits), context)
    result = await engine.retrieve("pm kisan", "en")
    assert isinstance(result, RankedDocuments)
    assert embedder.calls == 2


async def test_persistent_embedding_failure_propagates(context, sample_hits):
    embedder = FakeEmbedder(failures=100)
    engine = RetrievalEngine(embedder, FakeVectorIndex(sample_hits), context)
    with pytest.raises(RetryExhaustedError):
        await engine.retrieve("pm kisan", "en")
    assert embedder.calls == 3


async def test_open_embedding_circuit_fails_fast(context, sample_hits):
    embedder = FakeEmbedder(failures=100)
    engine = RetrievalEngine(embedder, FakeVectorIndex(sample_hits), context)
    with pytest.raises(RetryExhaustedError):
        await engine.retrieve("first", "en")
    # fourth and fifth failures trip the breaker mid-retry
    with pytest.raises(CircuitOpenError):
        await engine.retrieve("second", "en")
    assert context.breakers[EMBEDDING].state is BreakerState.OPEN
    assert embedder.calls == 5

    with pytest.raises(CircuitOpenError):
        await engine.retrieve("third", "en")
    assert embedder.calls == 5
