"""Embed the question, search the scheme index, rank and truncate."""

from __future__ import annotations

from scheme_assist.cache import keys
from scheme_assist.cache.ttl_cache import MISS
from scheme_assist.context import EMBEDDING, VECTOR_INDEX, ServiceContext
from scheme_assist.exceptions import ValidationError
from scheme_assist.models.domain import (
    IndexHit,
    NoMatch,
    RankedDocuments,
    RetrievedDocument,
)
from scheme_assist.observability.logger import get_logger
from scheme_assist.protocols.retrieval import Embedder, VectorIndex

logger = get_logger("retrieval_engine")


class RetrievalEngine:
    def __init__(
        self,
        embedder: Embedder,
        vector_index: VectorIndex,
        context: ServiceContext,
    ) -> None:
        self._embedder = embedder
        self._index = vector_index
        self._ctx = context
        self._embed_guard = context.guard(EMBEDDING)
        self._index_guard = context.guard(VECTOR_INDEX)

    async def retrieve(
        self, query_text: str, language: str, k: int = 5
    ) -> RankedDocuments | NoMatch:
        if k < 1:
            raise ValidationError("k", "must be at least 1")
        if not query_text or not query_text.strip():
            raise ValidationError("query_text", "must not be empty")

        cache_key = keys.query_key(query_text, language, k)
        cached = self._ctx.cache.get(keys.RETRIEVAL, cache_key)
        if cached is not MISS:
            logger.debug("retrieval_cache_hit", k=k, count=len(cached))
            return RankedDocuments(documents=list(cached), from_cache=True)

        vector = await self._embed_guard.call(
            "embed_query", self._embedder.embed_query, query_text
        )
        expected = self._ctx.settings.embedding_dimensions
        if len(vector) != expected:
            raise ValidationError(
                "embedding", f"expected {expected} dimensions, got {len(vector)}"
            )

        hits = await self._index_guard.call("query", self._index.query, vector, k)
        ranked = rank_hits(hits, k)

        logger.info(
            "retrieval_results",
            k=k,
            available=len(hits),
            returned=len(ranked),
            top_scores=[round(d.score, 4) for d in ranked],
        )

        if not ranked:
            return NoMatch(query_text=query_text, language=language)

        self._ctx.cache.put(keys.RETRIEVAL, cache_key, tuple(ranked))
        return RankedDocuments(documents=ranked)


def rank_hits(hits: list[IndexHit], k: int) -> list[RetrievedDocument]:
    """Top ``min(k, len(hits))`` by score desc, ties by chunk id asc."""
    ordered = sorted(hits, key=lambda h: (-h.score, h.chunk_id))
    return [
        RetrievedDocument(
            scheme_id=h.scheme_id,
            chunk_id=h.chunk_id,
            text=h.text,
            section=h.section,
            score=h.score,
        )
        for h in ordered[:k]
    ]
