"""Splits scheme text into section-tagged chunks and indexes them."""

from __future__ import annotations

import hashlib
import re

from scheme_assist.cache import keys
from scheme_assist.context import EMBEDDING, VECTOR_INDEX, ServiceContext
from scheme_assist.models.domain import SchemeChunk, Section
from scheme_assist.observability.logger import get_logger
from scheme_assist.protocols.retrieval import Embedder, VectorIndex

logger = get_logger("scheme_indexer")

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def split_section(text: str, max_chars: int = 800) -> list[str]:
    """Paragraph chunks, merging short neighbours up to ``max_chars``."""
    chunks: list[str] = []
    current = ""
    for para in (p.strip() for p in _PARAGRAPH_SPLIT.split(text)):
        if not para:
            continue
        if current and len(current) + len(para) + 2 > max_chars:
            chunks.append(current)
            current = para
        else:
            current = f"{current}\n\n{para}" if current else para
    if current:
        chunks.append(current)
    return chunks


def chunk_id_for(scheme_id: str, section: Section, position: int, text: str) -> str:
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{scheme_id}:{section.value}:{position:03d}:{digest}"


class SchemeIndexer:
    def __init__(
        self,
        embedder: Embedder,
        vector_index: VectorIndex,
        context: ServiceContext,
        max_chunk_chars: int = 800,
    ) -> None:
        self._embedder = embedder
        self._index = vector_index
        self._ctx = context
        self._embed_guard = context.guard(EMBEDDING)
        self._index_guard = context.guard(VECTOR_INDEX)
        self._max_chunk_chars = max_chunk_chars

    def build_chunks(self, scheme_id: str, sections: dict[Section, str]) -> list[SchemeChunk]:
        chunks = []
        for section, text in sections.items():
            for position, piece in enumerate(split_section(text, self._max_chunk_chars)):
                chunks.append(
                    SchemeChunk(
                        chunk_id=chunk_id_for(scheme_id, section, position, piece),
                        scheme_id=scheme_id,
                        text=piece,
                        section=section,
                    )
                )
        return chunks

    async def index_scheme(self, scheme_id: str, sections: dict[Section, str]) -> int:
        chunks = self.build_chunks(scheme_id, sections)
        embeddings = await self._embed_guard.call(
            "embed_texts", self._embedder.embed_texts, [c.text for c in chunks]
        )
        await self._index_guard.call("upsert", self._index.upsert, scheme_id, chunks, embeddings)
        # cached rankings may now point at replaced chunks
        self._ctx.cache.clear(keys.RETRIEVAL)
        logger.info("scheme_indexed", scheme_id=scheme_id, chunks=len(chunks))
        return len(chunks)

    async def retire_scheme(self, scheme_id: str) -> None:
        await self._index_guard.call("mark_inactive", self._index.mark_inactive, scheme_id)
        self._ctx.cache.clear(keys.RETRIEVAL)
        logger.info("scheme_retired", scheme_id=scheme_id)
