"""Protocols for the embedding provider and the scheme vector index."""

from __future__ import annotations

from typing import Protocol

from scheme_assist.models.domain import IndexHit, SchemeChunk


class Embedder(Protocol):
    @property
    def dimensions(self) -> int: ...

    async def embed_query(self, query: str) -> list[float]: ...

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """One vector per text, in input order."""
        ...


class VectorIndex(Protocol):
    async def query(self, vector: list[float], k: int) -> list[IndexHit]: ...

    async def upsert(
        self, scheme_id: str, chunks: list[SchemeChunk], embeddings: list[list[float]]
    ) -> None:
        """Replace every chunk indexed for ``scheme_id``."""
        ...

    async def mark_inactive(self, scheme_id: str) -> None:
        """Soft delete. Chunks stop matching but are never purged."""
        ...
