"""FAISS-backed scheme index with chunk metadata, replacement and soft delete."""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path

import faiss
import numpy as np

from scheme_assist.exceptions import ValidationError
from scheme_assist.models.domain import IndexHit, SchemeChunk, Section
from scheme_assist.observability.logger import get_logger

logger = get_logger("faiss_store")


@dataclass
class _ChunkMeta:
    chunk_id: str
    scheme_id: str
    text: str
    section: str


class FAISSVectorStore:
    """Inner-product index over L2-normalized vectors (cosine similarity).

    Replacing a scheme removes its previous vectors; ``mark_inactive`` only
    hides a scheme from queries and keeps its vectors and metadata.
    """

    def __init__(self, dimensions: int, index_path: str | None = None) -> None:
        self._dimensions = dimensions
        self._index_path = index_path
        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(dimensions))
        self._meta: dict[int, _ChunkMeta] = {}
        self._chunk_id_to_int: dict[str, int] = {}
        self._inactive: set[str] = set()
        self._next_id: int = 0
        self._write_lock = asyncio.Lock()

        if index_path:
            self._try_load(index_path)

    def _try_load(self, path: str) -> None:
        index_file = os.path.join(path, "index.faiss")
        meta_file = os.path.join(path, "metadata.json")
        if os.path.exists(index_file) and os.path.exists(meta_file):
            self._index = faiss.read_index(index_file)
            with open(meta_file) as f:
                data = json.load(f)
            self._meta = {int(k): _ChunkMeta(**v) for k, v in data["meta"].items()}
            self._chunk_id_to_int = {m.chunk_id: i for i, m in self._meta.items()}
            self._inactive = set(data["inactive"])
            self._next_id = data["next_id"]
            logger.info("faiss_loaded", size=self._index.ntotal, path=path)

    async def query(self, vector: list[float], k: int) -> list[IndexHit]:
        return await asyncio.to_thread(self.search, np.array(vector, dtype=np.float32), k)

    def search(self, query_embedding: np.ndarray, top_k: int) -> list[IndexHit]:
        if self._index.ntotal == 0:
            return []
        query_embedding = query_embedding.astype(np.float32).reshape(1, -1)
        faiss.normalize_L2(query_embedding)
        hidden = sum(1 for m in self._meta.values() if m.scheme_id in self._inactive)
        fetch = min(top_k + hidden, self._index.ntotal)
        scores, indices = self._index.search(query_embedding, fetch)
        results = []
        for idx, score in zip(indices[0], scores[0]):
            idx = int(idx)
            if idx == -1:
                continue
            meta = self._meta.get(idx)
            if meta is None or meta.scheme_id in self._inactive:
                continue
            results.append(
                IndexHit(
                    chunk_id=meta.chunk_id,
                    scheme_id=meta.scheme_id,
                    text=meta.text,
                    score=float(score),
                    section=Section(meta.section),
                )
            )
        return results[:top_k]

    async def upsert(
        self, scheme_id: str, chunks: list[SchemeChunk], embeddings: list[list[float]]
    ) -> None:
        if len(chunks) != len(embeddings):
            raise ValidationError("embeddings", "one embedding per chunk is required")
        async with self._write_lock:
            await asyncio.to_thread(self._replace, scheme_id, chunks, embeddings)

    def _replace(
        self, scheme_id: str, chunks: list[SchemeChunk], embeddings: list[list[float]]
    ) -> None:
        vectors = np.array(embeddings, dtype=np.float32)
        if chunks and (vectors.ndim != 2 or vectors.shape[1] != self._dimensions):
            raise ValidationError(
                "embeddings", f"expected {self._dimensions} dimensions, got {vectors.shape[-1]}"
            )

        stale = [i for i, m in self._meta.items() if m.scheme_id == scheme_id]
        if stale:
            self._index.remove_ids(np.array(stale, dtype=np.int64))
            for i in stale:
                del self._chunk_id_to_int[self._meta.pop(i).chunk_id]
        self._inactive.discard(scheme_id)
        if not chunks:
            return

        faiss.normalize_L2(vectors)
        int_ids = []
        for chunk in chunks:
            int_id = self._next_id
            self._next_id += 1
            self._meta[int_id] = _ChunkMeta(
                chunk_id=chunk.chunk_id,
                scheme_id=chunk.scheme_id,
                text=chunk.text,
                section=chunk.section.value,
            )
            self._chunk_id_to_int[chunk.chunk_id] = int_id
            int_ids.append(int_id)
        self._index.add_with_ids(vectors, np.array(int_ids, dtype=np.int64))
        logger.info(
            "faiss_upserted",
            scheme_id=scheme_id,
            replaced=len(stale),
            added=len(chunks),
            total=self._index.ntotal,
        )

    async def mark_inactive(self, scheme_id: str) -> None:
        async with self._write_lock:
            self._inactive.add(scheme_id)
        logger.info("scheme_marked_inactive", scheme_id=scheme_id)

    def save(self, path: str | None = None) -> None:
        path = path or self._index_path
        if not path:
            return
        Path(path).mkdir(parents=True, exist_ok=True)
        faiss.write_index(self._index, os.path.join(path, "index.faiss"))
        with open(os.path.join(path, "metadata.json"), "w") as f:
            json.dump(
                {
                    "meta": {i: asdict(m) for i, m in self._meta.items()},
                    "inactive": sorted(self._inactive),
                    "next_id": self._next_id,
                },
                f,
            )
        logger.info("faiss_saved", path=path, size=self._index.ntotal)

    @property
    def size(self) -> int:
        return self._index.ntotal

    def is_active(self, scheme_id: str) -> bool:
        return scheme_id not in self._inactive
