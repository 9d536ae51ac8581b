"""Namespaced in-memory cache with per-namespace TTL and lazy expiry."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from scheme_assist.observability.logger import get_logger

logger = get_logger("ttl_cache")


class _Miss:
    _instance: _Miss | None = None

    def __new__(cls) -> _Miss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


MISS: Any = _Miss()


@dataclass
class CacheEntry:
    namespace: str
    key: str
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class TTLCache:
    """Thread- and task-safe cache. Same-key writers race last-write-wins."""

    def __init__(
        self,
        namespace_ttls: dict[str, float] | None = None,
        default_ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttls = dict(namespace_ttls or {})
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()

    def ttl_for(self, namespace: str) -> float:
        return self._ttls.get(namespace, self._default_ttl)

    def get(self, namespace: str, key: str) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get((namespace, key))
            if entry is None:
                return MISS
            if entry.expired(now):
                del self._entries[(namespace, key)]
                return MISS
            return entry.value

    def put(self, namespace: str, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.ttl_for(namespace) if ttl is None else ttl
        entry = CacheEntry(
            namespace=namespace,
            key=key,
            value=value,
            expires_at=self._clock() + ttl,
        )
        with self._lock:
            self._entries[(namespace, key)] = entry

    def invalidate(self, namespace: str, key: str) -> None:
        with self._lock:
            self._entries.pop((namespace, key), None)

    def clear(self, namespace: str | None = None) -> None:
        with self._lock:
            if namespace is None:
                self._entries.clear()
                return
            for ns_key in [k for k in self._entries if k[0] == namespace]:
                del self._entries[ns_key]

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were reclaimed."""
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.expired(now)]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug("cache_swept", reclaimed=len(stale))
        return len(stale)

    async def run_sweeper(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            self.sweep()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)
