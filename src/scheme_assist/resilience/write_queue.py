"""Deferred-persistence queue drained by a single worker, with dead-lettering."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import uuid4

from scheme_assist.exceptions import WriteQueueExhausted
from scheme_assist.observability.logger import get_logger

logger = get_logger("write_queue")


@dataclass
class QueuedWrite:
    operation: str
    action: Callable[[], Awaitable[Any]]
    context: dict = field(default_factory=dict)  # user_id, query_id, ...
    attempts: int = 0
    next_attempt_at: float = 0.0
    last_error: str | None = None
    entry_id: str = field(default_factory=lambda: str(uuid4()))
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DeadLetterSink(Protocol):
    async def record_dead_letter(self, entry: QueuedWrite) -> None: ...


class InMemoryDeadLetterSink:
    def __init__(self) -> None:
        self.entries: list[QueuedWrite] = []

    async def record_dead_letter(self, entry: QueuedWrite) -> None:
        self.entries.append(entry)


class WriteQueue:
    """Ordered best-effort writes.

    The worker attempts the earliest-enqueued entry whose retry instant has
    arrived. A failed entry is rescheduled ``base_delay * 2**attempts`` later;
    once ``attempts`` reaches ``max_attempts`` it moves to the dead-letter
    sink and draining continues with the rest of the queue.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        dead_letter_sink: DeadLetterSink | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.dead_letter_sink = dead_letter_sink or InMemoryDeadLetterSink()
        self._clock = clock
        self._entries: list[QueuedWrite] = []
        self._wakeup = asyncio.Event()
        self._worker: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return len(self._entries)

    def entries(self) -> list[QueuedWrite]:
        return list(self._entries)

    def enqueue(
        self,
        operation: str,
        action: Callable[[], Awaitable[Any]],
        **context: Any,
    ) -> QueuedWrite:
        entry = QueuedWrite(
            operation=operation,
            action=action,
            context=context,
            next_attempt_at=self._clock(),
        )
        self._entries.append(entry)
        self._wakeup.set()
        logger.debug("write_enqueued", operation=operation, entry_id=entry.entry_id, **context)
        return entry

    def _next_ready(self) -> QueuedWrite | None:
        now = self._clock()
        for entry in self._entries:
            if entry.next_attempt_at <= now:
                return entry
        return None

    def _seconds_until_next(self) -> float | None:
        if not self._entries:
            return None
        earliest = min(e.next_attempt_at for e in self._entries)
        return max(0.0, earliest - self._clock())

    async def drain_once(self) -> bool:
        """Attempt one ready entry. Returns False when nothing was ready."""
        entry = self._next_ready()
        if entry is None:
            return False

        try:
            await entry.action()
        except Exception as e:
            entry.attempts += 1
            entry.last_error = str(e)
            if entry.attempts >= self.max_attempts:
                self._entries.remove(entry)
                await self._dead_letter(entry, e)
            else:
                delay = self.base_delay * (2**entry.attempts)
                entry.next_attempt_at = self._clock() + delay
                logger.warning(
                    "write_failed_rescheduled",
                    operation=entry.operation,
                    entry_id=entry.entry_id,
                    attempts=entry.attempts,
                    delay_s=delay,
                    error=str(e),
                    **entry.context,
                )
            return True

        self._entries.remove(entry)
        logger.debug("write_completed", operation=entry.operation, entry_id=entry.entry_id)
        return True

    async def _dead_letter(self, entry: QueuedWrite, error: Exception) -> None:
        exhausted = WriteQueueExhausted(entry.operation, entry.attempts, error)
        logger.error(
            "write_dead_lettered",
            operation=entry.operation,
            entry_id=entry.entry_id,
            attempts=entry.attempts,
            error=str(exhausted),
            **entry.context,
        )
        try:
            await self.dead_letter_sink.record_dead_letter(entry)
        except Exception as sink_error:
            logger.error(
                "dead_letter_sink_failed",
                operation=entry.operation,
                entry_id=entry.entry_id,
                error=str(sink_error),
            )

    async def run(self) -> None:
        while True:
            processed = await self.drain_once()
            if processed:
                continue
            self._wakeup.clear()
            timeout = self._seconds_until_next()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass

    def start(self) -> asyncio.Task:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self.run(), name="write-queue-worker")
        return self._worker

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
