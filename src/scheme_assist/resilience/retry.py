"""Bounded retry with exponential back-off for transient provider errors."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from scheme_assist.exceptions import (
    CircuitOpenError,
    ExternalProviderError,
    RetryExhaustedError,
    ValidationError,
)
from scheme_assist.observability.logger import get_logger

logger = get_logger("retry")

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Only explicitly classified provider errors are retried."""
    if isinstance(exc, (ValidationError, CircuitOpenError)):
        return False
    return isinstance(exc, ExternalProviderError) and exc.transient


class RetryPolicy:
    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Wait between attempt ``attempt`` and ``attempt + 1`` (0-based)."""
        return self.base_delay * (2**attempt)

    async def run(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        service: str = "unknown",
        operation: str = "call",
        **kwargs: Any,
    ) -> T:
        last_exc: ExternalProviderError | None = None
        for attempt in range(self.max_attempts):
            try:
                return await fn(*args, **kwargs)
            except Exception as exc:
                if not is_transient(exc):
                    raise
                last_exc = exc
                if attempt < self.max_attempts - 1:
                    delay = self.delay_for(attempt)
                    logger.warning(
                        "retrying",
                        service=service,
                        operation=operation,
                        attempt=attempt + 1,
                        max_attempts=self.max_attempts,
                        delay_s=delay,
                        error=str(exc),
                    )
                    await self._sleep(delay)

        logger.error(
            "retries_exhausted",
            service=service,
            operation=operation,
            attempts=self.max_attempts,
            error=str(last_exc),
        )
        raise RetryExhaustedError(service, operation, self.max_attempts, last_exc) from last_exc
