"""Breaker + retry composition applied to every remote capability call."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from scheme_assist.exceptions import CircuitOpenError, ExternalProviderError
from scheme_assist.observability.logger import get_logger
from scheme_assist.resilience.circuit_breaker import CircuitBreaker
from scheme_assist.resilience.retry import RetryPolicy

logger = get_logger("guard")

T = TypeVar("T")


class ServiceGuard:
    """Runs each attempt through the service's breaker, retrying transient errors.

    An open circuit aborts the retry loop immediately.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        retry: RetryPolicy,
        call_timeout: float | None = None,
    ) -> None:
        self.breaker = breaker
        self.retry = retry
        self.call_timeout = call_timeout

    @property
    def service(self) -> str:
        return self.breaker.service

    async def call(
        self,
        operation: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        async def attempt() -> T:
            return await self.breaker.call(self._timed, operation, fn, *args, **kwargs)

        try:
            return await self.retry.run(attempt, service=self.service, operation=operation)
        except CircuitOpenError:
            logger.warning("circuit_open_rejected", service=self.service, operation=operation)
            raise

    async def _timed(
        self,
        operation: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        try:
            if self.call_timeout is None:
                return await fn(*args, **kwargs)
            return await asyncio.wait_for(fn(*args, **kwargs), timeout=self.call_timeout)
        except asyncio.TimeoutError as e:
            raise ExternalProviderError(
                self.service, operation, f"{self.service}.{operation} timed out"
            ) from e
        except ExternalProviderError as e:
            logger.warning(
                "provider_call_failed",
                service=e.service,
                operation=e.operation,
                transient=e.transient,
                error=str(e),
            )
            raise
