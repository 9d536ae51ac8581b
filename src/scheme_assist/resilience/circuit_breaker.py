"""Circuit breaker guarding one external capability."""

from __future__ import annotations

import threading
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

from scheme_assist.exceptions import CircuitOpenError, ValidationError
from scheme_assist.observability.logger import get_logger

logger = get_logger("circuit_breaker")

T = TypeVar("T")


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Fail-fast guard.

    closed -> open after ``threshold`` consecutive failures. While open,
    calls raise CircuitOpenError without running the operation until
    ``open_timeout`` has elapsed; then exactly one trial call is admitted
    (half-open). A successful trial closes the circuit, a failed one
    re-opens it with a fresh timer.
    """

    def __init__(
        self,
        service: str,
        threshold: int = 5,
        open_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.service = service
        self.threshold = threshold
        self.open_timeout = open_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._last_failure_at: float | None = None
        self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def last_failure_at(self) -> float | None:
        return self._last_failure_at

    async def call(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        is_trial = self._admit()
        try:
            result = await fn(*args, **kwargs)
        except ValidationError:
            self._release(is_trial)
            raise
        except Exception:
            self._record_failure(is_trial)
            raise
        except BaseException:
            # cancelled mid-call: leave state untouched, free the trial slot
            self._release(is_trial)
            raise
        self._record_success(is_trial)
        return result

    def _admit(self) -> bool:
        with self._lock:
            if self._state is BreakerState.CLOSED:
                return False
            if self._state is BreakerState.OPEN:
                elapsed = self._clock() - (self._last_failure_at or 0.0)
                if elapsed < self.open_timeout:
                    raise CircuitOpenError(self.service)
                self._transition(BreakerState.HALF_OPEN)
            if self._trial_in_flight:
                raise CircuitOpenError(self.service)
            self._trial_in_flight = True
            return True

    def _release(self, is_trial: bool) -> None:
        if is_trial:
            with self._lock:
                self._trial_in_flight = False

    def _record_success(self, is_trial: bool) -> None:
        with self._lock:
            if is_trial:
                self._trial_in_flight = False
            if self._state is BreakerState.HALF_OPEN:
                self._transition(BreakerState.CLOSED)
            self._failures = 0

    def _record_failure(self, is_trial: bool) -> None:
        with self._lock:
            if is_trial:
                self._trial_in_flight = False
            self._last_failure_at = self._clock()
            if self._state is BreakerState.HALF_OPEN:
                self._transition(BreakerState.OPEN)
                return
            if self._state is BreakerState.CLOSED:
                self._failures += 1
                if self._failures >= self.threshold:
                    self._transition(BreakerState.OPEN)

    def _transition(self, new_state: BreakerState) -> None:
        old = self._state
        self._state = new_state
        logger.warning(
            "breaker_transition",
            service=self.service,
            from_state=old.value,
            to_state=new_state.value,
            failures=self._failures,
        )
