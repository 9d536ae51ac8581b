"""Tests for the circuit breaker state machine."""

from __future__ import annotations

import asyncio

import pytest
from conftest import FakeClock

from scheme_assist.exceptions import CircuitOpenError, ExternalProviderError, ValidationError
from scheme_assist.resilience.circuit_breaker import BreakerState, CircuitBreaker


class Operation:
    def __init__(self) -> None:
        self.calls = 0
        self.fail = True

    async def __call__(self) -> str:
        self.calls += 1
        if self.fail:
            raise ExternalProviderError("generation", "generate", "boom")
        return "ok"


async def trip(breaker: CircuitBreaker, op: Operation, times: int) -> None:
    for _ in range(times):
        with pytest.raises(ExternalProviderError):
            await breaker.call(op)


async def test_scenario_c_open_then_recover():
    clock = FakeClock()
    breaker = CircuitBreaker("generation", threshold=5, open_timeout=30.0, clock=clock)
    op = Operation()

    await trip(breaker, op, 5)
    assert breaker.state is BreakerState.OPEN
    assert op.calls == 5

    with pytest.raises(CircuitOpenError):
        await breaker.call(op)
    assert op.calls == 5  # wrapped function never invoked

    clock.advance(30.0)
    op.fail = False
    assert await breaker.call(op) == "ok"
    assert breaker.state is BreakerState.CLOSED
    assert breaker.consecutive_failures == 0


async def test_stays_closed_below_threshold():
    breaker = CircuitBreaker("embedding", threshold=3, clock=FakeClock())
    op = Operation()
    await trip(breaker, op, 2)
    assert breaker.state is BreakerState.CLOSED
    assert breaker.consecutive_failures == 2


async def test_success_resets_consecutive_count():
    breaker = CircuitBreaker("embedding", threshold=3, clock=FakeClock())
    op = Operation()
    await trip(breaker, op, 2)
    op.fail = False
    await breaker.call(op)
    op.fail = True
    await trip(breaker, op, 2)
    assert breaker.state is BreakerState.CLOSED


async def test_open_before_timeout_rejects():
    clock = FakeClock()
    breaker = CircuitBreaker("speech", threshold=1, open_timeout=10.0, clock=clock)
    op = Operation()
    await trip(breaker, op, 1)
    clock.advance(9.99)
    with pytest.raises(CircuitOpenError):
        await breaker.call(op)
    assert op.calls == 1


async def test_half_open_failure_reopens_with_fresh_timer():
    clock = FakeClock()
    breaker = CircuitBreaker("speech", threshold=2, open_timeout=10.0, clock=clock)
    op = Operation()
    await trip(breaker, op, 2)

    clock.advance(10.0)
    await trip(breaker, op, 1)  # the half-open trial
    assert breaker.state is BreakerState.OPEN
    assert op.calls == 3

    clock.advance(5.0)
    with pytest.raises(CircuitOpenError):
        await breaker.call(op)
    assert op.calls == 3


async def test_validation_errors_do_not_count():
    breaker = CircuitBreaker("rule_store", threshold=1, clock=FakeClock())

    async def invalid():
        raise ValidationError("scheme_id", "unknown")

    with pytest.raises(ValidationError):
        await breaker.call(invalid)
    assert breaker.state is BreakerState.CLOSED
    assert breaker.consecutive_failures == 0


async def test_only_one_trial_admitted_while_half_open():
    clock = FakeClock()
    breaker = CircuitBreaker("vector_index", threshold=1, open_timeout=1.0, clock=clock)
    op = Operation()
    await trip(breaker, op, 1)
    clock.advance(1.0)

    release = asyncio.Event()

    async def slow():
        await release.wait()
        return "ok"

    trial = asyncio.create_task(breaker.call(slow))
    await asyncio.sleep(0)
    assert breaker.state is BreakerState.HALF_OPEN
    with pytest.raises(CircuitOpenError):
        await breaker.call(slow)

    release.set()
    assert await trial == "ok"
    assert breaker.state is BreakerState.CLOSED


async def test_cancelled_trial_releases_slot_without_state_change():
    clock = FakeClock()
    breaker = CircuitBreaker("generation", threshold=1, open_timeout=1.0, clock=clock)
    op = Operation()
    await trip(breaker, op, 1)
    clock.advance(1.0)

    async def hang():
        await asyncio.Event().wait()

    task = asyncio.create_task(breaker.call(hang))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert breaker.state is BreakerState.HALF_OPEN

    op.fail = False
    assert await breaker.call(op) == "ok"
    assert breaker.state is BreakerState.CLOSED


async def test_concurrent_failures_open_exactly_once():
    breaker = CircuitBreaker("embedding", threshold=5, clock=FakeClock())
    op = Operation()
    results = await asyncio.gather(*(breaker.call(op) for _ in range(5)), return_exceptions=True)
    assert all(isinstance(r, ExternalProviderError) for r in results)
    assert breaker.state is BreakerState.OPEN
    assert breaker.consecutive_failures == 5


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        CircuitBreaker("x", threshold=0)
