"""Explicit holder for state shared across concurrent queries."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from scheme_assist.cache import keys
from scheme_assist.cache.ttl_cache import TTLCache
from scheme_assist.config.settings import Settings
from scheme_assist.resilience.circuit_breaker import CircuitBreaker
from scheme_assist.resilience.guard import ServiceGuard
from scheme_assist.resilience.retry import RetryPolicy
from scheme_assist.resilience.write_queue import DeadLetterSink, WriteQueue

SPEECH = "speech"
EMBEDDING = "embedding"
GENERATION = "generation"
VECTOR_INDEX = "vector_index"
PROFILE_STORE = "profile_store"
RULE_STORE = "rule_store"
TRANSLATION = "translation"
INTENT = "intent"

SERVICES = (
    SPEECH,
    EMBEDDING,
    GENERATION,
    VECTOR_INDEX,
    PROFILE_STORE,
    RULE_STORE,
    TRANSLATION,
    INTENT,
)


@dataclass
class ServiceContext:
    settings: Settings
    cache: TTLCache
    write_queue: WriteQueue
    breakers: dict[str, CircuitBreaker] = field(default_factory=dict)
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] | None = None

    @classmethod
    def create(
        cls,
        settings: Settings,
        dead_letter_sink: DeadLetterSink | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> ServiceContext:
        cache = TTLCache(
            namespace_ttls={
                keys.RETRIEVAL: settings.cache_retrieval_ttl_s,
                keys.RESPONSE: settings.cache_response_ttl_s,
                keys.RULES: settings.cache_rules_ttl_s,
                keys.PROFILE: settings.cache_profile_ttl_s,
            },
            clock=clock,
        )
        queue = WriteQueue(
            max_attempts=settings.write_queue_max_attempts,
            base_delay=settings.write_queue_base_delay_s,
            dead_letter_sink=dead_letter_sink,
            clock=clock,
        )
        breakers = {
            name: CircuitBreaker(
                name,
                threshold=settings.breaker_failure_threshold,
                open_timeout=settings.breaker_open_timeout_s,
                clock=clock,
            )
            for name in SERVICES
        }
        return cls(
            settings=settings,
            cache=cache,
            write_queue=queue,
            breakers=breakers,
            clock=clock,
            sleep=sleep,
        )

    def retry_policy(self, max_attempts: int | None = None) -> RetryPolicy:
        kwargs = {} if self.sleep is None else {"sleep": self.sleep}
        return RetryPolicy(
            max_attempts=max_attempts or self.settings.retry_max_attempts,
            base_delay=self.settings.retry_base_delay_s,
            **kwargs,
        )

    def guard(self, service: str, max_attempts: int | None = None) -> ServiceGuard:
        breaker = self.breakers.get(service)
        if breaker is None:
            breaker = CircuitBreaker(
                service,
                threshold=self.settings.breaker_failure_threshold,
                open_timeout=self.settings.breaker_open_timeout_s,
                clock=self.clock,
            )
            self.breakers[service] = breaker
        return ServiceGuard(
            breaker,
            self.retry_policy(max_attempts),
            call_timeout=self.settings.provider_call_timeout_s,
        )
