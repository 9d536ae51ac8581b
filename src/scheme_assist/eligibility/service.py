"""Fetches rule specs and profiles through the resilience layer, then evaluates."""

from __future__ import annotations

from scheme_assist.cache import keys
from scheme_assist.cache.ttl_cache import MISS
from scheme_assist.context import PROFILE_STORE, RULE_STORE, ServiceContext
from scheme_assist.eligibility.evaluator import EligibilityEvaluator, insufficient_data
from scheme_assist.eligibility.rules import (
    CitizenProfile,
    EligibilityResult,
    SchemeEligibilitySpec,
)
from scheme_assist.exceptions import ValidationError
from scheme_assist.observability.logger import get_logger
from scheme_assist.protocols.stores import ProfileStore, RuleStore

logger = get_logger("eligibility_service")


class EligibilityService:
    def __init__(
        self,
        profile_store: ProfileStore,
        rule_store: RuleStore,
        context: ServiceContext,
        evaluator: EligibilityEvaluator | None = None,
    ) -> None:
        self._profiles = profile_store
        self._rules = rule_store
        self._ctx = context
        self._evaluator = evaluator or EligibilityEvaluator()
        self._profile_guard = context.guard(PROFILE_STORE)
        self._rule_guard = context.guard(RULE_STORE)

    async def check(self, user_id: str, scheme_id: str) -> EligibilityResult:
        spec = await self.get_spec(scheme_id)
        profile = await self.get_profile(user_id)
        if profile is None:
            logger.info("eligibility_profile_missing", user_id=user_id, scheme_id=scheme_id)
            return insufficient_data(scheme_id, spec.required_fields)
        return self._evaluator.evaluate(profile, spec)

    async def get_spec(self, scheme_id: str) -> SchemeEligibilitySpec:
        cached = self._ctx.cache.get(keys.RULES, scheme_id)
        if cached is not MISS:
            return cached
        spec = await self._rule_guard.call("get_spec", self._rules.get_spec, scheme_id)
        if spec is None:
            raise ValidationError("scheme_id", f"no eligibility rules for {scheme_id}")
        self._ctx.cache.put(keys.RULES, scheme_id, spec)
        return spec

    async def get_profile(self, user_id: str) -> CitizenProfile | None:
        cached = self._ctx.cache.get(keys.PROFILE, user_id)
        if cached is not MISS:
            return cached
        profile = await self._profile_guard.call(
            "get_profile", self._profiles.get_profile, user_id
        )
        if profile is not None:
            self._ctx.cache.put(keys.PROFILE, user_id, profile)
        return profile
