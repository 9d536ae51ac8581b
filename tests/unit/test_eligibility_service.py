"""Tests for fetching specs and profiles around the evaluator."""

import pytest
from conftest import InMemoryProfileStore, InMemoryRuleStore

from scheme_assist.eligibility.evaluator import INSUFFICIENT_PROFILE_DATA
from scheme_assist.eligibility.rules import ProfileField
from scheme_assist.eligibility.service import EligibilityService
from scheme_assist.exceptions import ValidationError


@pytest.fixture
def stores(kisan_spec, demo_profile):
    return InMemoryProfileStore([demo_profile]), InMemoryRuleStore([kisan_spec])


async def test_check_evaluates_stored_profile(context, stores):
    profiles, rules = stores
    service = EligibilityService(profiles, rules, context)
    result = await service.check("u1", "PM-KISAN")
    assert result.eligible is True


async def test_unknown_profile_is_insufficient_data(context, stores):
    profiles, rules = stores
    service = EligibilityService(profiles, rules, context)
    result = await service.check("nobody", "PM-KISAN")
    assert result.eligible is False
    assert result.reason == INSUFFICIENT_PROFILE_DATA
    assert result.missing_fields == [ProfileField.AGE, ProfileField.INCOME]


async def test_unknown_scheme_is_validation_error(context, stores):
    profiles, rules = stores
    service = EligibilityService(profiles, rules, context)
    with pytest.raises(ValidationError):
        await service.check("u1", "NO-SUCH-SCHEME")


async def test_specs_and_profiles_are_cached(context, stores, clock, settings):
    profiles, rules = stores
    service = EligibilityService(profiles, rules, context)
    await service.check("u1", "PM-KISAN")
    await service.check("u1", "PM-KISAN")
    assert profiles.calls == 1
    assert rules.calls == 1

    # profiles expire sooner than rules
    clock.advance(settings.cache_profile_ttl_s + 1)
    await service.check("u1", "PM-KISAN")
    assert profiles.calls == 2
    assert rules.calls == 1
