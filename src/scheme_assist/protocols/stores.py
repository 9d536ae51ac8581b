"""Protocols for profile, rule and record persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from scheme_assist.models.domain import EligibilityRecord, QueryRecord

if TYPE_CHECKING:
    from scheme_assist.eligibility.rules import CitizenProfile, SchemeEligibilitySpec


class ProfileStore(Protocol):
    async def get_profile(self, user_id: str) -> CitizenProfile | None: ...


class RuleStore(Protocol):
    async def get_spec(self, scheme_id: str) -> SchemeEligibilitySpec | None: ...


class RecordStore(Protocol):
    """Append-only writers; the schema belongs to the implementation."""

    async def append_query_record(self, record: QueryRecord) -> None: ...

    async def append_eligibility_record(self, record: EligibilityRecord) -> None: ...
