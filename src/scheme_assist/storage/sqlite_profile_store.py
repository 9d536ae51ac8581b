"""SQLite-backed citizen profiles and scheme eligibility rules."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from scheme_assist.eligibility.rules import (
    CitizenProfile,
    SchemeEligibilitySpec,
    spec_from_dict,
    spec_to_dict,
)
from scheme_assist.exceptions import ExternalProviderError
from scheme_assist.storage.migrations import initialize_db


class SQLiteProfileStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_db(self._db_path)

    async def save_profile(self, profile: CitizenProfile) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO profiles "
                "(user_id, age, income, location, caste_category, gender, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    profile.user_id,
                    profile.age,
                    profile.income,
                    profile.location,
                    profile.caste_category,
                    profile.gender,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await db.commit()

    async def get_profile(self, user_id: str) -> CitizenProfile | None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(
                    "SELECT * FROM profiles WHERE user_id = ?", (user_id,)
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.OperationalError as e:
            raise ExternalProviderError("profile_store", "get_profile", str(e)) from e
        if row is None:
            return None
        return CitizenProfile(
            user_id=row["user_id"],
            age=row["age"],
            income=row["income"],
            location=row["location"],
            caste_category=row["caste_category"],
            gender=row["gender"],
        )


class SQLiteRuleStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_db(self._db_path)

    async def save_spec(self, spec: SchemeEligibilitySpec) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO scheme_rules (scheme_id, spec, updated_at) VALUES (?, ?, ?)",
                (
                    spec.scheme_id,
                    json.dumps(spec_to_dict(spec), ensure_ascii=False),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await db.commit()

    async def get_spec(self, scheme_id: str) -> SchemeEligibilitySpec | None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                async with db.execute(
                    "SELECT spec FROM scheme_rules WHERE scheme_id = ?", (scheme_id,)
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.OperationalError as e:
            raise ExternalProviderError("rule_store", "get_spec", str(e)) from e
        if row is None:
            return None
        return spec_from_dict(json.loads(row[0]))
