"""Integration tests for SQLite profile, rule and record stores."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

import pytest

from scheme_assist.eligibility.rules import CitizenProfile
from scheme_assist.models.domain import EligibilityRecord, QueryRecord
from scheme_assist.resilience.write_queue import WriteQueue
from scheme_assist.storage.sqlite_profile_store import SQLiteProfileStore, SQLiteRuleStore
from scheme_assist.storage.sqlite_record_store import SQLiteRecordStore


@pytest.fixture
def db_path():
    tmp = tempfile.mkdtemp()
    return str(Path(tmp) / "test.db")


@pytest.fixture
async def profile_store(db_path):
    store = SQLiteProfileStore(db_path)
    await store.initialize()
    return store


@pytest.fixture
async def rule_store(db_path):
    store = SQLiteRuleStore(db_path)
    await store.initialize()
    return store


@pytest.fixture
async def record_store(db_path):
    store = SQLiteRecordStore(db_path)
    await store.initialize()
    return store


def make_query_record(user_id="u1", **overrides):
    data = dict(
        query_id=str(uuid4()),
        user_id=user_id,
        text="What are the PM-KISAN benefits?",
        language="en",
        created_at=datetime.now(timezone.utc),
        state="delivered",
        status="answered",
        answer="Farmers receive 6000 rupees per year.",
    )
    data.update(overrides)
    return QueryRecord(**data)


@pytest.mark.asyncio
async def test_save_and_get_profile(profile_store):
    profile = CitizenProfile(
        user_id="u1", age=35, income=200000, location="Nashik", caste_category="obc"
    )
    await profile_store.save_profile(profile)

    loaded = await profile_store.get_profile("u1")
    assert loaded.age == 35
    assert loaded.income == 200000
    assert loaded.caste_category == "obc"
    assert loaded.gender is None


@pytest.mark.asyncio
async def test_get_nonexistent_profile(profile_store):
    assert await profile_store.get_profile("nobody") is None


@pytest.mark.asyncio
async def test_profile_update_replaces(profile_store):
    await profile_store.save_profile(CitizenProfile(user_id="u1", age=35))
    await profile_store.save_profile(CitizenProfile(user_id="u1", age=36))
    assert (await profile_store.get_profile("u1")).age == 36


@pytest.mark.asyncio
async def test_spec_round_trips_through_json(rule_store, kisan_spec):
    await rule_store.save_spec(kisan_spec)
    assert await rule_store.get_spec("PM-KISAN") == kisan_spec
    assert await rule_store.get_spec("UNKNOWN") is None


@pytest.mark.asyncio
async def test_query_record_append_is_idempotent(record_store):
    record = make_query_record()
    await record_store.append_query_record(record)
    await record_store.append_query_record(record)

    rows = await record_store.get_query_records("u1")
    assert len(rows) == 1
    assert rows[0]["status"] == "answered"
    assert await record_store.get_query_records("u2") == []


@pytest.mark.asyncio
async def test_eligibility_records(record_store):
    await record_store.append_eligibility_record(
        EligibilityRecord(
            query_id="q1",
            user_id="u1",
            scheme_id="PM-KISAN",
            eligible=False,
            confidence=1.0,
            reason=None,
            evaluations=[{"rule": "income le 250000", "passed": False, "reason": "too high"}],
        )
    )
    [row] = await record_store.get_eligibility_records("u1")
    assert row["eligible"] == 0
    assert row["evaluations"][0]["rule"] == "income le 250000"


@pytest.mark.asyncio
async def test_write_queue_dead_letters_into_store(record_store):
    queue = WriteQueue(max_attempts=1, dead_letter_sink=record_store)

    async def failing_write():
        raise ConnectionError("disk full")

    queue.enqueue("append_query_record", failing_write, user_id="u1", query_id="q9")
    assert await queue.drain_once()

    [dead] = await record_store.get_dead_letters()
    assert dead["operation"] == "append_query_record"
    assert dead["attempts"] == 1
    assert dead["last_error"] == "disk full"
    assert '"query_id": "q9"' in dead["context"]
