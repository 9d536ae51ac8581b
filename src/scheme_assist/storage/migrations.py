"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id TEXT PRIMARY KEY,
    age INTEGER,
    income REAL,
    location TEXT,
    caste_category TEXT,
    gender TEXT,
    updated_at TEXT NOT NULL
)
"""

SCHEME_RULES_TABLE = """
CREATE TABLE IF NOT EXISTS scheme_rules (
    scheme_id TEXT PRIMARY KEY,
    spec TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

QUERY_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS query_records (
    query_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    text TEXT NOT NULL,
    language TEXT NOT NULL,
    created_at TEXT NOT NULL,
    state TEXT NOT NULL,
    status TEXT NOT NULL,
    answer TEXT NOT NULL
)
"""

QUERY_RECORDS_USER_INDEX = """
CREATE INDEX IF NOT EXISTS idx_query_records_user ON query_records(user_id)
"""

ELIGIBILITY_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS eligibility_records (
    record_id INTEGER PRIMARY KEY AUTOINCREMENT,
    query_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    scheme_id TEXT NOT NULL,
    eligible INTEGER NOT NULL,
    confidence REAL NOT NULL,
    reason TEXT,
    evaluations TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL
)
"""

DEAD_LETTERS_TABLE = """
CREATE TABLE IF NOT EXISTS dead_letters (
    entry_id TEXT PRIMARY KEY,
    operation TEXT NOT NULL,
    context TEXT NOT NULL DEFAULT '{}',
    attempts INTEGER NOT NULL,
    last_error TEXT,
    enqueued_at TEXT NOT NULL,
    dead_lettered_at TEXT NOT NULL
)
"""


async def initialize_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(PROFILES_TABLE)
        await db.execute(SCHEME_RULES_TABLE)
        await db.execute(QUERY_RECORDS_TABLE)
        await db.execute(QUERY_RECORDS_USER_INDEX)
        await db.execute(ELIGIBILITY_RECORDS_TABLE)
        await db.execute(DEAD_LETTERS_TABLE)
        await db.commit()
