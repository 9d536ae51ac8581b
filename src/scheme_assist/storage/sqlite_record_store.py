"""Append-only SQLite writers for query / eligibility records and dead letters."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from scheme_assist.models.domain import EligibilityRecord, QueryRecord
from scheme_assist.resilience.write_queue import QueuedWrite
from scheme_assist.storage.migrations import initialize_db


class SQLiteRecordStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_db(self._db_path)

    async def append_query_record(self, record: QueryRecord) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            # replays of a retried write must not duplicate the record
            await db.execute(
                "INSERT OR IGNORE INTO query_records "
                "(query_id, user_id, text, language, created_at, state, status, answer) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.query_id,
                    record.user_id,
                    record.text,
                    record.language,
                    record.created_at.isoformat(),
                    record.state,
                    record.status,
                    record.answer,
                ),
            )
            await db.commit()

    async def append_eligibility_record(self, record: EligibilityRecord) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO eligibility_records "
                "(query_id, user_id, scheme_id, eligible, confidence, reason, evaluations, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.query_id,
                    record.user_id,
                    record.scheme_id,
                    int(record.eligible),
                    record.confidence,
                    record.reason,
                    json.dumps(record.evaluations, ensure_ascii=False),
                    record.created_at.isoformat(),
                ),
            )
            await db.commit()

    async def record_dead_letter(self, entry: QueuedWrite) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO dead_letters "
                "(entry_id, operation, context, attempts, last_error, enqueued_at, dead_lettered_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.entry_id,
                    entry.operation,
                    json.dumps(entry.context, default=str),
                    entry.attempts,
                    entry.last_error,
                    entry.enqueued_at.isoformat(),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await db.commit()

    async def get_query_records(self, user_id: str) -> list[dict]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM query_records WHERE user_id = ? ORDER BY created_at", (user_id,)
            ) as cursor:
                return [dict(row) for row in await cursor.fetchall()]

    async def get_eligibility_records(self, user_id: str) -> list[dict]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM eligibility_records WHERE user_id = ? ORDER BY record_id",
                (user_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [{**dict(r), "evaluations": json.loads(r["evaluations"])} for r in rows]

    async def get_dead_letters(self) -> list[dict]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM dead_letters ORDER BY dead_lettered_at") as cursor:
                return [dict(row) for row in await cursor.fetchall()]
