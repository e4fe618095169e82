"""Repository for subathon_state table."""

from __future__ import annotations

import json

import asyncpg

from shared.models.timer_state import TimerStateRecord


def _row_to_record(row: asyncpg.Record) -> TimerStateRecord:
    d = dict(row)
    snapshot = d.get("snapshot")
    if isinstance(snapshot, str):
        d["snapshot"] = json.loads(snapshot)
    elif snapshot is None:
        d["snapshot"] = {}
    return TimerStateRecord(**d)


class TimerStateRepository:
    """Timer snapshots keyed by storage key.

    Implements the timer state store interface (``get``/``set``) on top of
    PostgreSQL.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_record(self, storage_key: str) -> TimerStateRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT storage_key, snapshot, updated_at FROM subathon_state "
                "WHERE storage_key = $1",
                storage_key,
            )
            return _row_to_record(row) if row else None

    async def get(self, storage_key: str) -> dict | None:
        record = await self.get_record(storage_key)
        return record.snapshot if record else None

    async def set(self, storage_key: str, snapshot: dict) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO subathon_state (storage_key, snapshot, updated_at)
                VALUES ($1, $2::jsonb, NOW())
                ON CONFLICT (storage_key) DO UPDATE SET
                    snapshot = EXCLUDED.snapshot,
                    updated_at = NOW()
                """,
                storage_key,
                json.dumps(snapshot),
            )
