"""Repository for tokens table."""

from __future__ import annotations

import asyncpg

from shared.models.token import Token


class TokenRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def list_all(self) -> list[Token]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT user_id, token, refresh FROM tokens")
            return [Token(**dict(row)) for row in rows]

    async def upsert(self, user_id: str, token: str, refresh: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO tokens (user_id, token, refresh)
                VALUES ($1, $2, $3)
                ON CONFLICT (user_id) DO UPDATE SET
                    token = EXCLUDED.token,
                    refresh = EXCLUDED.refresh
                """,
                user_id,
                token,
                refresh,
            )
