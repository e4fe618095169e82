"""Schema migrations for the subathon state tables."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"

# Serializes concurrent service starts against one database
_ADVISORY_LOCK_ID = 0x5B7A_7401


@dataclass(frozen=True)
class Migration:
    version: str
    name: str
    sql: str

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.sql.encode("utf-8")).hexdigest()


def discover(migrations_dir: Path) -> list[Migration]:
    """Read ``NNN_description.sql`` files in filename order."""
    return [
        Migration(path.stem, path.name, path.read_text(encoding="utf-8"))
        for path in sorted(migrations_dir.glob("*.sql"))
    ]


class MigrationRunner:
    """Apply bundled SQL migrations once each.

    Applied versions are tracked in ``schema_migrations`` together with a
    checksum of the file; a file edited after it was applied is reported but
    not re-run.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def ensure_table(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    name       TEXT NOT NULL,
                    checksum   TEXT,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> dict[str, str | None]:
        """Map of applied version to its recorded checksum."""
        async with self.pool.acquire() as conn:
            return await self._fetch_applied(conn)

    async def _fetch_applied(self, conn: asyncpg.Connection) -> dict[str, str | None]:
        rows = await conn.fetch(
            f"SELECT version, checksum FROM {self.TRACKING_TABLE}"  # noqa: S608
        )
        return {row["version"]: row.get("checksum") for row in rows}

    async def run_pending(self, migrations_dir: Path | None = None) -> list[str]:
        """Apply every pending migration. Returns the newly-applied versions."""
        migrations = discover(migrations_dir or VERSIONS_DIR)
        await self.ensure_table()

        async with self.pool.acquire() as conn:
            await conn.execute("SELECT pg_advisory_lock($1)", _ADVISORY_LOCK_ID)
            try:
                applied = await self._fetch_applied(conn)
                newly_applied: list[str] = []
                for migration in migrations:
                    if migration.version in applied:
                        recorded = applied[migration.version]
                        if recorded and recorded != migration.checksum:
                            logger.warning(
                                "Migration %s changed after it was applied", migration.version
                            )
                        continue
                    await self._apply_one(conn, migration)
                    newly_applied.append(migration.version)
            finally:
                await conn.execute("SELECT pg_advisory_unlock($1)", _ADVISORY_LOCK_ID)

        if newly_applied:
            logger.info("Applied %d migration(s): %s", len(newly_applied), ", ".join(newly_applied))
        else:
            logger.info("Subathon schema is current")
        return newly_applied

    async def _apply_one(self, conn: asyncpg.Connection, migration: Migration) -> None:
        logger.info("Applying migration: %s", migration.version)
        async with conn.transaction():
            await conn.execute(migration.sql)
            await conn.execute(
                f"INSERT INTO {self.TRACKING_TABLE} (version, name, checksum) "
                "VALUES ($1, $2, $3)",
                migration.version,
                migration.name,
                migration.checksum,
            )
