"""PostgreSQL adapter for assignment intent.

This adapter implements IAssignmentStore using asyncpg against two
tables keyed by network:

    network_site_assignments     PRIMARY KEY (network_id, site_id)
    network_profile_assignments  PRIMARY KEY (network_id, profile_id)

Saves are upserts (INSERT ... ON CONFLICT DO UPDATE); created_at is set
on insert and never overwritten.
"""

import logging
from typing import Optional

import asyncpg

from ..domain.entities import (
    AssignmentSource,
    AssignmentState,
    DeploymentMode,
    MismatchReason,
    ProfileAssignmentRecord,
    SiteAssignmentRecord,
    SiteId,
    SyncStatus,
)
from ..domain.ports import IAssignmentStore

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS network_site_assignments (
    network_id TEXT NOT NULL,
    network_name TEXT NOT NULL DEFAULT '',
    site_id TEXT NOT NULL,
    site_name TEXT NOT NULL DEFAULT '',
    mode TEXT NOT NULL,
    included_profiles TEXT[] NOT NULL DEFAULT '{}',
    excluded_profiles TEXT[] NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_modified TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (network_id, site_id)
);

CREATE TABLE IF NOT EXISTS network_profile_assignments (
    network_id TEXT NOT NULL,
    network_name TEXT NOT NULL DEFAULT '',
    profile_id TEXT NOT NULL,
    profile_name TEXT NOT NULL DEFAULT '',
    site_id TEXT NOT NULL,
    site_name TEXT NOT NULL DEFAULT '',
    device_group_id TEXT,
    source TEXT NOT NULL,
    expected_state TEXT NOT NULL,
    actual_state TEXT NOT NULL,
    mismatch TEXT,
    sync_status TEXT NOT NULL,
    last_error TEXT,
    last_reconciled TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (network_id, profile_id)
);

CREATE INDEX IF NOT EXISTS idx_network_profile_assignments_site
    ON network_profile_assignments (network_id, site_id);
"""

UPSERT_SITE_SQL = """
INSERT INTO network_site_assignments (
    network_id, network_name, site_id, site_name, mode,
    included_profiles, excluded_profiles, created_at, last_modified
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
ON CONFLICT (network_id, site_id) DO UPDATE SET
    network_name = EXCLUDED.network_name,
    site_name = EXCLUDED.site_name,
    mode = EXCLUDED.mode,
    included_profiles = EXCLUDED.included_profiles,
    excluded_profiles = EXCLUDED.excluded_profiles,
    last_modified = EXCLUDED.last_modified
"""

UPSERT_PROFILE_SQL = """
INSERT INTO network_profile_assignments (
    network_id, network_name, profile_id, profile_name, site_id, site_name,
    device_group_id, source, expected_state, actual_state, mismatch,
    sync_status, last_error, last_reconciled
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
ON CONFLICT (network_id, profile_id) DO UPDATE SET
    network_name = EXCLUDED.network_name,
    profile_name = EXCLUDED.profile_name,
    site_id = EXCLUDED.site_id,
    site_name = EXCLUDED.site_name,
    device_group_id = EXCLUDED.device_group_id,
    source = EXCLUDED.source,
    expected_state = EXCLUDED.expected_state,
    actual_state = EXCLUDED.actual_state,
    mismatch = EXCLUDED.mismatch,
    sync_status = EXCLUDED.sync_status,
    last_error = EXCLUDED.last_error,
    last_reconciled = EXCLUDED.last_reconciled,
    updated_at = NOW()
"""

UPDATE_SYNC_SQL = """
UPDATE network_profile_assignments
SET sync_status = $3, last_error = $4, updated_at = NOW()
WHERE network_id = $1 AND profile_id = $2
"""


class PostgresAssignmentStore(IAssignmentStore):
    """PostgreSQL implementation of IAssignmentStore."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def ensure_schema(self) -> None:
        """Create the assignment tables if they don't exist."""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Assignment store schema ensured")

    async def save_site_assignment(self, record: SiteAssignmentRecord) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                UPSERT_SITE_SQL,
                record.network_id,
                record.network_name,
                record.site_id,
                record.site_name,
                record.mode.value,
                list(record.included_profiles),
                list(record.excluded_profiles),
                record.created_at,
                record.last_modified,
            )

    async def save_profile_assignments_batch(
        self,
        records: list[ProfileAssignmentRecord],
    ) -> int:
        if not records:
            return 0

        rows = [
            (
                r.network_id,
                r.network_name,
                r.profile_id,
                r.profile_name,
                r.site_id,
                r.site_name,
                r.device_group_id,
                r.source.value,
                r.expected_state.value,
                r.actual_state.value,
                r.mismatch.value if r.mismatch else None,
                r.sync_status.value,
                r.last_error,
                r.last_reconciled,
            )
            for r in records
        ]

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(UPSERT_PROFILE_SQL, rows)

        logger.debug(f"Upserted {len(rows)} profile assignment records")
        return len(rows)

    async def update_sync_status(
        self,
        network_id: str,
        profile_id: str,
        status: SyncStatus,
        error: Optional[str] = None,
    ) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                UPDATE_SYNC_SQL,
                network_id,
                profile_id,
                status.value,
                error,
            )

        # asyncpg returns the command tag, e.g. "UPDATE 1"
        updated = int(result.split()[-1]) if result else 0
        if updated == 0:
            logger.warning(
                f"No assignment record for network {network_id} / profile {profile_id}; "
                f"sync status {status.value} not recorded"
            )
            return False
        return True

    async def get_site_assignments(self, network_id: str) -> list[SiteAssignmentRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT network_id, network_name, site_id, site_name, mode,
                       included_profiles, excluded_profiles, created_at, last_modified
                FROM network_site_assignments
                WHERE network_id = $1
                ORDER BY site_id
                """,
                network_id,
            )

        return [self._row_to_site_record(row) for row in rows]

    async def get_profile_assignments(self, network_id: str) -> list[ProfileAssignmentRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT network_id, network_name, profile_id, profile_name,
                       site_id, site_name, device_group_id, source,
                       expected_state, actual_state, mismatch, sync_status,
                       last_error, last_reconciled
                FROM network_profile_assignments
                WHERE network_id = $1
                ORDER BY site_id, profile_id
                """,
                network_id,
            )

        return [self._row_to_profile_record(row) for row in rows]

    def _row_to_site_record(self, row: asyncpg.Record) -> SiteAssignmentRecord:
        return SiteAssignmentRecord(
            network_id=row["network_id"],
            network_name=row["network_name"],
            site_id=SiteId(row["site_id"]),
            site_name=row["site_name"],
            mode=DeploymentMode(row["mode"]),
            included_profiles=list(row["included_profiles"] or []),
            excluded_profiles=list(row["excluded_profiles"] or []),
            created_at=row["created_at"],
            last_modified=row["last_modified"],
        )

    def _row_to_profile_record(self, row: asyncpg.Record) -> ProfileAssignmentRecord:
        return ProfileAssignmentRecord(
            network_id=row["network_id"],
            network_name=row["network_name"],
            profile_id=row["profile_id"],
            profile_name=row["profile_name"],
            site_id=SiteId(row["site_id"]),
            site_name=row["site_name"],
            device_group_id=row["device_group_id"],
            source=AssignmentSource(row["source"]),
            expected_state=AssignmentState(row["expected_state"]),
            actual_state=AssignmentState(row["actual_state"]),
            mismatch=MismatchReason(row["mismatch"]) if row["mismatch"] else None,
            sync_status=SyncStatus(row["sync_status"]),
            last_error=row["last_error"],
            last_reconciled=row["last_reconciled"],
        )
