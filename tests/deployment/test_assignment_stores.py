"""Tests for the assignment store adapters."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.wlan.deployment.adapters import InMemoryAssignmentStore, PostgresAssignmentStore
from src.wlan.deployment.adapters.postgres_assignment_store import (
    UPSERT_PROFILE_SQL,
    UPSERT_SITE_SQL,
)
from src.wlan.deployment.domain import (
    AssignmentSource,
    AssignmentState,
    DeploymentMode,
    MismatchReason,
    ProfileAssignmentRecord,
    SiteAssignmentRecord,
    SiteId,
    SyncStatus,
)


def site_record(site_id: str = "s1", **kwargs) -> SiteAssignmentRecord:
    return SiteAssignmentRecord(
        network_id="net-1",
        site_id=SiteId(site_id),
        mode=DeploymentMode.EXCLUDE_SOME,
        excluded_profiles=["p9"],
        **kwargs,
    )


def profile_record(profile_id: str = "p1", **kwargs) -> ProfileAssignmentRecord:
    return ProfileAssignmentRecord(
        network_id="net-1",
        profile_id=profile_id,
        site_id=SiteId("s1"),
        **kwargs,
    )


# ============================================
# In-Memory Store Tests
# ============================================

class TestInMemoryAssignmentStore:
    """Tests for InMemoryAssignmentStore."""

    @pytest.mark.asyncio
    async def test_upsert_keeps_created_at(self):
        store = InMemoryAssignmentStore()
        first = datetime(2024, 1, 1, tzinfo=timezone.utc)

        await store.save_site_assignment(site_record(created_at=first))
        await store.save_site_assignment(site_record(site_name="Renamed"))

        [stored] = await store.get_site_assignments("net-1")
        assert stored.created_at == first
        assert stored.site_name == "Renamed"

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        store = InMemoryAssignmentStore()
        await store.save_profile_assignments_batch([profile_record()])

        [record] = await store.get_profile_assignments("net-1")
        record.actual_state = AssignmentState.ASSIGNED

        [again] = await store.get_profile_assignments("net-1")
        assert again.actual_state == AssignmentState.UNKNOWN

    @pytest.mark.asyncio
    async def test_scoped_by_network(self):
        store = InMemoryAssignmentStore()
        await store.save_profile_assignments_batch([
            profile_record("p1"),
            ProfileAssignmentRecord(network_id="net-2", profile_id="p1", site_id=SiteId("s1")),
        ])

        assert len(await store.get_profile_assignments("net-1")) == 1
        assert await store.get_profile_assignments("net-3") == []

    @pytest.mark.asyncio
    async def test_update_sync_status(self):
        store = InMemoryAssignmentStore()
        await store.save_profile_assignments_batch([profile_record()])

        assert await store.update_sync_status("net-1", "p1", SyncStatus.FAILED, "boom") is True

        [record] = await store.get_profile_assignments("net-1")
        assert record.sync_status == SyncStatus.FAILED
        assert record.last_error == "boom"

    @pytest.mark.asyncio
    async def test_update_sync_status_missing_record(self):
        store = InMemoryAssignmentStore()
        assert await store.update_sync_status("net-1", "nope", SyncStatus.SYNCED) is False


# ============================================
# PostgreSQL Store Tests
# ============================================

class TestPostgresAssignmentStore:
    """Tests for PostgresAssignmentStore against a mocked pool."""

    @pytest.fixture
    def mock_db_pool(self):
        """Create a mock database connection pool."""
        pool = MagicMock()
        conn = AsyncMock()

        pool.acquire = MagicMock()
        pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
        pool.acquire.return_value.__aexit__ = AsyncMock(return_value=None)

        conn.transaction = MagicMock()
        conn.transaction.return_value.__aenter__ = AsyncMock(return_value=None)
        conn.transaction.return_value.__aexit__ = AsyncMock(return_value=None)

        return pool, conn

    @pytest.mark.asyncio
    async def test_save_site_assignment(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.execute = AsyncMock(return_value="INSERT 0 1")

        await PostgresAssignmentStore(pool).save_site_assignment(site_record())

        args = conn.execute.call_args.args
        assert args[0] == UPSERT_SITE_SQL
        assert args[1] == "net-1"
        assert args[3] == "s1"
        assert args[5] == "EXCLUDE_SOME"
        assert args[7] == ["p9"]

    @pytest.mark.asyncio
    async def test_batch_save_is_transactional(self, mock_db_pool):
        pool, conn = mock_db_pool
        records = [
            profile_record("p1", mismatch=MismatchReason.MISSING_ASSIGNMENT),
            profile_record("p2", source=AssignmentSource.EXPLICIT_ASSIGNMENT),
        ]

        count = await PostgresAssignmentStore(pool).save_profile_assignments_batch(records)

        assert count == 2
        conn.transaction.assert_called_once()
        sql, rows = conn.executemany.call_args.args
        assert sql == UPSERT_PROFILE_SQL
        assert len(rows[0]) == 14
        assert rows[0][2] == "p1"
        assert rows[0][10] == "MISSING_ASSIGNMENT"
        assert rows[1][7] == "EXPLICIT_ASSIGNMENT"
        assert rows[1][10] is None

    @pytest.mark.asyncio
    async def test_batch_save_empty(self, mock_db_pool):
        pool, conn = mock_db_pool

        assert await PostgresAssignmentStore(pool).save_profile_assignments_batch([]) == 0
        pool.acquire.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_sync_status_reads_command_tag(self, mock_db_pool):
        pool, conn = mock_db_pool
        store = PostgresAssignmentStore(pool)

        conn.execute = AsyncMock(return_value="UPDATE 1")
        assert await store.update_sync_status("net-1", "p1", SyncStatus.SYNCED) is True

        conn.execute = AsyncMock(return_value="UPDATE 0")
        assert await store.update_sync_status("net-1", "p1", SyncStatus.SYNCED) is False

    @pytest.mark.asyncio
    async def test_get_profile_assignments_maps_rows(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetch = AsyncMock(return_value=[{
            "network_id": "net-1",
            "network_name": "Corp",
            "profile_id": "p1",
            "profile_name": "AP Profile",
            "site_id": "s1",
            "site_name": "HQ",
            "device_group_id": "g1",
            "source": "SITE_PROPAGATION",
            "expected_state": "ASSIGNED",
            "actual_state": "NOT_ASSIGNED",
            "mismatch": "PROFILE_MOVED",
            "sync_status": "SYNCED",
            "last_error": None,
            "last_reconciled": None,
        }])

        [record] = await PostgresAssignmentStore(pool).get_profile_assignments("net-1")

        assert record.profile_id == "p1"
        assert record.site_id == "s1"
        assert record.actual_state == AssignmentState.NOT_ASSIGNED
        assert record.mismatch == MismatchReason.PROFILE_MOVED
        assert record.sync_status == SyncStatus.SYNCED
        assert conn.fetch.call_args.args[1] == "net-1"

    @pytest.mark.asyncio
    async def test_get_site_assignments_maps_rows(self, mock_db_pool):
        pool, conn = mock_db_pool
        now = datetime.now(timezone.utc)
        conn.fetch = AsyncMock(return_value=[{
            "network_id": "net-1",
            "network_name": "Corp",
            "site_id": "s1",
            "site_name": "HQ",
            "mode": "INCLUDE_ONLY",
            "included_profiles": ["p1"],
            "excluded_profiles": None,
            "created_at": now,
            "last_modified": now,
        }])

        [record] = await PostgresAssignmentStore(pool).get_site_assignments("net-1")

        assert record.mode == DeploymentMode.INCLUDE_ONLY
        assert record.included_profiles == ["p1"]
        assert record.excluded_profiles == []
