"""Tests for the DeployNetwork use case."""

import pytest

from src.wlan.deployment.adapters import InMemoryAssignmentStore
from src.wlan.deployment.domain import (
    DRY_RUN_NOTE,
    AssignmentSource,
    AssignmentState,
    DeploymentMode,
    DeploymentOptions,
    DomainValidationError,
    EntityCreationError,
    SiteDeploymentConfig,
    SiteId,
    SyncStatus,
)
from src.wlan.deployment.use_cases import DeployNetworkUseCase


def site(site_id: str, **kwargs) -> SiteDeploymentConfig:
    return SiteDeploymentConfig(site_id=SiteId(site_id), site_name=f"Site {site_id}", **kwargs)


class FailingProfileStore(InMemoryAssignmentStore):
    async def save_profile_assignments_batch(self, records):
        raise RuntimeError("database unavailable")


class TestDeployNetwork:
    """Tests for DeployNetworkUseCase.execute."""

    @pytest.mark.asyncio
    async def test_full_deployment(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1", "p2"], "g2": ["p3"]})

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1")]
        )

        assert summary.success is True
        assert summary.entity_id == "net-1"
        assert summary.sites_processed == 1
        assert summary.device_groups_found == 2
        assert summary.profiles_assigned == 3
        assert summary.errors == []
        assert control_plane.batch_synced == [["p1", "p2", "p3"]]
        assert all(s.success for s in summary.sync_results)

        records = await store.get_profile_assignments("net-1")
        assert {r.profile_id for r in records} == {"p1", "p2", "p3"}
        assert all(r.actual_state == AssignmentState.ASSIGNED for r in records)
        assert all(r.sync_status == SyncStatus.SYNCED for r in records)
        assert all(r.source == AssignmentSource.SITE_PROPAGATION for r in records)

        site_records = await store.get_site_assignments("net-1")
        assert [s.site_id for s in site_records] == ["s1"]
        assert site_records[0].network_name == "Corp WiFi"

    @pytest.mark.asyncio
    async def test_partial_assignment_failure(self, control_plane, store, definition):
        ids = [f"p{i}" for i in range(1, 8)]
        control_plane.add_site("s1", {"g1": ids})
        control_plane.failing_assignments.add("p3")
        control_plane.missing_profiles.add("p5")

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1")]
        )

        assert summary.success is False
        assert summary.profiles_assigned == 5
        assert len(summary.assignments) == 7
        assert summary.errors[0] == "2 profile(s) failed to assign"

        by_id = {a.profile_id: a for a in summary.assignments}
        assert "rejected" in by_id["p3"].error
        assert by_id["p3"].skipped is False
        assert by_id["p5"].skipped is True
        assert "not found" in by_id["p5"].error

        # No rollback: the failures stay recorded as unassigned intent
        records = {r.profile_id: r for r in await store.get_profile_assignments("net-1")}
        assert records["p3"].actual_state == AssignmentState.NOT_ASSIGNED
        assert records["p3"].expected_state == AssignmentState.ASSIGNED
        assert records["p3"].last_error
        assert records["p1"].sync_status == SyncStatus.SYNCED

        # Only successful assignments are synced
        assert control_plane.batch_synced == [["p1", "p2", "p4", "p6", "p7"]]

    @pytest.mark.asyncio
    async def test_rejected_assignments_do_not_block_others(self, control_plane, store, definition):
        ids = [f"p{i}" for i in range(1, 8)]
        control_plane.add_site("s1", {"g1": ids})
        control_plane.failing_assignments.update({"p3", "p5"})

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1")]
        )

        assert summary.success is False
        assert summary.profiles_assigned == 5
        assert summary.errors[0] == "2 profile(s) failed to assign"
        assert [a.profile_id for a in summary.failed_assignments] == ["p3", "p5"]
        for failure in summary.failed_assignments:
            assert failure.skipped is False
            assert "rejected" in failure.error

        # p5 sits in the first batch with p3; p6 and p7 are the second batch
        assert ("net-1", "p5") not in control_plane.assigned
        assert ("net-1", "p4") in control_plane.assigned
        assert ("net-1", "p6") in control_plane.assigned

        records = {r.profile_id: r for r in await store.get_profile_assignments("net-1")}
        assert records["p3"].actual_state == AssignmentState.NOT_ASSIGNED
        assert records["p5"].actual_state == AssignmentState.NOT_ASSIGNED
        assert records["p5"].last_error
        assert control_plane.batch_synced == [["p1", "p2", "p4", "p6", "p7"]]

    @pytest.mark.asyncio
    async def test_profile_lookup_error_skips_profile(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1", "p2"]})
        control_plane.lookup_errors.add("p2")

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1")]
        )

        result = next(a for a in summary.assignments if a.profile_id == "p2")
        assert result.skipped is True
        assert "timed out" in result.error
        assert ("net-1", "p2") not in control_plane.assigned

    @pytest.mark.asyncio
    async def test_dry_run_touches_nothing(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1", "p2"]})
        control_plane.add_site("s2", {"g2": ["p3"]})

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition,
            [site("s1"), site("s2")],
            DeploymentOptions(dry_run=True),
        )

        assert summary.dry_run is True
        assert summary.entity_id is None
        assert summary.profiles_assigned == 0
        assert summary.sites_processed == 2
        assert summary.device_groups_found == 2
        assert [a.profile_id for a in summary.assignments] == ["p1", "p2", "p3"]
        assert all(a.note == DRY_RUN_NOTE for a in summary.assignments)

        assert control_plane.created == []
        assert control_plane.assigned == []
        assert control_plane.lookups == []
        assert control_plane.batch_synced == []
        assert await store.get_profile_assignments("net-1") == []

    @pytest.mark.asyncio
    async def test_invalid_config_rejected_before_any_call(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1"]})

        with pytest.raises(DomainValidationError) as exc:
            await DeployNetworkUseCase(control_plane, store).execute(
                definition,
                [site("s1", mode=DeploymentMode.INCLUDE_ONLY)],
            )

        assert exc.value.errors
        assert control_plane.created == []

    @pytest.mark.asyncio
    async def test_duplicate_and_empty_site_configs(self, control_plane, store, definition):
        use_case = DeployNetworkUseCase(control_plane, store)

        with pytest.raises(DomainValidationError):
            await use_case.execute(definition, [])

        with pytest.raises(DomainValidationError) as exc:
            await use_case.execute(definition, [site("s1"), site("s1")])
        assert "more than once" in exc.value.message

    @pytest.mark.asyncio
    async def test_entity_creation_failure_is_fatal(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1"]})
        control_plane.create_error = RuntimeError("controller says no")

        with pytest.raises(EntityCreationError) as exc:
            await DeployNetworkUseCase(control_plane, store).execute(definition, [site("s1")])

        assert "controller says no" in exc.value.message
        assert control_plane.assigned == []
        assert await store.get_site_assignments("net-1") == []

    @pytest.mark.asyncio
    async def test_batch_sync_falls_back_per_profile(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1", "p2", "p3"]})
        control_plane.batch_sync_error = RuntimeError("bulk sync unsupported")
        control_plane.failing_syncs.add("p2")

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1")]
        )

        assert summary.success is True
        assert sorted(control_plane.single_synced) == ["p1", "p3"]
        assert "1 profile(s) failed to sync" in summary.errors

        by_id = {s.profile_id: s for s in summary.sync_results}
        assert by_id["p2"].success is False
        assert by_id["p1"].success is True

        records = {r.profile_id: r for r in await store.get_profile_assignments("net-1")}
        assert records["p2"].sync_status == SyncStatus.FAILED
        assert "p2" in records["p2"].last_error
        assert records["p3"].sync_status == SyncStatus.SYNCED

    @pytest.mark.asyncio
    async def test_skip_sync(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1"]})

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1")], DeploymentOptions(skip_sync=True)
        )

        assert summary.sync_results is None
        assert control_plane.batch_synced == []
        records = await store.get_profile_assignments("net-1")
        assert records[0].sync_status == SyncStatus.PENDING

    @pytest.mark.asyncio
    async def test_explicit_profiles_recorded_as_explicit(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1", "p2"]})

        await DeployNetworkUseCase(control_plane, store).execute(
            definition,
            [site("s1")],
            DeploymentOptions(explicit_profile_ids=frozenset({"p2"})),
        )

        records = {r.profile_id: r for r in await store.get_profile_assignments("net-1")}
        assert records["p1"].source == AssignmentSource.SITE_PROPAGATION
        assert records["p2"].source == AssignmentSource.EXPLICIT_ASSIGNMENT

    @pytest.mark.asyncio
    async def test_failed_discovery_reported_not_fatal(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": ["p1"]})
        control_plane.add_site("s2", {"g2": ["p2"]})
        control_plane.failing_sites.add("s2")

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1"), site("s2")]
        )

        assert summary.success is True
        assert summary.profiles_assigned == 1
        assert any("s2" in e for e in summary.errors)

    @pytest.mark.asyncio
    async def test_persistence_failure_reported_not_raised(self, control_plane, definition):
        control_plane.add_site("s1", {"g1": ["p1"]})
        store = FailingProfileStore()

        summary = await DeployNetworkUseCase(control_plane, store).execute(
            definition, [site("s1")]
        )

        assert summary.success is True
        assert summary.profiles_assigned == 1
        assert any("database unavailable" in e for e in summary.errors)

    @pytest.mark.asyncio
    async def test_assignments_run_in_batches(self, control_plane, store, definition):
        control_plane.add_site("s1", {"g1": [f"p{i}" for i in range(12)]})

        summary = await DeployNetworkUseCase(control_plane, store, batch_size=5).execute(
            definition, [site("s1")]
        )

        assert summary.profiles_assigned == 12
        assert [p for _, p in control_plane.assigned[:5]] == [f"p{i}" for i in range(5)]
