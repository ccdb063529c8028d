"""Shared fixtures for deployment tests."""

import sys
from dataclasses import replace
from typing import Optional

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.wlan.deployment.adapters import InMemoryAssignmentStore
from src.wlan.deployment.domain import (
    DeviceGroup,
    DeviceProfile,
    IControlPlanePort,
    NetworkDefinition,
    NetworkEntity,
    PskSecurity,
    SiteId,
)


class FakeControlPlane(IControlPlanePort):
    """In-memory controller with switchable failures.

    Sites map to device groups, device groups to profiles. Every call is
    recorded so tests can assert on what was (not) touched.
    """

    def __init__(self):
        self.groups: dict[str, list[DeviceGroup]] = {}
        self.profiles: dict[str, list[DeviceProfile]] = {}
        self.profile_networks: dict[str, set[str]] = {}

        self.failing_sites: set[str] = set()
        self.missing_profiles: set[str] = set()
        self.lookup_errors: set[str] = set()
        self.failing_assignments: set[str] = set()
        self.failing_syncs: set[str] = set()
        self.create_error: Optional[Exception] = None
        self.batch_sync_error: Optional[Exception] = None

        self.created: list[NetworkDefinition] = []
        self.assigned: list[tuple[str, str]] = []
        self.batch_synced: list[list[str]] = []
        self.single_synced: list[str] = []
        self.lookups: list[str] = []

    def add_site(self, site_id: str, groups: dict[str, list[str]]) -> list[DeviceProfile]:
        """Register a site; ``groups`` maps group id to profile ids."""
        created = []
        self.groups[site_id] = [
            DeviceGroup(id=group_id, name=f"Group {group_id}", site_id=SiteId(site_id))
            for group_id in groups
        ]
        for group_id, profile_ids in groups.items():
            self.profiles[group_id] = [
                DeviceProfile(
                    id=pid,
                    name=f"Profile {pid}",
                    site_id=SiteId(site_id),
                    device_group_id=group_id,
                )
                for pid in profile_ids
            ]
            created.extend(self.profiles[group_id])
        return created

    def _find(self, profile_id: str) -> Optional[DeviceProfile]:
        for profiles in self.profiles.values():
            for profile in profiles:
                if profile.id == profile_id:
                    return profile
        return None

    async def create_network_entity(self, definition: NetworkDefinition) -> NetworkEntity:
        self.created.append(definition)
        if self.create_error:
            raise self.create_error
        return NetworkEntity(id="net-1", name=definition.name, ssid=definition.ssid)

    async def list_device_groups(self, site_id: SiteId) -> list[DeviceGroup]:
        if site_id in self.failing_sites:
            raise ConnectionError(f"site {site_id} unreachable")
        return list(self.groups.get(site_id, []))

    async def list_profiles(self, device_group: DeviceGroup) -> list[DeviceProfile]:
        return [replace(p) for p in self.profiles.get(device_group.id, [])]

    async def get_profile(self, profile_id: str) -> Optional[DeviceProfile]:
        self.lookups.append(profile_id)
        if profile_id in self.lookup_errors:
            raise TimeoutError("lookup timed out")
        if profile_id in self.missing_profiles:
            return None
        profile = self._find(profile_id)
        if profile is None:
            return None
        return replace(
            profile,
            network_ids=tuple(sorted(self.profile_networks.get(profile_id, set()))),
        )

    async def assign_entity_to_profile(self, entity_id: str, profile_id: str) -> None:
        if profile_id in self.failing_assignments:
            raise RuntimeError(f"controller rejected {profile_id}")
        self.assigned.append((entity_id, profile_id))
        self.profile_networks.setdefault(profile_id, set()).add(entity_id)

    async def sync_profiles(self, profile_ids: list[str]) -> None:
        self.batch_synced.append(list(profile_ids))
        if self.batch_sync_error:
            raise self.batch_sync_error

    async def sync_profile(self, profile_id: str) -> None:
        if profile_id in self.failing_syncs:
            raise RuntimeError(f"sync rejected for {profile_id}")
        self.single_synced.append(profile_id)


@pytest.fixture
def control_plane():
    return FakeControlPlane()


@pytest.fixture
def store():
    return InMemoryAssignmentStore()


@pytest.fixture
def definition():
    return NetworkDefinition(
        name="Corp WiFi",
        ssid="corp",
        security=PskSecurity(passphrase="correct horse battery"),
        vlan=20,
    )
