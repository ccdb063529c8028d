"""Port interfaces for network deployment.

These are abstract interfaces (ports) that define how the domain
interacts with external systems. Concrete implementations (adapters)
are provided in the adapters module.

This follows the Hexagonal Architecture pattern.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .entities import (
    DeviceGroup,
    DeviceProfile,
    NetworkDefinition,
    NetworkEntity,
    ProfileAssignmentRecord,
    SiteAssignmentRecord,
    SiteId,
    SyncStatus,
)


class IControlPlanePort(ABC):
    """Port for the wireless controller's configuration API.

    Implementations raise on failure; the use cases decide which failures
    are fatal and which are captured per site or per profile.
    """

    @abstractmethod
    async def create_network_entity(self, definition: NetworkDefinition) -> NetworkEntity:
        """Create the network (WLAN service) on the controller.

        Args:
            definition: Validated network definition

        Returns:
            NetworkEntity carrying the controller-assigned id
        """
        ...

    @abstractmethod
    async def list_device_groups(self, site_id: SiteId) -> list[DeviceGroup]:
        """List the device groups at a site.

        Args:
            site_id: Site identifier

        Returns:
            Device groups tagged with the site id
        """
        ...

    @abstractmethod
    async def list_profiles(self, device_group: DeviceGroup) -> list[DeviceProfile]:
        """List the profiles of a device group.

        Args:
            device_group: Group to enumerate (its site_id tags the profiles)

        Returns:
            Profiles tagged with owning site and device group
        """
        ...

    @abstractmethod
    async def get_profile(self, profile_id: str) -> Optional[DeviceProfile]:
        """Look up a single profile.

        Args:
            profile_id: Profile identifier

        Returns:
            The profile with its current network assignments, or None if it
            no longer exists
        """
        ...

    @abstractmethod
    async def assign_entity_to_profile(self, entity_id: str, profile_id: str) -> None:
        """Attach a network entity to a profile.

        Args:
            entity_id: Network entity id
            profile_id: Target profile id
        """
        ...

    @abstractmethod
    async def sync_profiles(self, profile_ids: list[str]) -> None:
        """Push configuration to several profiles in one call.

        Args:
            profile_ids: Profiles to synchronize
        """
        ...

    @abstractmethod
    async def sync_profile(self, profile_id: str) -> None:
        """Push configuration to one profile.

        Args:
            profile_id: Profile to synchronize
        """
        ...


class IAssignmentStore(ABC):
    """Port for persisted assignment intent.

    Implementations might use PostgreSQL, in-memory storage, etc.
    """

    @abstractmethod
    async def save_site_assignment(self, record: SiteAssignmentRecord) -> None:
        """Upsert a site record keyed by (network_id, site_id).

        ``created_at`` of an existing record is preserved.
        """
        ...

    @abstractmethod
    async def save_profile_assignments_batch(
        self,
        records: list[ProfileAssignmentRecord],
    ) -> int:
        """Upsert profile records keyed by (network_id, profile_id).

        Args:
            records: Records from one deployment or reconciliation run

        Returns:
            Number of records written
        """
        ...

    @abstractmethod
    async def update_sync_status(
        self,
        network_id: str,
        profile_id: str,
        status: SyncStatus,
        error: Optional[str] = None,
    ) -> bool:
        """Update only the sync fields of an existing profile record.

        Args:
            network_id: Network entity id
            profile_id: Profile id
            status: New sync status
            error: Error message for FAILED, cleared otherwise

        Returns:
            False if no such record exists (nothing is written)
        """
        ...

    @abstractmethod
    async def get_site_assignments(self, network_id: str) -> list[SiteAssignmentRecord]:
        """Get all site records for a network."""
        ...

    @abstractmethod
    async def get_profile_assignments(self, network_id: str) -> list[ProfileAssignmentRecord]:
        """Get all profile records for a network."""
        ...
