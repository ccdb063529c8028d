"""Controller control-plane adapter.

This adapter implements IControlPlanePort on top of ControllerClient,
mapping domain calls to the controller's management REST API:

    create_network_entity    POST /v1/services
    list_device_groups       GET  /v3/sites/{site_id}/devicegroups
    list_profiles            GET  /v3/devicegroups/{group_id}/profiles
    get_profile              GET  /v3/profiles/{profile_id}   (404 -> None)
    assign_entity_to_profile POST /v3/profiles/{profile_id}/services
    sync_profiles            POST /v3/profiles/sync
    sync_profile             POST /v3/profiles/{profile_id}/sync

Transport errors are translated into the domain error for the operation.
"""

import logging
from typing import Any, Optional

from ...api.client import ControllerClient
from ...api.exceptions import ControllerError, NotFoundError
from ..domain.entities import (
    DeviceGroup,
    DeviceProfile,
    NetworkDefinition,
    NetworkEntity,
    SiteId,
)
from ..domain.exceptions import (
    AssignmentError,
    DiscoveryError,
    EntityCreationError,
    SyncError,
)
from ..domain.ports import IControlPlanePort
from .service_payload import build_service_payload

logger = logging.getLogger(__name__)


def _items(data: Any) -> list[dict]:
    """List endpoints answer either a bare array or {"items": [...]}."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return data.get("items") or data.get("data") or []
    return []


def _profile_from_json(
    data: dict,
    site_id: Optional[str] = None,
    device_group_id: Optional[str] = None,
) -> DeviceProfile:
    return DeviceProfile(
        id=str(data["id"]),
        name=data.get("name") or data.get("profileName") or str(data["id"]),
        site_id=SiteId(site_id or data.get("siteId") or ""),
        device_group_id=device_group_id or data.get("deviceGroupId") or "",
        network_ids=tuple(str(s) for s in data.get("services") or ()),
    )


class ControllerPlaneAdapter(IControlPlanePort):
    """IControlPlanePort backed by the controller REST API."""

    def __init__(self, client: ControllerClient):
        """Initialize with an open ControllerClient.

        Args:
            client: ControllerClient inside its async context
        """
        self.client = client

    async def create_network_entity(self, definition: NetworkDefinition) -> NetworkEntity:
        payload = build_service_payload(definition)
        try:
            data = await self.client.post("/v1/services", payload)
        except ControllerError as e:
            raise EntityCreationError(
                f"Controller rejected network '{definition.name}': {e.message}",
                details={"network_name": definition.name, "code": e.code},
                cause=e,
            )

        entity_id = data.get("id") if isinstance(data, dict) else None
        if not entity_id:
            raise EntityCreationError(
                f"Controller response for network '{definition.name}' has no id",
                details={"network_name": definition.name},
            )

        return NetworkEntity(
            id=str(entity_id),
            name=data.get("serviceName", definition.name),
            ssid=data.get("ssid", definition.ssid),
        )

    async def list_device_groups(self, site_id: SiteId) -> list[DeviceGroup]:
        try:
            data = await self.client.get(f"/v3/sites/{site_id}/devicegroups")
        except ControllerError as e:
            raise DiscoveryError(
                site_id, f"Failed to list device groups: {e.message}", cause=e
            )

        return [
            DeviceGroup(
                id=str(item["id"]),
                name=item.get("name") or item.get("groupName") or str(item["id"]),
                site_id=site_id,
            )
            for item in _items(data)
        ]

    async def list_profiles(self, device_group: DeviceGroup) -> list[DeviceProfile]:
        try:
            data = await self.client.get(f"/v3/devicegroups/{device_group.id}/profiles")
        except ControllerError as e:
            raise DiscoveryError(
                device_group.site_id,
                f"Failed to list profiles of device group {device_group.name}: {e.message}",
                cause=e,
            )

        return [
            _profile_from_json(item, device_group.site_id, device_group.id)
            for item in _items(data)
        ]

    async def get_profile(self, profile_id: str) -> Optional[DeviceProfile]:
        try:
            data = await self.client.get(f"/v3/profiles/{profile_id}")
        except NotFoundError:
            return None

        if not data:
            return None
        return _profile_from_json(data)

    async def assign_entity_to_profile(self, entity_id: str, profile_id: str) -> None:
        try:
            await self.client.post(
                f"/v3/profiles/{profile_id}/services",
                {"serviceId": entity_id},
            )
        except ControllerError as e:
            raise AssignmentError(profile_id, e.message, cause=e)

    async def sync_profiles(self, profile_ids: list[str]) -> None:
        try:
            await self.client.post(
                "/v3/profiles/sync", {"profileIds": list(profile_ids)}, retry=True
            )
        except ControllerError as e:
            raise SyncError(f"Batch sync failed: {e.message}", profile_ids=profile_ids, cause=e)

    async def sync_profile(self, profile_id: str) -> None:
        try:
            await self.client.post(f"/v3/profiles/{profile_id}/sync", retry=True)
        except ControllerError as e:
            raise SyncError(
                f"Sync failed for profile {profile_id}: {e.message}",
                profile_ids=[profile_id],
                cause=e,
            )
