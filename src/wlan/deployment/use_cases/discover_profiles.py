"""Profile discovery use case.

Walks site -> device group -> profile on the controller. Each site is
discovered concurrently and independently: if any lookup in a site's
chain fails, that site contributes no profiles and the failure is logged,
while the other sites are unaffected.
"""

import logging
from functools import partial

from ...api.resilience import run_concurrent_tasks
from ..domain.entities import DeviceProfile, DiscoveryResult, SiteId
from ..domain.exceptions import DiscoveryError
from ..domain.ports import IControlPlanePort

logger = logging.getLogger(__name__)


def unique_profiles(profiles_by_site: dict[SiteId, list[DeviceProfile]]) -> list[DeviceProfile]:
    """Union of per-site profiles, de-duplicated by id, sites in id order."""
    seen: set[str] = set()
    unique: list[DeviceProfile] = []
    for site_id in sorted(profiles_by_site):
        for profile in profiles_by_site[site_id]:
            if profile.id not in seen:
                seen.add(profile.id)
                unique.append(profile)
    return unique


class ProfileDiscoveryUseCase:
    """Enumerate the device profiles present at a set of sites."""

    def __init__(self, control_plane: IControlPlanePort):
        self.control_plane = control_plane

    async def discover(self, site_ids: list[SiteId]) -> DiscoveryResult:
        """Discover profiles and device group counts for each site.

        Duplicate site ids are collapsed. Never raises for a single site's
        failure; see ``DiscoveryResult.failed_sites``.
        """
        unique_sites = list(dict.fromkeys(site_ids))
        result = DiscoveryResult()
        if not unique_sites:
            return result

        outcomes = await run_concurrent_tasks({
            site_id: partial(self._discover_site, site_id)
            for site_id in unique_sites
        })

        for site_id in unique_sites:
            outcome = outcomes[site_id]
            if isinstance(outcome, Exception):
                error = DiscoveryError(
                    site_id,
                    f"Profile discovery failed for site {site_id}: {outcome}",
                    cause=outcome,
                )
                logger.warning(error.message)
                result.profiles_by_site[site_id] = []
                result.device_groups_by_site[site_id] = 0
                result.failed_sites[site_id] = str(outcome)
                continue

            group_count, profiles = outcome
            result.profiles_by_site[site_id] = profiles
            result.device_groups_by_site[site_id] = group_count

        logger.info(
            f"Discovered {result.profile_count} profiles in {result.device_groups_found} "
            f"device groups across {len(unique_sites)} sites "
            f"({len(result.failed_sites)} failed)"
        )
        return result

    async def _discover_site(self, site_id: SiteId) -> tuple[int, list[DeviceProfile]]:
        groups = await self.control_plane.list_device_groups(site_id)

        profiles: list[DeviceProfile] = []
        for group in groups:
            for profile in await self.control_plane.list_profiles(group):
                # The controller doesn't echo ownership back on every listing
                profile.site_id = site_id
                profile.device_group_id = group.id
                profiles.append(profile)

        logger.debug(f"Site {site_id}: {len(groups)} device groups, {len(profiles)} profiles")
        return len(groups), profiles

    async def discover_profiles(self, site_ids: list[SiteId]) -> dict[SiteId, list[DeviceProfile]]:
        """Map each site to its discovered profiles ([] for failed sites)."""
        result = await self.discover(site_ids)
        return result.profiles_by_site

    async def preview_profiles(self, site_ids: list[SiteId]) -> list[DeviceProfile]:
        """All profiles across the sites, de-duplicated by profile id."""
        return unique_profiles(await self.discover_profiles(site_ids))
