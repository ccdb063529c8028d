"""In-memory adapter for assignment intent.

Used when no DATABASE_URL is configured, and in tests. Records are
copied on the way in and out so callers can't mutate stored state.
"""

import logging
from dataclasses import replace
from typing import Optional

from ..domain.entities import (
    ProfileAssignmentRecord,
    SiteAssignmentRecord,
    SiteId,
    SyncStatus,
)
from ..domain.ports import IAssignmentStore

logger = logging.getLogger(__name__)


class InMemoryAssignmentStore(IAssignmentStore):
    """Dict-backed implementation of IAssignmentStore."""

    def __init__(self):
        self._sites: dict[tuple[str, SiteId], SiteAssignmentRecord] = {}
        self._profiles: dict[tuple[str, str], ProfileAssignmentRecord] = {}

    async def save_site_assignment(self, record: SiteAssignmentRecord) -> None:
        key = (record.network_id, record.site_id)
        stored = replace(
            record,
            included_profiles=list(record.included_profiles),
            excluded_profiles=list(record.excluded_profiles),
        )
        existing = self._sites.get(key)
        if existing:
            stored.created_at = existing.created_at
        self._sites[key] = stored

    async def save_profile_assignments_batch(
        self,
        records: list[ProfileAssignmentRecord],
    ) -> int:
        for record in records:
            self._profiles[(record.network_id, record.profile_id)] = replace(record)
        return len(records)

    async def update_sync_status(
        self,
        network_id: str,
        profile_id: str,
        status: SyncStatus,
        error: Optional[str] = None,
    ) -> bool:
        record = self._profiles.get((network_id, profile_id))
        if record is None:
            logger.warning(
                f"No assignment record for network {network_id} / profile {profile_id}; "
                f"sync status {status.value} not recorded"
            )
            return False

        record.sync_status = status
        record.last_error = error
        return True

    async def get_site_assignments(self, network_id: str) -> list[SiteAssignmentRecord]:
        return [
            replace(r)
            for (net, _), r in sorted(self._sites.items(), key=lambda item: item[0])
            if net == network_id
        ]

    async def get_profile_assignments(self, network_id: str) -> list[ProfileAssignmentRecord]:
        return [
            replace(r)
            for (net, _), r in sorted(self._profiles.items(), key=lambda item: item[0])
            if net == network_id
        ]
