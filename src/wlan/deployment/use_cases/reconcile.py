"""Reconcile use case.

Compares the persisted assignment intent of one network with what the
controller reports now, classifies every drifted profile record and plans
(but never executes) the remediation.

Classification, first match wins:
    1. profile no longer resolvable           -> PROFILE_DELETED
    2. no site record covers the profile site -> SITE_ASSIGNMENT_MISSING
    3. profile now under another device group -> PROFILE_MOVED
    4. expected ASSIGNED, observed NOT_ASSIGNED -> MISSING_ASSIGNMENT
    5. expected NOT_ASSIGNED, observed ASSIGNED -> UNEXPECTED_ASSIGNMENT
    6. observed ASSIGNED but last sync FAILED -> SYNC_FAILED
    7. otherwise matched

A record whose profile lookup errors (as opposed to returning not-found)
is marked UNKNOWN and counted neither as matched nor as mismatched.
"""

import logging
from typing import Optional

from ...api.resilience import process_in_batches
from ..domain.entities import (
    AssignmentState,
    DeviceProfile,
    MismatchReason,
    ProfileAssignmentRecord,
    ReconciliationResult,
    RemediationAction,
    RemediationType,
    SiteId,
    SyncStatus,
    utc_now,
)
from ..domain.ports import IAssignmentStore, IControlPlanePort

logger = logging.getLogger(__name__)

LOOKUP_BATCH_SIZE = 5

REMEDIATIONS = {
    MismatchReason.MISSING_ASSIGNMENT: RemediationType.ADD_ASSIGNMENT,
    MismatchReason.UNEXPECTED_ASSIGNMENT: RemediationType.REMOVE_ASSIGNMENT,
    MismatchReason.SYNC_FAILED: RemediationType.RESYNC_PROFILE,
}


def classify(
    record: ProfileAssignmentRecord,
    profile: Optional[DeviceProfile],
    covered_sites: set[SiteId],
) -> tuple[Optional[MismatchReason], AssignmentState]:
    """Classify one record against the profile as observed now.

    Returns:
        (mismatch reason or None, observed assignment state)
    """
    if profile is None:
        return MismatchReason.PROFILE_DELETED, AssignmentState.NOT_ASSIGNED

    actual = (
        AssignmentState.ASSIGNED
        if profile.has_network(record.network_id)
        else AssignmentState.NOT_ASSIGNED
    )

    if record.site_id not in covered_sites:
        return MismatchReason.SITE_ASSIGNMENT_MISSING, actual

    if (
        record.device_group_id
        and profile.device_group_id
        and profile.device_group_id != record.device_group_id
    ):
        return MismatchReason.PROFILE_MOVED, actual

    if record.expected_state == AssignmentState.ASSIGNED and actual == AssignmentState.NOT_ASSIGNED:
        return MismatchReason.MISSING_ASSIGNMENT, actual

    if record.expected_state == AssignmentState.NOT_ASSIGNED and actual == AssignmentState.ASSIGNED:
        return MismatchReason.UNEXPECTED_ASSIGNMENT, actual

    if actual == AssignmentState.ASSIGNED and record.sync_status == SyncStatus.FAILED:
        return MismatchReason.SYNC_FAILED, actual

    return None, actual


class ReconcileUseCase:
    """Detect drift between assignment intent and controller state."""

    def __init__(
        self,
        control_plane: IControlPlanePort,
        store: IAssignmentStore,
        batch_size: int = LOOKUP_BATCH_SIZE,
    ):
        self.control_plane = control_plane
        self.store = store
        self.batch_size = batch_size

    async def reconcile(self, network_id: str) -> ReconciliationResult:
        """Reconcile every profile record of a network and save the outcome."""
        records = await self.store.get_profile_assignments(network_id)
        site_records = await self.store.get_site_assignments(network_id)
        covered_sites = {r.site_id for r in site_records}

        lookups = await process_in_batches(
            records,
            lambda record: self.control_plane.get_profile(record.profile_id),
            batch_size=self.batch_size,
        )

        now = utc_now()
        matched = 0
        total_actual = 0
        mismatches: list[ProfileAssignmentRecord] = []

        for record, lookup in zip(records, lookups):
            record.last_reconciled = now

            if isinstance(lookup, BaseException):
                logger.warning(
                    f"Could not look up profile {record.profile_id} "
                    f"for network {network_id}: {lookup}"
                )
                record.actual_state = AssignmentState.UNKNOWN
                record.mismatch = None
                continue

            reason, actual = classify(record, lookup, covered_sites)
            record.actual_state = actual
            record.mismatch = reason

            if actual == AssignmentState.ASSIGNED:
                total_actual += 1
            if reason:
                mismatches.append(record)
            else:
                matched += 1

        if records:
            await self.store.save_profile_assignments_batch(records)

        result = ReconciliationResult(
            network_id=network_id,
            total_expected=sum(
                1 for r in records if r.expected_state == AssignmentState.ASSIGNED
            ),
            total_actual=total_actual,
            matched=matched,
            mismatched=len(mismatches),
            mismatches=mismatches,
            timestamp=now,
        )
        logger.info(
            f"Reconciled network {network_id}: {result.matched} matched, "
            f"{result.mismatched} mismatched of {len(records)} records"
        )
        return result

    async def load_last_result(self, network_id: str) -> ReconciliationResult:
        """Rebuild the outcome of the last reconciliation from stored records.

        Read-only: no controller calls and nothing is saved. Records that
        were never reconciled count as matched.
        """
        records = await self.store.get_profile_assignments(network_id)
        mismatches = [r for r in records if r.mismatch is not None]
        reconciled = [r.last_reconciled for r in records if r.last_reconciled]
        unknown = sum(
            1 for r in records
            if r.last_reconciled and r.actual_state == AssignmentState.UNKNOWN
        )

        return ReconciliationResult(
            network_id=network_id,
            total_expected=sum(
                1 for r in records if r.expected_state == AssignmentState.ASSIGNED
            ),
            total_actual=sum(1 for r in records if r.actual_state == AssignmentState.ASSIGNED),
            matched=len(records) - len(mismatches) - unknown,
            mismatched=len(mismatches),
            mismatches=mismatches,
            timestamp=max(reconciled) if reconciled else utc_now(),
        )

    def plan_remediation(self, result: ReconciliationResult) -> list[RemediationAction]:
        """Map each actionable mismatch to a remediation.

        PROFILE_DELETED, PROFILE_MOVED and SITE_ASSIGNMENT_MISSING need a
        human decision and produce no action.
        """
        actions = []
        for record in result.mismatches:
            action = REMEDIATIONS.get(record.mismatch)
            if action is None:
                continue

            label = record.profile_name or record.profile_id
            if action == RemediationType.ADD_ASSIGNMENT:
                description = f"Assign network {record.network_id} to profile {label}"
            elif action == RemediationType.REMOVE_ASSIGNMENT:
                description = f"Remove network {record.network_id} from profile {label}"
            else:
                description = f"Re-sync profile {label}"

            actions.append(RemediationAction(
                action=action,
                network_id=record.network_id,
                profile_id=record.profile_id,
                profile_name=record.profile_name,
                site_id=record.site_id,
                reason=record.mismatch,
                description=description,
            ))
        return actions
