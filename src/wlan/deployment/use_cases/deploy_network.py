"""Deploy Network use case.

Deploys one network definition onto the profiles selected by a set of
per-site policies:

1. Validate every site config (fatal, nothing touched yet)
2. Discover profiles at every site
3. Compute each site's effective set and merge them
   (dry run stops here and returns the projection)
4. Create the network entity (fatal on failure)
5. Assign the entity to each target profile, in sequential batches of
   ASSIGNMENT_BATCH_SIZE with every call in a batch running concurrently
6. Persist site and profile intent records
7. Sync assigned profiles: one batched call, falling back to one call
   per profile if the batch call fails
8. Summarize

Key Design Decisions:
- No rollback: once the entity exists, partial deployment is kept and
  left for reconciliation to detect
- Per-profile failures (lookup, assignment, sync) are captured in the
  summary and never raised
- Persistence failures after entity creation are reported in the summary
  errors, not raised
"""

import logging
from typing import Optional

from ...api.resilience import process_in_batches
from ..domain.entities import (
    DRY_RUN_NOTE,
    AssignmentResult,
    AssignmentSource,
    AssignmentState,
    DeploymentOptions,
    DeploymentSummary,
    DeviceProfile,
    DiscoveryResult,
    NetworkDefinition,
    NetworkEntity,
    ProfileAssignmentRecord,
    SiteAssignmentRecord,
    SiteDeploymentConfig,
    SyncResult,
    SyncStatus,
    utc_now,
)
from ..domain.exceptions import (
    AssignmentError,
    EntityCreationError,
    ProfileNotFoundError,
    SyncError,
    ValidationError,
)
from ..domain.ports import IAssignmentStore, IControlPlanePort
from .discover_profiles import ProfileDiscoveryUseCase
from .effective_set import EffectiveSetCalculator

logger = logging.getLogger(__name__)

ASSIGNMENT_BATCH_SIZE = 5


class DeployNetworkUseCase:
    """Create a network on the controller and roll it out to site profiles."""

    def __init__(
        self,
        control_plane: IControlPlanePort,
        store: IAssignmentStore,
        discovery: Optional[ProfileDiscoveryUseCase] = None,
        calculator: Optional[EffectiveSetCalculator] = None,
        batch_size: int = ASSIGNMENT_BATCH_SIZE,
    ):
        self.control_plane = control_plane
        self.store = store
        self.discovery = discovery or ProfileDiscoveryUseCase(control_plane)
        self.calculator = calculator or EffectiveSetCalculator()
        self.batch_size = batch_size

    async def execute(
        self,
        definition: NetworkDefinition,
        configs: list[SiteDeploymentConfig],
        options: Optional[DeploymentOptions] = None,
    ) -> DeploymentSummary:
        """Run the deployment pipeline.

        Args:
            definition: Network to create and deploy
            configs: One deployment policy per site
            options: dry_run / skip_sync / explicit profile ids

        Returns:
            DeploymentSummary; ``success`` is False if any profile failed
            to assign

        Raises:
            ValidationError: A site config is malformed (nothing was touched)
            EntityCreationError: The controller refused the network
                (nothing was assigned or persisted)
        """
        options = options or DeploymentOptions()

        self._validate(configs)

        discovery = await self.discovery.discover([c.site_id for c in configs])
        effective_sets = self.calculator.calculate_multiple_effective_sets(
            configs, discovery.profiles_by_site
        )
        targets = self.calculator.merge_effective_sets(effective_sets)

        errors = [
            f"Profile discovery failed for site {site_id}: {reason}"
            for site_id, reason in discovery.failed_sites.items()
        ]

        logger.info(
            f"Deploying network '{definition.name}' to {len(targets)} profiles "
            f"across {len(configs)} sites"
            + (" (dry run)" if options.dry_run else "")
        )

        if options.dry_run:
            return self._dry_run_summary(configs, discovery, targets, errors)

        entity = await self._create_entity(definition)

        assignments = await self._assign_all(entity.id, targets)
        failed = [a for a in assignments if not a.success]
        if failed:
            logger.warning(f"{len(failed)}/{len(assignments)} profile assignments failed")

        await self._persist(definition, entity, configs, targets, assignments, options, errors)

        sync_results: Optional[list[SyncResult]] = None
        if not options.skip_sync:
            sync_results = await self._sync(entity.id, targets, assignments, errors)

        if failed:
            errors.insert(0, f"{len(failed)} profile(s) failed to assign")

        summary = DeploymentSummary(
            entity_id=entity.id,
            sites_processed=len(configs),
            device_groups_found=discovery.device_groups_found,
            profiles_assigned=len(assignments) - len(failed),
            assignments=assignments,
            sync_results=sync_results,
            success=not failed,
            errors=errors,
        )
        logger.info(
            f"Deployment of '{definition.name}' finished: "
            f"{summary.profiles_assigned}/{len(assignments)} profiles assigned, "
            f"success={summary.success}"
        )
        return summary

    # ----------------------------------------
    # Pipeline steps
    # ----------------------------------------

    def _validate(self, configs: list[SiteDeploymentConfig]) -> None:
        if not configs:
            raise ValidationError("At least one site deployment config is required")

        errors: list[str] = []
        seen_sites: set[str] = set()
        for config in configs:
            result = self.calculator.validate_site_assignment(config)
            errors.extend(result.errors)
            if config.site_id in seen_sites:
                errors.append(f"Site {config.site_id} is configured more than once")
            seen_sites.add(config.site_id)

        if errors:
            raise ValidationError(
                f"Invalid site deployment configuration: {'; '.join(errors)}",
                errors=errors,
            )

    def _dry_run_summary(
        self,
        configs: list[SiteDeploymentConfig],
        discovery: DiscoveryResult,
        targets: list[DeviceProfile],
        errors: list[str],
    ) -> DeploymentSummary:
        return DeploymentSummary(
            entity_id=None,
            sites_processed=len(configs),
            device_groups_found=discovery.device_groups_found,
            profiles_assigned=0,
            assignments=[
                AssignmentResult(
                    profile_id=p.id,
                    profile_name=p.name,
                    success=True,
                    note=DRY_RUN_NOTE,
                )
                for p in targets
            ],
            success=True,
            errors=errors,
            dry_run=True,
        )

    async def _create_entity(self, definition: NetworkDefinition) -> NetworkEntity:
        try:
            entity = await self.control_plane.create_network_entity(definition)
        except EntityCreationError:
            raise
        except Exception as e:
            logger.error(f"Failed to create network '{definition.name}': {e}")
            raise EntityCreationError(
                f"Failed to create network '{definition.name}': {e}",
                details={"network_name": definition.name},
                cause=e,
            )

        if not entity or not entity.id:
            raise EntityCreationError(
                f"Controller returned no id for network '{definition.name}'",
                details={"network_name": definition.name},
            )

        logger.info(f"Created network '{definition.name}' with id {entity.id}")
        return entity

    async def _assign_all(
        self,
        entity_id: str,
        targets: list[DeviceProfile],
    ) -> list[AssignmentResult]:
        outcomes = await process_in_batches(
            targets,
            lambda profile: self._assign_one(entity_id, profile),
            batch_size=self.batch_size,
        )

        results = []
        for profile, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                outcome = AssignmentResult(
                    profile_id=profile.id,
                    profile_name=profile.name,
                    success=False,
                    error=str(outcome) or outcome.__class__.__name__,
                )
            results.append(outcome)
        return results

    async def _assign_one(self, entity_id: str, profile: DeviceProfile) -> AssignmentResult:
        try:
            current = await self.control_plane.get_profile(profile.id)
        except Exception as e:
            current = None
            lookup_error: Optional[Exception] = e
        else:
            lookup_error = None

        if current is None:
            error = ProfileNotFoundError(profile.id, cause=lookup_error)
            message = error.message + (f": {lookup_error}" if lookup_error else "")
            logger.warning(f"Skipping profile {profile.name}: {message}")
            return AssignmentResult(
                profile_id=profile.id,
                profile_name=profile.name,
                success=False,
                error=message,
                skipped=True,
            )

        try:
            await self.control_plane.assign_entity_to_profile(entity_id, profile.id)
        except Exception as e:
            error = AssignmentError(
                profile.id,
                f"Failed to assign network to profile {profile.name}: {e}",
                cause=e,
            )
            logger.error(error.message)
            return AssignmentResult(
                profile_id=profile.id,
                profile_name=profile.name,
                success=False,
                error=str(e),
            )

        logger.debug(f"Assigned network {entity_id} to profile {profile.name}")
        return AssignmentResult(
            profile_id=profile.id,
            profile_name=profile.name,
            success=True,
        )

    async def _persist(
        self,
        definition: NetworkDefinition,
        entity: NetworkEntity,
        configs: list[SiteDeploymentConfig],
        targets: list[DeviceProfile],
        assignments: list[AssignmentResult],
        options: DeploymentOptions,
        errors: list[str],
    ) -> None:
        now = utc_now()
        site_names = {c.site_id: c.site_name for c in configs}

        for config in configs:
            record = SiteAssignmentRecord(
                network_id=entity.id,
                network_name=definition.name,
                site_id=config.site_id,
                site_name=config.site_name,
                mode=config.mode,
                included_profiles=list(config.included_profiles),
                excluded_profiles=list(config.excluded_profiles),
                created_at=now,
                last_modified=now,
            )
            try:
                await self.store.save_site_assignment(record)
            except Exception as e:
                logger.error(f"Failed to persist site assignment for {config.site_id}: {e}")
                errors.append(f"Failed to persist site assignment for {config.site_id}: {e}")

        results_by_id = {a.profile_id: a for a in assignments}
        records = []
        for profile in targets:
            result = results_by_id[profile.id]
            records.append(ProfileAssignmentRecord(
                network_id=entity.id,
                network_name=definition.name,
                profile_id=profile.id,
                profile_name=profile.name,
                site_id=profile.site_id,
                site_name=site_names.get(profile.site_id, ""),
                device_group_id=profile.device_group_id,
                source=(
                    AssignmentSource.EXPLICIT_ASSIGNMENT
                    if profile.id in options.explicit_profile_ids
                    else AssignmentSource.SITE_PROPAGATION
                ),
                expected_state=AssignmentState.ASSIGNED,
                actual_state=(
                    AssignmentState.ASSIGNED if result.success else AssignmentState.NOT_ASSIGNED
                ),
                sync_status=SyncStatus.PENDING if result.success else SyncStatus.UNKNOWN,
                last_error=result.error,
            ))

        if not records:
            return

        try:
            saved = await self.store.save_profile_assignments_batch(records)
            logger.info(f"Persisted {saved} profile assignment records for network {entity.id}")
        except Exception as e:
            logger.error(f"Failed to persist profile assignments for network {entity.id}: {e}")
            errors.append(f"Failed to persist profile assignments: {e}")

    async def _sync(
        self,
        entity_id: str,
        targets: list[DeviceProfile],
        assignments: list[AssignmentResult],
        errors: list[str],
    ) -> list[SyncResult]:
        succeeded_ids = {a.profile_id for a in assignments if a.success}
        to_sync = [p for p in targets if p.id in succeeded_ids]
        if not to_sync:
            logger.info("No profiles assigned, skipping sync")
            return []

        try:
            await self.control_plane.sync_profiles([p.id for p in to_sync])
            sync_time = utc_now()
            results = [
                SyncResult(profile_id=p.id, profile_name=p.name, success=True, sync_time=sync_time)
                for p in to_sync
            ]
            logger.info(f"Synced {len(to_sync)} profiles in one batch")
        except Exception as e:
            error = SyncError(
                f"Batch sync failed, falling back to per-profile sync: {e}",
                profile_ids=[p.id for p in to_sync],
                cause=e,
            )
            logger.warning(error.message)
            outcomes = await process_in_batches(to_sync, self._sync_one, batch_size=self.batch_size)
            results = [
                outcome if isinstance(outcome, SyncResult) else SyncResult(
                    profile_id=profile.id,
                    profile_name=profile.name,
                    success=False,
                    error=str(outcome),
                )
                for profile, outcome in zip(to_sync, outcomes)
            ]

        for result in results:
            await self._record_sync_status(entity_id, result, errors)

        failed = [r for r in results if not r.success]
        if failed:
            errors.append(f"{len(failed)} profile(s) failed to sync")
        return results

    async def _sync_one(self, profile: DeviceProfile) -> SyncResult:
        try:
            await self.control_plane.sync_profile(profile.id)
        except Exception as e:
            logger.error(f"Sync failed for profile {profile.name}: {e}")
            return SyncResult(
                profile_id=profile.id,
                profile_name=profile.name,
                success=False,
                error=str(e),
            )
        return SyncResult(profile_id=profile.id, profile_name=profile.name, success=True)

    async def _record_sync_status(
        self,
        entity_id: str,
        result: SyncResult,
        errors: list[str],
    ) -> None:
        status = SyncStatus.SYNCED if result.success else SyncStatus.FAILED
        try:
            await self.store.update_sync_status(entity_id, result.profile_id, status, result.error)
        except Exception as e:
            logger.error(f"Failed to record sync status for profile {result.profile_id}: {e}")
            errors.append(f"Failed to record sync status for profile {result.profile_id}: {e}")
