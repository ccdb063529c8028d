"""Effective set calculation.

Turns each site's deployment policy plus the profiles discovered at that
site into the profiles that should receive the network. Pure computation,
no I/O.

Modes:
    ALL_PROFILES_AT_SITE: every discovered profile
    INCLUDE_ONLY: discovered profiles named in included_profiles
    EXCLUDE_SOME: discovered profiles not named in excluded_profiles

Membership is always by profile id; a policy may name ids that were not
discovered, and those are simply never selected.
"""

import logging

from ..domain.entities import (
    DeploymentMode,
    DeviceProfile,
    EffectiveProfileSet,
    SiteDeploymentConfig,
    SiteId,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class EffectiveSetCalculator:
    """Validate site policies and compute which profiles they select."""

    def validate_site_assignment(self, config: SiteDeploymentConfig) -> ValidationResult:
        """Structural validation only; profile ids need not exist yet."""
        errors = []

        if not config.site_id or not str(config.site_id).strip():
            errors.append("Site id is required")

        if config.mode == DeploymentMode.INCLUDE_ONLY and not config.included_profiles:
            errors.append(
                f"Site {config.site.name}: "
                "INCLUDE_ONLY mode requires at least one included profile"
            )

        return ValidationResult(is_valid=not errors, errors=errors)

    def calculate_effective_set(
        self,
        config: SiteDeploymentConfig,
        discovered: list[DeviceProfile],
    ) -> EffectiveProfileSet:
        if config.mode == DeploymentMode.ALL_PROFILES_AT_SITE:
            selected = list(discovered)
            excluded: list[DeviceProfile] = []

        elif config.mode == DeploymentMode.INCLUDE_ONLY:
            included_ids = set(config.included_profiles)
            selected = [p for p in discovered if p.id in included_ids]
            excluded = [p for p in discovered if p.id not in included_ids]

        elif config.mode == DeploymentMode.EXCLUDE_SOME:
            excluded_ids = set(config.excluded_profiles)
            selected = [p for p in discovered if p.id not in excluded_ids]
            excluded = [p for p in discovered if p.id in excluded_ids]

        else:
            raise ValueError(f"Unknown deployment mode: {config.mode}")

        logger.debug(
            f"Site {config.site_id} ({config.mode.value}): "
            f"{len(selected)}/{len(discovered)} profiles selected"
        )

        return EffectiveProfileSet(
            site_id=config.site_id,
            site_name=config.site_name,
            mode=config.mode,
            all_profiles=list(discovered),
            selected_profiles=selected,
            excluded_profiles=excluded,
        )

    def calculate_multiple_effective_sets(
        self,
        configs: list[SiteDeploymentConfig],
        profiles_by_site: dict[SiteId, list[DeviceProfile]],
    ) -> list[EffectiveProfileSet]:
        return [
            self.calculate_effective_set(config, profiles_by_site.get(config.site_id, []))
            for config in configs
        ]

    def merge_effective_sets(self, sets: list[EffectiveProfileSet]) -> list[DeviceProfile]:
        """Union of every set's selected profiles, de-duplicated by id.

        Include wins over exclude: a profile selected by any site is
        targeted even when another site's policy excludes it. Sets are
        walked in site id order, so the first occurrence kept for a profile
        reachable from two sites doesn't depend on input order.
        """
        ordered = sorted(sets, key=lambda s: s.site_id)

        merged: list[DeviceProfile] = []
        seen: set[str] = set()
        for effective_set in ordered:
            for profile in effective_set.selected_profiles:
                if profile.id not in seen:
                    seen.add(profile.id)
                    merged.append(profile)

        excluded_ids = {p.id for s in ordered for p in s.excluded_profiles}
        conflicts = excluded_ids & seen
        if conflicts:
            logger.info(
                f"{len(conflicts)} profile(s) excluded by one site but selected by another; "
                f"targeting them: {', '.join(sorted(conflicts))}"
            )

        return merged
