"""Domain entities for network deployment.

These are pure domain objects with no infrastructure dependencies.
They represent the core concepts of the deployment workflow: what is
being deployed (NetworkDefinition), where (SiteDeploymentConfig and the
profiles discovered at each site), what happened (AssignmentResult,
SyncResult, DeploymentSummary) and what was intended (the persisted
assignment records read back by reconciliation).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, NewType, Optional

from .exceptions import ValidationError
from .security import SecurityMode, SecuritySettings

SiteId = NewType("SiteId", str)

DRY_RUN_NOTE = "Dry run — not executed"

MAX_SSID_BYTES = 32


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeploymentMode(str, Enum):
    """Which profiles at a site receive the network."""

    ALL_PROFILES_AT_SITE = "ALL_PROFILES_AT_SITE"
    INCLUDE_ONLY = "INCLUDE_ONLY"
    EXCLUDE_SOME = "EXCLUDE_SOME"


class Band(str, Enum):
    """Radio bands a network is broadcast on."""

    BAND_2_4 = "2.4GHz"
    BAND_5 = "5GHz"
    BAND_6 = "6GHz"
    DUAL = "dual"
    ALL = "all"


class AssignmentSource(str, Enum):
    """How a profile came to be targeted."""

    SITE_PROPAGATION = "SITE_PROPAGATION"  # Selected by a site policy
    EXPLICIT_ASSIGNMENT = "EXPLICIT_ASSIGNMENT"  # Named by the caller
    MANUAL_OVERRIDE = "MANUAL_OVERRIDE"  # Edited outside a deployment run


class AssignmentState(str, Enum):
    ASSIGNED = "ASSIGNED"
    NOT_ASSIGNED = "NOT_ASSIGNED"
    UNKNOWN = "UNKNOWN"


class SyncStatus(str, Enum):
    PENDING = "PENDING"
    SYNCED = "SYNCED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


class MismatchReason(str, Enum):
    """Why persisted intent and observed state disagree."""

    MISSING_ASSIGNMENT = "MISSING_ASSIGNMENT"
    UNEXPECTED_ASSIGNMENT = "UNEXPECTED_ASSIGNMENT"
    PROFILE_DELETED = "PROFILE_DELETED"
    PROFILE_MOVED = "PROFILE_MOVED"
    SYNC_FAILED = "SYNC_FAILED"
    SITE_ASSIGNMENT_MISSING = "SITE_ASSIGNMENT_MISSING"


class RemediationType(str, Enum):
    ADD_ASSIGNMENT = "ADD_ASSIGNMENT"
    REMOVE_ASSIGNMENT = "REMOVE_ASSIGNMENT"
    RESYNC_PROFILE = "RESYNC_PROFILE"


# ============================================
# What is deployed
# ============================================


@dataclass(frozen=True)
class NetworkFeatures:
    """Optional radio and client-handling features of a network.

    Idle timeouts and session timeout are in seconds; a session timeout of
    0 means unlimited.
    """

    mbo: bool = True
    rm_11k: bool = False
    rm_11k_beacon_report: bool = False
    rm_11k_quiet_ie: bool = False
    ftm_11mc: bool = False
    uapsd: bool = True
    admission_control_voice: bool = False
    admission_control_video: bool = False
    admission_control_best_effort: bool = False
    admission_control_background: bool = False
    accounting: bool = False
    client_to_client: bool = True
    include_hostname: bool = False
    purge_on_disconnect: bool = False
    beacon_protection: bool = False
    pre_auth_idle_timeout: int = 300
    post_auth_idle_timeout: int = 1800
    session_timeout: int = 0

    def __post_init__(self):
        for name in ("pre_auth_idle_timeout", "post_auth_idle_timeout", "session_timeout"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must not be negative")


@dataclass(frozen=True)
class NetworkDefinition:
    """A declared wireless network, deployed as a service on the controller.

    Frozen: the definition submitted to entity creation is the one that
    was validated.
    """

    name: str
    ssid: str
    security: SecuritySettings
    vlan: int = 1
    band: Band = Band.ALL
    enabled: bool = True
    hidden: bool = False
    description: Optional[str] = None
    features: NetworkFeatures = field(default_factory=NetworkFeatures)
    topology_id: Optional[str] = None
    cos_id: Optional[str] = None
    default_role_id: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Network name is required")
        if not self.ssid:
            raise ValidationError("SSID is required")
        if len(self.ssid.encode("utf-8")) > MAX_SSID_BYTES:
            raise ValidationError(f"SSID must be at most {MAX_SSID_BYTES} bytes")
        if not 1 <= self.vlan <= 4094:
            raise ValidationError(f"VLAN must be between 1 and 4094, got {self.vlan}")

    @property
    def security_mode(self) -> SecurityMode:
        return self.security.mode

    def to_dict(self) -> dict[str, Any]:
        # Secrets stay out of serialized output
        return {
            "name": self.name,
            "ssid": self.ssid,
            "security_mode": self.security_mode.value,
            "vlan": self.vlan,
            "band": self.band.value,
            "enabled": self.enabled,
            "hidden": self.hidden,
            "description": self.description,
        }


@dataclass
class NetworkEntity:
    """The service object created on the controller."""

    id: str
    name: str
    ssid: Optional[str] = None


# ============================================
# Where it is deployed
# ============================================


@dataclass
class Site:
    id: SiteId
    name: str


@dataclass
class DeviceGroup:
    id: str
    name: str
    site_id: SiteId


@dataclass
class DeviceProfile:
    """A configuration template applied to devices in one device group.

    ``network_ids`` lists the network entities the controller reports as
    assigned to this profile; it is empty when the lookup didn't include
    them.
    """

    id: str
    name: str
    site_id: SiteId
    device_group_id: str
    network_ids: tuple[str, ...] = ()

    def has_network(self, network_id: str) -> bool:
        return network_id in self.network_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "site_id": self.site_id,
            "device_group_id": self.device_group_id,
        }


@dataclass
class SiteDeploymentConfig:
    """Deployment policy for one site.

    INCLUDE_ONLY uses ``included_profiles``; EXCLUDE_SOME uses
    ``excluded_profiles``; ALL_PROFILES_AT_SITE ignores both.
    """

    site_id: SiteId
    mode: DeploymentMode = DeploymentMode.ALL_PROFILES_AT_SITE
    site_name: str = ""
    included_profiles: list[str] = field(default_factory=list)
    excluded_profiles: list[str] = field(default_factory=list)

    @property
    def site(self) -> Site:
        """The site this policy targets, named by its id when no name was given."""
        return Site(id=self.site_id, name=self.site_name or str(self.site_id))


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class DiscoveryResult:
    """Everything one discovery pass learned about a set of sites."""

    profiles_by_site: dict[SiteId, list[DeviceProfile]] = field(default_factory=dict)
    device_groups_by_site: dict[SiteId, int] = field(default_factory=dict)
    failed_sites: dict[SiteId, str] = field(default_factory=dict)

    @property
    def device_groups_found(self) -> int:
        return sum(self.device_groups_by_site.values())

    @property
    def profile_count(self) -> int:
        return sum(len(profiles) for profiles in self.profiles_by_site.values())


@dataclass
class EffectiveProfileSet:
    """The profiles one site's policy selects out of what was discovered there."""

    site_id: SiteId
    site_name: str
    mode: DeploymentMode
    all_profiles: list[DeviceProfile] = field(default_factory=list)
    selected_profiles: list[DeviceProfile] = field(default_factory=list)
    excluded_profiles: list[DeviceProfile] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "site_id": self.site_id,
            "site_name": self.site_name,
            "mode": self.mode.value,
            "all_profiles": [p.to_dict() for p in self.all_profiles],
            "selected_profiles": [p.to_dict() for p in self.selected_profiles],
            "excluded_profiles": [p.to_dict() for p in self.excluded_profiles],
        }


# ============================================
# What happened
# ============================================


@dataclass
class DeploymentOptions:
    dry_run: bool = False
    skip_sync: bool = False
    # Profiles named directly by the caller rather than reached via site policy
    explicit_profile_ids: frozenset[str] = frozenset()


@dataclass
class AssignmentResult:
    profile_id: str
    profile_name: str
    success: bool
    error: Optional[str] = None
    skipped: bool = False
    note: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "profile_name": self.profile_name,
            "success": self.success,
            "error": self.error,
            "skipped": self.skipped,
            "note": self.note,
        }


@dataclass
class SyncResult:
    profile_id: str
    profile_name: str
    success: bool
    error: Optional[str] = None
    sync_time: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "profile_name": self.profile_name,
            "success": self.success,
            "error": self.error,
            "sync_time": self.sync_time.isoformat(),
        }


@dataclass
class DeploymentSummary:
    """Outcome of one deployment run.

    ``success`` is True only when no profile failed to assign. Sync and
    persistence problems are listed in ``errors`` without flipping it.
    """

    entity_id: Optional[str]
    sites_processed: int
    device_groups_found: int
    profiles_assigned: int
    assignments: list[AssignmentResult] = field(default_factory=list)
    sync_results: Optional[list[SyncResult]] = None
    success: bool = True
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failed_assignments(self) -> list[AssignmentResult]:
        return [a for a in self.assignments if not a.success]

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "sites_processed": self.sites_processed,
            "device_groups_found": self.device_groups_found,
            "profiles_assigned": self.profiles_assigned,
            "assignments": [a.to_dict() for a in self.assignments],
            "sync_results": (
                [s.to_dict() for s in self.sync_results]
                if self.sync_results is not None
                else None
            ),
            "success": self.success,
            "errors": self.errors,
            "dry_run": self.dry_run,
        }


# ============================================
# What was intended (persisted)
# ============================================


@dataclass
class SiteAssignmentRecord:
    network_id: str
    site_id: SiteId
    mode: DeploymentMode
    network_name: str = ""
    site_name: str = ""
    included_profiles: list[str] = field(default_factory=list)
    excluded_profiles: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    last_modified: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "network_id": self.network_id,
            "network_name": self.network_name,
            "site_id": self.site_id,
            "site_name": self.site_name,
            "mode": self.mode.value,
            "included_profiles": self.included_profiles,
            "excluded_profiles": self.excluded_profiles,
            "created_at": self.created_at.isoformat(),
            "last_modified": self.last_modified.isoformat(),
        }


@dataclass
class ProfileAssignmentRecord:
    network_id: str
    profile_id: str
    site_id: SiteId
    network_name: str = ""
    profile_name: str = ""
    site_name: str = ""
    device_group_id: Optional[str] = None
    source: AssignmentSource = AssignmentSource.SITE_PROPAGATION
    expected_state: AssignmentState = AssignmentState.ASSIGNED
    actual_state: AssignmentState = AssignmentState.UNKNOWN
    mismatch: Optional[MismatchReason] = None
    sync_status: SyncStatus = SyncStatus.UNKNOWN
    last_error: Optional[str] = None
    last_reconciled: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "network_id": self.network_id,
            "network_name": self.network_name,
            "profile_id": self.profile_id,
            "profile_name": self.profile_name,
            "site_id": self.site_id,
            "site_name": self.site_name,
            "device_group_id": self.device_group_id,
            "source": self.source.value,
            "expected_state": self.expected_state.value,
            "actual_state": self.actual_state.value,
            "mismatch": self.mismatch.value if self.mismatch else None,
            "sync_status": self.sync_status.value,
            "last_error": self.last_error,
            "last_reconciled": (
                self.last_reconciled.isoformat() if self.last_reconciled else None
            ),
        }


@dataclass
class ReconciliationResult:
    network_id: str
    total_expected: int
    total_actual: int
    matched: int
    mismatched: int
    mismatches: list[ProfileAssignmentRecord] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "network_id": self.network_id,
            "total_expected": self.total_expected,
            "total_actual": self.total_actual,
            "matched": self.matched,
            "mismatched": self.mismatched,
            "mismatches": [m.to_dict() for m in self.mismatches],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RemediationAction:
    """A planned fix for one mismatch. Planned only, never executed here."""

    action: RemediationType
    network_id: str
    profile_id: str
    profile_name: str
    site_id: SiteId
    reason: MismatchReason
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "network_id": self.network_id,
            "profile_id": self.profile_id,
            "profile_name": self.profile_name,
            "site_id": self.site_id,
            "reason": self.reason.value,
            "description": self.description,
        }
