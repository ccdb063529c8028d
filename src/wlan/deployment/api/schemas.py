"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..domain.entities import (
    AssignmentSource,
    AssignmentState,
    Band,
    DeploymentMode,
    MismatchReason,
    NetworkDefinition,
    NetworkFeatures,
    RemediationType,
    SiteDeploymentConfig,
    SiteId,
    SyncStatus,
)
from ..domain.security import SecurityMode, SecuritySettings, security_from_dict

# ========== Requests ==========


class SecurityDTO(BaseModel):
    """Security settings; which fields apply depends on ``mode``.

    Fields that don't belong to the chosen mode are rejected when the DTO
    is converted to the domain object.
    """

    mode: SecurityMode

    # WEP
    key: Optional[str] = None
    key_length: Optional[int] = None
    input_method: Optional[str] = None
    key_index: Optional[int] = None

    # PSK / SAE
    passphrase: Optional[str] = None
    key_hex_encoded: Optional[bool] = None
    sae_method: Optional[str] = None

    # Shared by PSK and enterprise
    encryption: Optional[str] = None
    pmf: Optional[str] = None

    # Enterprise
    aaa_policy_id: Optional[str] = None
    radius_servers: Optional[list[str]] = None
    auth_method: Optional[str] = None
    ldap_configuration_id: Optional[str] = None
    fast_transition: Optional[bool] = None
    mba_enabled: Optional[bool] = None
    six_e_compliance: Optional[bool] = None

    def to_domain(self) -> SecuritySettings:
        return security_from_dict(self.model_dump(exclude_unset=True))


class NetworkFeaturesDTO(BaseModel):
    """Radio and client-handling features (timeouts in seconds)."""

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


class NetworkDefinitionDTO(BaseModel):
    """Network to create on the controller."""

    name: str
    ssid: str
    security: SecurityDTO
    vlan: int = 1
    band: Band = Band.ALL
    enabled: bool = True
    hidden: bool = False
    description: Optional[str] = None
    features: NetworkFeaturesDTO = Field(default_factory=NetworkFeaturesDTO)
    topology_id: Optional[str] = None
    cos_id: Optional[str] = None
    default_role_id: Optional[str] = None

    def to_domain(self) -> NetworkDefinition:
        return NetworkDefinition(
            name=self.name,
            ssid=self.ssid,
            security=self.security.to_domain(),
            vlan=self.vlan,
            band=self.band,
            enabled=self.enabled,
            hidden=self.hidden,
            description=self.description,
            features=NetworkFeatures(**self.features.model_dump()),
            topology_id=self.topology_id,
            cos_id=self.cos_id,
            default_role_id=self.default_role_id,
        )


class SiteDeploymentConfigDTO(BaseModel):
    """Deployment policy for one site."""

    site_id: str
    site_name: str = ""
    mode: DeploymentMode = DeploymentMode.ALL_PROFILES_AT_SITE
    included_profiles: list[str] = Field(default_factory=list)
    excluded_profiles: list[str] = Field(default_factory=list)

    def to_domain(self) -> SiteDeploymentConfig:
        return SiteDeploymentConfig(
            site_id=SiteId(self.site_id),
            site_name=self.site_name,
            mode=self.mode,
            included_profiles=list(self.included_profiles),
            excluded_profiles=list(self.excluded_profiles),
        )


class DeployRequest(BaseModel):
    """Request to deploy a network to a set of sites."""

    network: NetworkDefinitionDTO
    sites: list[SiteDeploymentConfigDTO]
    dry_run: bool = False
    skip_sync: bool = False
    explicit_profile_ids: list[str] = Field(default_factory=list)


class PreviewRequest(BaseModel):
    """Request to list the profiles present at a set of sites."""

    site_ids: list[str]


# ========== Responses ==========


class DeviceProfileDTO(BaseModel):
    id: str
    name: str
    site_id: str
    device_group_id: str

    class Config:
        from_attributes = True


class PreviewResponse(BaseModel):
    """Profiles discovered at the requested sites."""

    profiles: list[DeviceProfileDTO] = Field(default_factory=list)
    total_profiles: int = 0
    device_groups_found: int = 0
    failed_sites: dict[str, str] = Field(default_factory=dict)


class AssignmentResultDTO(BaseModel):
    profile_id: str
    profile_name: str
    success: bool
    error: Optional[str] = None
    skipped: bool = False
    note: Optional[str] = None

    class Config:
        from_attributes = True


class SyncResultDTO(BaseModel):
    profile_id: str
    profile_name: str
    success: bool
    error: Optional[str] = None
    sync_time: datetime

    class Config:
        from_attributes = True


class DeployResponse(BaseModel):
    """Outcome of a deployment (or its dry-run projection)."""

    entity_id: Optional[str] = None
    sites_processed: int
    device_groups_found: int
    profiles_assigned: int
    assignments: list[AssignmentResultDTO] = Field(default_factory=list)
    sync_results: Optional[list[SyncResultDTO]] = None
    success: bool
    errors: list[str] = Field(default_factory=list)
    dry_run: bool = False


class SiteAssignmentRecordDTO(BaseModel):
    network_id: str
    network_name: str
    site_id: str
    site_name: str
    mode: DeploymentMode
    included_profiles: list[str] = Field(default_factory=list)
    excluded_profiles: list[str] = Field(default_factory=list)
    created_at: datetime
    last_modified: datetime

    class Config:
        from_attributes = True


class ProfileAssignmentRecordDTO(BaseModel):
    network_id: str
    network_name: str
    profile_id: str
    profile_name: str
    site_id: str
    site_name: str
    device_group_id: Optional[str] = None
    source: AssignmentSource
    expected_state: AssignmentState
    actual_state: AssignmentState
    mismatch: Optional[MismatchReason] = None
    sync_status: SyncStatus
    last_error: Optional[str] = None
    last_reconciled: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignmentsResponse(BaseModel):
    """Persisted assignment intent of one network."""

    network_id: str
    sites: list[SiteAssignmentRecordDTO] = Field(default_factory=list)
    profiles: list[ProfileAssignmentRecordDTO] = Field(default_factory=list)


class ReconcileResponse(BaseModel):
    network_id: str
    total_expected: int
    total_actual: int
    matched: int
    mismatched: int
    mismatches: list[ProfileAssignmentRecordDTO] = Field(default_factory=list)
    timestamp: datetime

    class Config:
        from_attributes = True


class RemediationActionDTO(BaseModel):
    action: RemediationType
    network_id: str
    profile_id: str
    profile_name: str
    site_id: str
    reason: MismatchReason
    description: str

    class Config:
        from_attributes = True


class RemediationResponse(BaseModel):
    """Planned fixes for the mismatches found by the last reconciliation."""

    network_id: str
    actions: list[RemediationActionDTO] = Field(default_factory=list)
    unresolved: list[ProfileAssignmentRecordDTO] = Field(default_factory=list)
