"""Domain layer for network deployment.

Contains:
- Entities: Core business objects
- Security: Per-mode security settings
- Exceptions: Deployment error taxonomy
- Ports: Interface definitions for infrastructure adapters
"""

from .entities import (
    DRY_RUN_NOTE,
    AssignmentResult,
    AssignmentSource,
    AssignmentState,
    Band,
    DeploymentMode,
    DeploymentOptions,
    DeploymentSummary,
    DeviceGroup,
    DeviceProfile,
    DiscoveryResult,
    EffectiveProfileSet,
    MismatchReason,
    NetworkDefinition,
    NetworkEntity,
    NetworkFeatures,
    ProfileAssignmentRecord,
    ReconciliationResult,
    RemediationAction,
    RemediationType,
    Site,
    SiteAssignmentRecord,
    SiteDeploymentConfig,
    SiteId,
    SyncResult,
    SyncStatus,
    ValidationResult,
)
from .exceptions import (
    AssignmentError,
    DeploymentError,
    DiscoveryError,
    EntityCreationError,
    ProfileNotFoundError,
    SyncError,
)
from .exceptions import (
    ValidationError as DomainValidationError,
)
from .ports import IAssignmentStore, IControlPlanePort
from .security import (
    EnterpriseSecurity,
    OpenSecurity,
    OweSecurity,
    PskSecurity,
    SaeSecurity,
    SecurityMode,
    SecuritySettings,
    WepSecurity,
    security_from_dict,
)

__all__ = [
    # Entities
    "SiteId",
    "Site",
    "DeviceGroup",
    "DeviceProfile",
    "NetworkDefinition",
    "NetworkEntity",
    "NetworkFeatures",
    "Band",
    "DeploymentMode",
    "SiteDeploymentConfig",
    "ValidationResult",
    "DiscoveryResult",
    "EffectiveProfileSet",
    "DeploymentOptions",
    "AssignmentResult",
    "SyncResult",
    "DeploymentSummary",
    "DRY_RUN_NOTE",
    "AssignmentSource",
    "AssignmentState",
    "SyncStatus",
    "MismatchReason",
    "RemediationType",
    "SiteAssignmentRecord",
    "ProfileAssignmentRecord",
    "ReconciliationResult",
    "RemediationAction",
    # Security
    "SecurityMode",
    "SecuritySettings",
    "OpenSecurity",
    "OweSecurity",
    "WepSecurity",
    "PskSecurity",
    "SaeSecurity",
    "EnterpriseSecurity",
    "security_from_dict",
    # Exceptions
    "DeploymentError",
    "DomainValidationError",
    "DiscoveryError",
    "EntityCreationError",
    "ProfileNotFoundError",
    "AssignmentError",
    "SyncError",
    # Ports
    "IControlPlanePort",
    "IAssignmentStore",
]
