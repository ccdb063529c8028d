"""API layer for network deployment.

Contains:
- FastAPI router with endpoints
- Pydantic schemas for request/response validation
- Dependency injection of the shared controller client and store
"""

from .router import router
from .schemas import (
    AssignmentsResponse,
    DeployRequest,
    DeployResponse,
    NetworkDefinitionDTO,
    PreviewRequest,
    PreviewResponse,
    ReconcileResponse,
    RemediationResponse,
    SecurityDTO,
    SiteDeploymentConfigDTO,
)

__all__ = [
    "router",
    "SecurityDTO",
    "NetworkDefinitionDTO",
    "SiteDeploymentConfigDTO",
    "DeployRequest",
    "DeployResponse",
    "PreviewRequest",
    "PreviewResponse",
    "ReconcileResponse",
    "RemediationResponse",
    "AssignmentsResponse",
]
