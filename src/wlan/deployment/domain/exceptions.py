"""Domain errors for network deployment.

Only ValidationError and EntityCreationError ever reach the caller of a
deployment. The other types describe per-site or per-profile failures that
are captured into the deployment summary instead of being raised.
"""

from typing import Any, Optional


class DeploymentError(Exception):
    """Base class for deployment errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code
        details: Additional context
        cause: The underlying exception, if any
    """

    code = "DEPLOYMENT_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        if cause:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ValidationError(DeploymentError):
    """One or more site deployment configs are malformed."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[list[str]] = None, **kwargs):
        self.errors = errors or [message]
        details = kwargs.pop("details", {})
        details["errors"] = self.errors
        super().__init__(message, details=details, **kwargs)


class DiscoveryError(DeploymentError):
    """Device group or profile lookup failed for one site."""

    code = "DISCOVERY_ERROR"

    def __init__(self, site_id: str, message: str, **kwargs):
        self.site_id = site_id
        details = kwargs.pop("details", {})
        details["site_id"] = site_id
        super().__init__(message, details=details, **kwargs)


class EntityCreationError(DeploymentError):
    """The controller refused to create the network entity."""

    code = "ENTITY_CREATION_ERROR"


class ProfileNotFoundError(DeploymentError):
    """A target profile disappeared before it could be assigned."""

    code = "PROFILE_NOT_FOUND"

    def __init__(self, profile_id: str, **kwargs):
        self.profile_id = profile_id
        super().__init__(
            f"Profile '{profile_id}' not found",
            details={"profile_id": profile_id},
            **kwargs,
        )


class AssignmentError(DeploymentError):
    """The controller rejected assigning the entity to a profile."""

    code = "ASSIGNMENT_ERROR"

    def __init__(self, profile_id: str, message: str, **kwargs):
        self.profile_id = profile_id
        details = kwargs.pop("details", {})
        details["profile_id"] = profile_id
        super().__init__(message, details=details, **kwargs)


class SyncError(DeploymentError):
    """Pushing configuration to one or more profiles failed."""

    code = "SYNC_ERROR"

    def __init__(self, message: str, profile_ids: Optional[list[str]] = None, **kwargs):
        self.profile_ids = profile_ids or []
        details = kwargs.pop("details", {})
        details["profile_ids"] = self.profile_ids
        super().__init__(message, details=details, **kwargs)
