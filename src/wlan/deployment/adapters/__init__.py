"""Infrastructure adapters for network deployment.

These adapters implement the port interfaces defined in the domain layer,
connecting the application to external systems like PostgreSQL and the
wireless controller API.
"""

from .controller_adapter import ControllerPlaneAdapter
from .memory_assignment_store import InMemoryAssignmentStore
from .postgres_assignment_store import PostgresAssignmentStore
from .service_payload import build_privacy_payload, build_service_payload

__all__ = [
    "ControllerPlaneAdapter",
    "PostgresAssignmentStore",
    "InMemoryAssignmentStore",
    "build_service_payload",
    "build_privacy_payload",
]
