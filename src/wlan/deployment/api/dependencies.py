"""FastAPI dependency injection for the deployment API.

Lifecycle Management:
- Controller client: opened at startup, shared across requests
- Assignment store: PostgreSQL when DATABASE_URL is set, otherwise an
  in-memory store (development only, intent is lost on restart)
- Both are closed at application shutdown

Security:
- API key authentication required for all endpoints (except /health)
- Set API_KEY, or DISABLE_AUTH=true for local development
"""

import logging
import os
import secrets
from typing import Optional

import asyncpg
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ...api.auth import ControllerTokenManager
from ...api.client import ControllerClient
from ...api.database import close_pool, create_pool
from ..adapters import (
    ControllerPlaneAdapter,
    InMemoryAssignmentStore,
    PostgresAssignmentStore,
)
from ..domain.ports import IAssignmentStore, IControlPlanePort

logger = logging.getLogger(__name__)

# ========== API Key Authentication ==========

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _get_api_key() -> Optional[str]:
    return os.getenv("API_KEY") or None


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> bool:
    """Verify the API key from the request header.

    Security model:
    - If DISABLE_AUTH=true (dev mode): authentication is disabled
    - Otherwise: API_KEY is required (fail-closed)

    Raises:
        HTTPException: 401 if the key is missing or wrong, 500 if the
            server has no API_KEY configured
    """
    if os.getenv("DISABLE_AUTH", "").lower() == "true":
        logger.warning("Authentication disabled (DISABLE_AUTH=true). Only use this in development!")
        return True

    expected_key = _get_api_key()

    if not expected_key:
        logger.error(
            "API_KEY not set - rejecting request. "
            "Set API_KEY environment variable or DISABLE_AUTH=true for development."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: API_KEY not set",
        )

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


# ========== Global State ==========

_db_pool: Optional[asyncpg.Pool] = None
_token_manager: Optional[ControllerTokenManager] = None
_client: Optional[ControllerClient] = None
_store: Optional[IAssignmentStore] = None


async def init_store():
    """Initialize the assignment store.

    Should be called on application startup.
    """
    global _db_pool, _store

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        logger.warning("DATABASE_URL not set, using in-memory assignment store")
        _store = InMemoryAssignmentStore()
        return

    _db_pool = await create_pool(database_url)
    store = PostgresAssignmentStore(_db_pool)
    await store.ensure_schema()
    _store = store


async def init_controller_client():
    """Open the shared controller client.

    Should be called on application startup.

    Raises:
        ConfigurationError: Controller credentials or base URL are missing
    """
    global _token_manager, _client

    _token_manager = ControllerTokenManager()
    _client = ControllerClient(_token_manager)
    await _client.__aenter__()

    logger.info(f"Controller client initialized for {_client.base_url}")


async def close_store():
    """Close the assignment store.

    Should be called on application shutdown.
    """
    global _db_pool, _store
    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None
    _store = None


async def close_controller_client():
    """Close the controller client.

    Should be called on application shutdown.
    """
    global _client, _token_manager

    if _client:
        await _client.__aexit__(None, None, None)
        _client = None
    _token_manager = None

    logger.info("Controller client closed")


def get_db_pool() -> Optional[asyncpg.Pool]:
    """Get the database pool, or None when running on the in-memory store."""
    return _db_pool


def get_controller_client() -> Optional[ControllerClient]:
    return _client


# ========== Dependency Functions ==========


def get_control_plane() -> IControlPlanePort:
    """Get a control-plane adapter over the shared controller client."""
    if _client is None:
        raise RuntimeError(
            "Controller client not initialized. Call init_controller_client() first."
        )
    return ControllerPlaneAdapter(_client)


def get_store() -> IAssignmentStore:
    """Get the shared assignment store."""
    if _store is None:
        raise RuntimeError("Assignment store not initialized. Call init_store() first.")
    return _store
