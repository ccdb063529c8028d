#!/usr/bin/env python3
"""HTTP Client for the Wireless Controller management API.

This module provides a reusable HTTP client that handles the transport
concerns of talking to the controller:

    - Bearer authentication via ControllerTokenManager
    - Automatic token refresh on 401 responses
    - Retry with exponential backoff for 429, 5xx and network errors
      (GETs and idempotent POSTs only)
    - Connection pooling via a shared aiohttp session
    - Circuit breaker for resilience against controller outages
    - Typed exceptions mapped from HTTP status codes

Design Philosophy:
    This client knows HOW to talk to the controller, but not WHAT to ask.
    It has no knowledge of services, device groups or profiles. That
    knowledge belongs in ControllerPlaneAdapter, which composes this client.

Usage:
    async with ControllerClient(token_manager) as client:
        groups = await client.get("/v3/sites/site-1/devicegroups")
        await client.post("/v3/profiles/sync", {"profileIds": ["p1", "p2"]}, retry=True)
"""
import asyncio
import logging
import os
from typing import Any, Optional

import aiohttp

from .auth import ControllerTokenManager
from .exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TokenExpiredError,
    ValidationError,
)
from .resilience import DEFAULT_RETRYABLE_EXCEPTIONS, CircuitBreaker, retry_async

logger = logging.getLogger(__name__)

# All REST resources live under this prefix on the controller
API_PREFIX = "/management"

REQUEST_TIMEOUT_SECONDS = 60

RETRYABLE_EXCEPTIONS = DEFAULT_RETRYABLE_EXCEPTIONS + (TokenExpiredError,)


class ControllerClient:
    """Async HTTP client for the controller management API.

    Use as an async context manager so the session is always closed:

        async with ControllerClient(token_manager) as client:
            data = await client.get("/v3/profiles/abc")

    Attributes:
        token_manager: ControllerTokenManager for bearer tokens
        base_url: Controller base URL (without the /management prefix)
        verify_ssl: Whether to verify the controller certificate
        max_retries: Attempts per request before giving up
    """

    def __init__(
        self,
        token_manager: ControllerTokenManager,
        base_url: Optional[str] = None,
        verify_ssl: Optional[bool] = None,
        max_retries: int = 3,
        enable_circuit_breaker: bool = True,
        circuit_failure_threshold: int = 5,
        circuit_timeout: float = 60.0,
    ):
        """Initialize the ControllerClient.

        Args:
            token_manager: Token manager for authentication
            base_url: Controller base URL. Defaults to CONTROLLER_BASE_URL env var.
            verify_ssl: Verify TLS. Defaults to the token manager's setting.
            max_retries: Maximum attempts for retryable failures
            enable_circuit_breaker: Enable circuit breaker for resilience
            circuit_failure_threshold: Failures before circuit opens
            circuit_timeout: Seconds before circuit attempts to close

        Raises:
            ConfigurationError: If no base URL is configured.
        """
        self.token_manager = token_manager
        self.base_url = (base_url or os.getenv("CONTROLLER_BASE_URL", "")).rstrip("/")

        if not self.base_url:
            raise ConfigurationError(
                "Controller base URL is required. "
                "Provide base_url parameter or set CONTROLLER_BASE_URL environment variable. "
                "Example: https://controller.example.com:5825",
                missing_keys=["CONTROLLER_BASE_URL"],
            )

        if verify_ssl is None:
            verify_ssl = getattr(token_manager, "verify_ssl", True)
        self.verify_ssl = verify_ssl
        self.max_retries = max_retries

        self._session: Optional[aiohttp.ClientSession] = None

        self._circuit_breaker: Optional[CircuitBreaker] = None
        if enable_circuit_breaker:
            self._circuit_breaker = CircuitBreaker(
                failure_threshold=circuit_failure_threshold,
                timeout=circuit_timeout,
                name="controller_api",
                counted_exceptions=(NetworkError, ServerError, RateLimitError),
            )

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "ControllerClient":
        """Enter async context: create the HTTP session."""
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(
                limit=10,
                limit_per_host=10,
                ssl=None if self.verify_ssl else False,
            ),
            timeout=aiohttp.ClientTimeout(
                total=REQUEST_TIMEOUT_SECONDS,
                connect=10,
            ),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context: close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    # ----------------------------------------
    # Low-Level Request Methods
    # ----------------------------------------

    async def _get_auth_headers(self) -> dict[str, str]:
        token = await self.token_manager.get_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Any:
        """Make a single HTTP request (no retry logic).

        Args:
            method: HTTP method (GET or POST)
            endpoint: Path below the /management prefix (e.g. "/v1/services")
            params: Query parameters
            json_body: JSON request body

        Returns:
            Parsed JSON response (dict or list), or {} for an empty body

        Raises:
            APIError: If response status is not 2xx
            RuntimeError: If called outside of async context manager
            ConnectionError: If connection to the controller fails
            TimeoutError: If the request times out
        """
        if not self._session:
            raise RuntimeError(
                "ControllerClient must be used as async context manager: "
                "async with ControllerClient(...) as client:"
            )

        url = f"{self.base_url}{API_PREFIX}{endpoint}"

        try:
            headers = await self._get_auth_headers()

            async with self._session.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json_body,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise self._create_api_error(
                        status=response.status,
                        method=method,
                        endpoint=endpoint,
                        response_body=error_text,
                        retry_after=response.headers.get("Retry-After"),
                    )

                # Sync and assign endpoints answer 200/204 with no body
                if response.status == 204 or response.content_length == 0:
                    return {}
                return await response.json(content_type=None)

        except aiohttp.ClientConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to controller at {self.base_url}",
                host=self.base_url,
                cause=e,
            )

        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Controller request to {endpoint} timed out",
                timeout_seconds=REQUEST_TIMEOUT_SECONDS,
                cause=e,
            )

        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Network error during {method} {endpoint}: {e}",
                cause=e,
            )

    def _create_api_error(
        self,
        status: int,
        method: str,
        endpoint: str,
        response_body: str,
        retry_after: Optional[str] = None,
    ) -> Exception:
        """Create the exception matching a controller error status."""
        if status == 401:
            return TokenExpiredError(
                "Controller access token expired or invalid",
                details={"endpoint": endpoint},
            )

        if status == 404:
            return NotFoundError(
                resource_type="Resource",
                resource_id=endpoint,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status == 429:
            try:
                retry_seconds = int(retry_after) if retry_after else None
            except ValueError:
                retry_seconds = None
            return RateLimitError(
                f"Controller rate limit exceeded for {endpoint}",
                retry_after=retry_seconds,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status in (400, 409, 422):
            return ValidationError(
                f"Controller rejected {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status >= 500:
            return ServerError(
                f"Controller server error ({status}) for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        return APIError(
            f"Controller {method} {endpoint} failed",
            status_code=status,
            endpoint=endpoint,
            method=method,
            response_body=response_body,
        )

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
        retry: bool = True,
    ) -> Any:
        """Make an HTTP request with retry and circuit breaker.

            - Circuit breaker: fail fast while the controller is down
            - 401: invalidate the cached token and re-issue once
            - 429 / 5xx / network errors: exponential backoff retry,
              only when ``retry`` is set
            - 404 / 400 / 422: raised immediately

        A request that timed out or got a 5xx may still have been applied,
        so writes that create or attach something pass ``retry=False``.
        A 401 means nothing was applied and is always re-issued.

        Raises:
            CircuitOpenError: If circuit breaker is open
            APIError: If request fails after all retries
            NetworkError: If network error persists after retries
        """
        async def attempt() -> Any:
            try:
                return await self._request(method, endpoint, params, json_body)
            except TokenExpiredError:
                logger.warning(f"Controller token rejected on {method} {endpoint}, refreshing")
                self.token_manager.invalidate()
                raise

        async def with_retry() -> Any:
            if not retry:
                return await retry_async(
                    attempt,
                    max_attempts=2,
                    retryable_exceptions=(TokenExpiredError,),
                )
            return await retry_async(
                attempt,
                max_attempts=self.max_retries,
                retryable_exceptions=RETRYABLE_EXCEPTIONS,
            )

        if self._circuit_breaker:
            return await self._circuit_breaker.call(with_retry)
        return await with_retry()

    @property
    def circuit_status(self) -> Optional[dict[str, Any]]:
        """Get circuit breaker status for monitoring."""
        if self._circuit_breaker:
            return self._circuit_breaker.get_status()
        return None

    # ----------------------------------------
    # High-Level Request Methods
    # ----------------------------------------

    async def get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        return await self._request_with_retry("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        json_body: Optional[dict] = None,
        params: Optional[dict] = None,
        retry: bool = False,
    ) -> Any:
        """POST once; pass ``retry=True`` only for idempotent endpoints."""
        return await self._request_with_retry(
            "POST", endpoint, params=params, json_body=json_body, retry=retry
        )
