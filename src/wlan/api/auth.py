#!/usr/bin/env python3
"""OAuth2 Token Management for the Wireless Controller API.

The controller issues bearer tokens through its own OAuth2 endpoint using the
password grant (``/management/v1/oauth2/token``).

Features:
    - Token caching with a dynamic expiration buffer (10% of TTL, max 5min)
    - Refresh serialized with asyncio.Lock so concurrent callers share one fetch
    - Exponential backoff retry on transient failures (1s, 2s, 4s)
    - Typed errors for bad credentials, timeouts and connection failures

Environment Variables:
    - CONTROLLER_BASE_URL: Controller base URL (e.g. https://controller:5825)
    - CONTROLLER_USERNAME: API user
    - CONTROLLER_PASSWORD: API password
    - CONTROLLER_TOKEN_URL: Token endpoint (defaults to
      {CONTROLLER_BASE_URL}/management/v1/oauth2/token)
"""
import asyncio
import hashlib
import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Optional

import aiohttp
from dotenv import load_dotenv

from .exceptions import (
    ConfigurationError,
    ConnectionError,
    InvalidCredentialsError,
    NetworkError,
    TimeoutError,
    TokenFetchError,
)

load_dotenv()

logger = logging.getLogger(__name__)

TOKEN_PATH = "/management/v1/oauth2/token"


@dataclass
class CachedToken:
    """Container for a cached access token.

    Attributes:
        access_token: The bearer token string.
        expires_at: Unix timestamp when the token expires.
        token_type: Token type, typically "Bearer".
        expires_in: Original TTL in seconds (for dynamic buffer calculation).
    """
    access_token: str
    expires_at: float
    token_type: Optional[str] = "Bearer"
    expires_in: int = 7200

    MAX_BUFFER_SECONDS = 300
    MIN_BUFFER_SECONDS = 30

    @property
    def token_id(self) -> str:
        """Safe identifier for logging (SHA-256 hash, first 8 chars)."""
        return hashlib.sha256(self.access_token.encode()).hexdigest()[:8]

    @property
    def _buffer_seconds(self) -> float:
        """10% of TTL clamped to [MIN, MAX], with ±10% jitter."""
        base_buffer = self.expires_in * 0.1
        buffer = max(self.MIN_BUFFER_SECONDS, min(base_buffer, self.MAX_BUFFER_SECONDS))
        jitter = buffer * random.uniform(-0.1, 0.1)
        return buffer + jitter

    @property
    def is_expired(self) -> bool:
        """Check if the token has expired (with dynamic safety buffer + jitter)."""
        return time.time() >= (self.expires_at - self._buffer_seconds)

    @property
    def time_remaining(self) -> float:
        """Return seconds remaining before token expires (0 if expired)."""
        return max(0, self.expires_at - time.time())


class ControllerTokenManager:
    """Token manager for the controller management API.

    Attributes:
        username: API user (from env: CONTROLLER_USERNAME).
        password: API password (from env: CONTROLLER_PASSWORD).
        token_url: Token endpoint (from env: CONTROLLER_TOKEN_URL).
        verify_ssl: Whether to verify the controller certificate.

    Example:
        >>> manager = ControllerTokenManager()
        >>> token = await manager.get_token()  # Fetches new token
        >>> token = await manager.get_token()  # Returns cached token
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        token_url: Optional[str] = None,
        verify_ssl: Optional[bool] = None,
    ):
        """Initialize ControllerTokenManager.

        Args:
            username: API user. Defaults to CONTROLLER_USERNAME env var.
            password: API password. Defaults to CONTROLLER_PASSWORD env var.
            token_url: Token endpoint. Defaults to CONTROLLER_TOKEN_URL env var,
                       or the standard path under CONTROLLER_BASE_URL.
            verify_ssl: Verify TLS certificates. Defaults to
                        CONTROLLER_VERIFY_SSL env var (true unless "false").

        Raises:
            ConfigurationError: If required credentials are missing.
        """
        self.username = username or os.getenv("CONTROLLER_USERNAME")
        self.password = password or os.getenv("CONTROLLER_PASSWORD")

        base_url = os.getenv("CONTROLLER_BASE_URL", "").rstrip("/")
        self.token_url = token_url or os.getenv("CONTROLLER_TOKEN_URL") or (
            f"{base_url}{TOKEN_PATH}" if base_url else None
        )

        if verify_ssl is None:
            verify_ssl = os.getenv("CONTROLLER_VERIFY_SSL", "true").lower() != "false"
        self.verify_ssl = verify_ssl

        if not all([self.username, self.password, self.token_url]):
            missing = []
            if not self.username:
                missing.append("CONTROLLER_USERNAME")
            if not self.password:
                missing.append("CONTROLLER_PASSWORD")
            if not self.token_url:
                missing.append("CONTROLLER_BASE_URL")
            raise ConfigurationError(
                f"Missing required controller environment variables: {', '.join(missing)}",
                missing_keys=missing,
            )

        self._cached_token: Optional[CachedToken] = None
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        """Get a valid access token, fetching or refreshing as needed.

        Raises:
            TokenFetchError: If token cannot be obtained after retries
        """
        if self._cached_token and not self._cached_token.is_expired:
            return self._cached_token.access_token

        async with self._lock:
            if self._cached_token and not self._cached_token.is_expired:
                return self._cached_token.access_token

            self._cached_token = await self._fetch_token()
            return self._cached_token.access_token

    async def _fetch_token(self, max_retries: int = 3) -> CachedToken:
        """Fetch a new access token from the controller.

        Args:
            max_retries: Maximum number of retry attempts

        Returns:
            CachedToken with the new access token

        Raises:
            TokenFetchError: If token cannot be fetched after retries
            InvalidCredentialsError: If credentials are invalid (401)
        """
        payload = {
            "grantType": "password",
            "userId": self.username,
            "password": self.password,
        }

        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 1):
            try:
                async with aiohttp.ClientSession() as session:
                    async with session.post(
                        self.token_url,
                        json=payload,
                        ssl=None if self.verify_ssl else False,
                        timeout=aiohttp.ClientTimeout(total=30),
                    ) as response:
                        if response.status == 200:
                            data = await response.json()
                            expires_in = int(data.get("expires_in", 7200))

                            token = CachedToken(
                                access_token=data.get("access_token"),
                                expires_at=time.time() + expires_in,
                                token_type=data.get("token_type", "Bearer"),
                                expires_in=expires_in,
                            )
                            logger.info(
                                f"Controller token fetched successfully, expires in {expires_in}s"
                            )
                            return token

                        error_text = await response.text()

                        if response.status == 401:
                            raise InvalidCredentialsError(
                                "Invalid controller credentials",
                                details={"response": error_text[:200]},
                            )

                        if response.status == 400:
                            raise TokenFetchError(
                                f"Invalid controller token request: {error_text[:200]}",
                                status_code=400,
                                attempts=attempt,
                            )

                        last_error = TokenFetchError(
                            f"Controller token endpoint returned HTTP {response.status}",
                            status_code=response.status,
                            attempts=attempt,
                            details={"response": error_text[:200]},
                        )
                        logger.warning(
                            f"Token fetch attempt {attempt}/{max_retries} failed: "
                            f"HTTP {response.status}"
                        )

            except (InvalidCredentialsError, TokenFetchError):
                raise

            except aiohttp.ClientConnectionError as e:
                last_error = ConnectionError(
                    f"Failed to connect to controller token endpoint: {e}",
                    host=self.token_url,
                    cause=e,
                )
                logger.warning(
                    f"Token fetch attempt {attempt}/{max_retries} failed: Connection error - {e}"
                )

            except asyncio.TimeoutError as e:
                last_error = TimeoutError(
                    "Controller token request timed out",
                    timeout_seconds=30,
                    cause=e,
                )
                logger.warning(f"Token fetch attempt {attempt}/{max_retries} failed: Timeout")

            except aiohttp.ClientError as e:
                last_error = NetworkError(
                    f"Network error fetching controller token: {e}",
                    cause=e,
                )
                logger.warning(f"Token fetch attempt {attempt}/{max_retries} failed: {e}")

            if attempt < max_retries:
                wait_time = 2 ** (attempt - 1)
                logger.debug(f"Waiting {wait_time}s before retry")
                await asyncio.sleep(wait_time)

        raise TokenFetchError(
            f"Failed to fetch controller token after {max_retries} attempts",
            attempts=max_retries,
            cause=last_error,
        )

    def invalidate(self):
        """Invalidate the cached token."""
        self._cached_token = None

    @property
    def token_info(self) -> Optional[dict]:
        """Info about the current cached token for debugging (never the token itself)."""
        if not self._cached_token:
            return None
        return {
            "is_expired": self._cached_token.is_expired,
            "time_remaining_seconds": self._cached_token.time_remaining,
            "token_id": self._cached_token.token_id,
        }
