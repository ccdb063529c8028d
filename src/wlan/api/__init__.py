"""Controller transport modules.

This package provides the HTTP client, token management, resilience
helpers and database pool utilities shared by the deployment service.

Classes:
    ControllerClient: HTTP client with retry, token refresh and circuit breaker
    ControllerTokenManager: OAuth2 password-grant token management with caching

Exceptions:
    ControllerError: Base exception for all transport errors
    ConfigurationError: Missing or invalid configuration
    APIError: API request failures
    NetworkError: Network connectivity issues
    ConnectionPoolError: Database pool creation failures

Resilience:
    CircuitBreaker: Prevent cascading failures
    run_concurrent_tasks: Named fan-out with per-task failure capture
    process_in_batches: Sequential batches with concurrency inside a batch
"""
from .auth import CachedToken, ControllerTokenManager
from .client import API_PREFIX, ControllerClient
from .database import check_database_health, close_pool, create_pool
from .error_sanitizer import ErrorSanitizer, sanitize_error_message
from .exceptions import (
    APIError,
    AuthenticationError,
    CircuitOpenError,
    ConfigurationError,
    ConnectionError,
    ConnectionPoolError,
    ControllerError,
    InvalidCredentialsError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TokenExpiredError,
    TokenFetchError,
    ValidationError,
)
from .resilience import (
    CircuitBreaker,
    CircuitState,
    chunk,
    process_in_batches,
    retry_async,
    run_concurrent_tasks,
)

__all__ = [
    # Clients
    "ControllerClient",
    "ControllerTokenManager",
    "CachedToken",
    "API_PREFIX",
    # Database
    "create_pool",
    "close_pool",
    "check_database_health",
    # Exceptions
    "ControllerError",
    "ConfigurationError",
    "AuthenticationError",
    "TokenFetchError",
    "TokenExpiredError",
    "InvalidCredentialsError",
    "APIError",
    "RateLimitError",
    "NotFoundError",
    "ValidationError",
    "ServerError",
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    "ConnectionPoolError",
    "CircuitOpenError",
    # Resilience
    "CircuitBreaker",
    "CircuitState",
    "retry_async",
    "chunk",
    "run_concurrent_tasks",
    "process_in_batches",
    # Error sanitization
    "ErrorSanitizer",
    "sanitize_error_message",
]
