"""Errors raised by the controller transport.

Everything here derives from ``ControllerError`` so the deployment adapter
can translate any transport failure with one ``except`` clause. The
resilience helpers decide what to retry by class: ``NetworkError``,
``RateLimitError`` and ``ServerError`` are transient, the rest are not.

    ControllerError
    ├── ConfigurationError
    ├── AuthenticationError
    │   ├── TokenFetchError
    │   ├── TokenExpiredError
    │   └── InvalidCredentialsError
    ├── APIError
    │   ├── RateLimitError      (429)
    │   ├── NotFoundError       (404)
    │   ├── ValidationError     (400, 409, 422)
    │   └── ServerError         (5xx)
    ├── NetworkError
    │   ├── ConnectionError
    │   └── TimeoutError
    ├── ConnectionPoolError
    └── CircuitOpenError
"""

from datetime import datetime
from typing import Any, Optional


class ControllerError(Exception):
    """Base transport error.

    Attributes:
        message: Human-readable description
        code: Short machine-readable code, defaults to the class name
        details: Extra context (endpoint, status, missing keys...)
        cause: Underlying exception, also chained as ``__cause__``
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or type(self).__name__
        self.details = details or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.details:
            context = ", ".join(f"{k}={v}" for k, v in self.details.items())
            text += f" ({context})"
        return text


class ConfigurationError(ControllerError):
    """Required settings are missing or malformed."""

    def __init__(self, message: str, missing_keys: Optional[list[str]] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, code="CONFIG_ERROR", details=details, **kwargs)


class AuthenticationError(ControllerError):
    """The controller refused or could not issue a token."""


class TokenFetchError(AuthenticationError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        attempts: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", None) or {}
        if status_code is not None:
            details["status_code"] = status_code
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(message, code="TOKEN_FETCH_FAILED", details=details, **kwargs)


class TokenExpiredError(AuthenticationError):
    """A request came back 401; the cached token should be dropped."""

    def __init__(self, message: str = "Access token expired", **kwargs):
        super().__init__(message, code="TOKEN_EXPIRED", **kwargs)


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Invalid credentials", **kwargs):
        super().__init__(message, code="INVALID_CREDENTIALS", **kwargs)


class APIError(ControllerError):
    """The controller answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        response_body: Optional[str] = None,
        method: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", None) or {}
        for key, value in (("status_code", status_code), ("method", method), ("endpoint", endpoint)):
            if value is not None:
                details[key] = value
        kwargs.setdefault("code", f"API_ERROR_{status_code}" if status_code else "API_ERROR")
        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code
        self.endpoint = endpoint
        self.method = method
        self.response_body = response_body


class RateLimitError(APIError):
    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("status_code", 429)
        super().__init__(message, code="RATE_LIMITED", **kwargs)
        self.retry_after = retry_after or 60


class NotFoundError(APIError):
    def __init__(self, resource_type: str, resource_id: str, **kwargs):
        kwargs.setdefault("status_code", 404)
        super().__init__(f"{resource_type} not found: {resource_id}", code="NOT_FOUND", **kwargs)


class ValidationError(APIError):
    """The controller rejected the request body (400, 409, 422)."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("status_code", 400)
        super().__init__(message, code="VALIDATION_ERROR", **kwargs)


class ServerError(APIError):
    def __init__(self, message: str = "Server error", **kwargs):
        kwargs.setdefault("status_code", 500)
        super().__init__(message, code="SERVER_ERROR", **kwargs)


class NetworkError(ControllerError):
    """The request never got a response."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("code", "NETWORK_ERROR")
        super().__init__(message, **kwargs)


class ConnectionError(NetworkError):
    def __init__(self, message: str, host: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if host:
            details["host"] = host
        super().__init__(message, code="CONNECTION_FAILED", details=details, **kwargs)


class TimeoutError(NetworkError):
    def __init__(self, message: str, timeout_seconds: Optional[float] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, code="TIMEOUT", details=details, **kwargs)


class ConnectionPoolError(ControllerError):
    """The asyncpg pool could not be created."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="POOL_ERROR", **kwargs)


class CircuitOpenError(ControllerError):
    """Calls are short-circuited until the breaker's timeout passes."""

    def __init__(
        self,
        message: str,
        reset_at: Optional[datetime] = None,
        failure_count: Optional[int] = None,
    ):
        details: dict[str, Any] = {}
        if reset_at:
            details["reset_at"] = reset_at.isoformat()
        if failure_count is not None:
            details["failure_count"] = failure_count
        super().__init__(message, code="CIRCUIT_OPEN", details=details)
