"""Scrub secrets out of error messages before they leave the service.

Controller errors can echo back parts of the request that produced them,
and a service payload carries pre-shared keys and WEP keys. Anything
returned to an HTTP client or written to a deployment summary that came
from an exception string goes through ``sanitize_error_message`` first.

Usage:
    from src.wlan.api.error_sanitizer import sanitize_error_message

    try:
        await client.post("/v1/services", payload)
    except APIError as e:
        raise HTTPException(502, detail=sanitize_error_message(str(e), "Controller error"))

The original message should still be logged server-side.
"""

import re
from dataclasses import dataclass
from typing import Optional


@dataclass
class SanitizationResult:
    """Outcome of sanitizing one message.

    Attributes:
        sanitized_message: Message safe to return to a client
        redaction_count: Number of substitutions made
    """

    sanitized_message: str
    redaction_count: int

    @property
    def was_sanitized(self) -> bool:
        return self.redaction_count > 0


class ErrorSanitizer:
    """Regex-based redaction of credentials and connection details."""

    # Order matters: connection strings before the generic password rules
    DEFAULT_PATTERNS: list[tuple[str, str]] = [
        (r"postgres(ql)?://[^\s]+", "[DATABASE_URL]"),
        (r"bearer\s+[A-Za-z0-9_\-\.]+", "Bearer [REDACTED]"),
        (r"authorization[:\s]+[^\s]+", "Authorization: [REDACTED]"),
        (r"api[-_]?key[=:\s]+[^\s,;]+", "api_key=[REDACTED]"),
        (r"access[-_]?token[\"']?[=:\s]+[^\s,;]+", "access_token=[REDACTED]"),
        # Service payload secrets, both as JSON keys and as key=value
        (r"[\"']?presharedKey[\"']?\s*[=:]\s*(\"[^\"]*\"|'[^']*'|[^\s,;}]+)", "presharedKey=[REDACTED]"),
        (r"[\"']?passphrase[\"']?\s*[=:]\s*(\"[^\"]*\"|'[^']*'|[^\s,;}]+)", "passphrase=[REDACTED]"),
        (r"[\"']?password[\"']?\s*[=:]\s*(\"[^\"]*\"|'[^']*'|[^\s,;}]+)", "password=[REDACTED]"),
        (r"[\"']?key[\"']?\s*:\s*[\"'][^\"']+[\"']", "key=[REDACTED]"),
        (r"\b(CONTROLLER_USERNAME|CONTROLLER_PASSWORD|DATABASE_URL|API_KEY)\b", "[ENV_VAR]"),
        (r"Traceback \(most recent call last\):[\s\S]*?(?=\n\n|\n[A-Z]|\Z)", "[STACK_TRACE]"),
        (r"\beyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\b", "[JWT_REDACTED]"),
        (r"\b[0-9a-fA-F]{32,}\b", "[HEX_STRING]"),
    ]

    def __init__(
        self,
        patterns: Optional[list[tuple[str, str]]] = None,
        max_message_length: int = 500,
    ):
        self.patterns = list(patterns or self.DEFAULT_PATTERNS)
        self.max_message_length = max_message_length
        self._compiled_patterns = [
            (re.compile(pattern, re.IGNORECASE), replacement)
            for pattern, replacement in self.patterns
        ]

    def sanitize(self, message: str, error_type: Optional[str] = None) -> SanitizationResult:
        """Redact sensitive substrings and truncate.

        Args:
            message: Raw error message
            error_type: Optional prefix such as "Controller error"

        Returns:
            SanitizationResult with the safe message
        """
        if not message:
            return SanitizationResult(sanitized_message="An error occurred", redaction_count=0)

        sanitized = message
        redaction_count = 0
        for pattern, replacement in self._compiled_patterns:
            sanitized, count = pattern.subn(replacement, sanitized)
            redaction_count += count

        if len(sanitized) > self.max_message_length:
            sanitized = sanitized[: self.max_message_length] + "... [TRUNCATED]"

        if not sanitized.strip():
            sanitized = "An error occurred"

        if error_type and not sanitized.startswith(error_type):
            sanitized = f"{error_type}: {sanitized}"

        return SanitizationResult(sanitized_message=sanitized, redaction_count=redaction_count)

    def is_safe(self, message: str) -> bool:
        """True if no pattern matches."""
        return not any(pattern.search(message) for pattern, _ in self._compiled_patterns)


_default_sanitizer: Optional[ErrorSanitizer] = None


def get_sanitizer() -> ErrorSanitizer:
    """Get the shared sanitizer instance."""
    global _default_sanitizer
    if _default_sanitizer is None:
        _default_sanitizer = ErrorSanitizer()
    return _default_sanitizer


def sanitize_error_message(message: str, error_type: Optional[str] = None) -> str:
    """Sanitize a message with the shared sanitizer.

    Example:
        >>> sanitize_error_message('rejected: {"presharedKey": "hunter2hunter2"}')
        'rejected: {presharedKey=[REDACTED]}'
    """
    return get_sanitizer().sanitize(message, error_type).sanitized_message
