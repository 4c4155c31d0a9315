"""Judge error taxonomy and translation of transport failures."""
from __future__ import annotations

import asyncio
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class JudgeError(Exception):
    """Base class for judge failures with user-friendly messaging.

    Every JudgeError is recovered inside the judge client and counted on
    the circuit breaker; none reaches engine callers.
    """

    def __init__(self, error_type: str, message: str, details: str = "", is_retryable: bool = False):
        self.error_type = error_type
        self.message = message
        self.details = details
        self.is_retryable = is_retryable
        super().__init__(self.message)

    def get_user_message(self) -> str:
        """Return a user-friendly error message."""
        msg = self.message
        if self.details:
            msg += f" ({self.details})"
        if self.is_retryable:
            msg += " - temporary, a later request may succeed"
        return msg


class JudgeTimeoutError(JudgeError):
    """Judge call exceeded the abort timeout."""

    def __init__(self, timeout_ms: int):
        super().__init__(
            error_type="JUDGE_TIMEOUT",
            message="Judge call timed out",
            details=f"Aborted after {timeout_ms} ms",
            is_retryable=True,
        )


class OverloadedError(JudgeError):
    """Judge provider is overloaded (HTTP 503/529)."""

    def __init__(self, request_id: str = ""):
        super().__init__(
            error_type="API_OVERLOADED",
            message="Judge provider is currently overloaded",
            details=f"Request ID: {request_id}" if request_id else "The service is at capacity",
            is_retryable=True,
        )


class RateLimitError(JudgeError):
    """Judge provider rate limit exceeded (HTTP 429)."""

    def __init__(self, retry_after: Optional[int] = None):
        details = f"Retry after {retry_after} seconds" if retry_after else "Rate limit exceeded"
        super().__init__(
            error_type="RATE_LIMIT",
            message="Judge provider rate limit exceeded",
            details=details,
            is_retryable=True,
        )


class AuthenticationError(JudgeError):
    """Authentication failed (HTTP 401/403)."""

    def __init__(self, env_var: str = "GROQ_API_KEY"):
        super().__init__(
            error_type="AUTH_FAILED",
            message=f"Authentication failed - check your {env_var}",
            details=f"Ensure {env_var} environment variable is set correctly",
            is_retryable=False,
        )


class JudgeParseError(JudgeError):
    """Judge response was not JSON or carried no numeric score."""

    def __init__(self, reason: str = ""):
        super().__init__(
            error_type="INVALID_RESPONSE",
            message=f"Judge returned invalid response{f' ({reason})' if reason else ''}",
            details="The verdict could not be parsed into a numeric score.",
            is_retryable=True,
        )


def error_for_status(status_code: int, body: str = "", retry_after: Optional[str] = None) -> JudgeError:
    """Map a non-2xx HTTP status from the judge provider to a JudgeError."""
    if status_code in (503, 529):
        return OverloadedError()
    if status_code == 429:
        seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
        return RateLimitError(seconds)
    if status_code in (401, 403):
        return AuthenticationError()
    return JudgeError(
        error_type=f"HTTP_{status_code}",
        message="Judge request failed",
        details=body[:200],
        is_retryable=status_code >= 500,
    )


def handle_transport_error(error: Exception, timeout_ms: int = 0) -> JudgeError:
    """Convert an arbitrary transport exception to a JudgeError."""
    if isinstance(error, JudgeError):
        return error

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return JudgeTimeoutError(timeout_ms)

    error_str = str(error)
    error_type = type(error).__name__
    lowered = error_str.lower()

    if "529" in error_str or "overloaded" in lowered:
        return OverloadedError()

    if "429" in error_str or "rate_limit" in lowered:
        return RateLimitError()

    if "401" in error_str or "403" in error_str or "authentication" in lowered:
        return AuthenticationError()

    if "timeout" in lowered or "timed out" in lowered:
        return JudgeTimeoutError(timeout_ms)

    # Generic transport error
    return JudgeError(
        error_type=error_type,
        message="Judge request failed",
        details=error_str[:200],  # Truncate long error messages
        is_retryable="connection" in lowered,
    )
