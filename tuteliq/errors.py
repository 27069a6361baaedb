"""Error types and response classification for the Tuteliq SDK.

Every failure surfaced by the SDK is a ``TuteliqError`` carrying an
``ErrorKind``. Callers branch on ``error.kind`` (or on the concrete
subclass) without looking at HTTP internals.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .constants import ErrorCode


class ErrorKind(str, Enum):
    """Terminal error categories."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    TIER_ACCESS = "tier_access"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    QUOTA_EXCEEDED = "quota_exceeded"
    SERVER = "server"
    TIMEOUT = "timeout"
    NETWORK = "network"
    GENERIC = "generic"
    STREAM = "stream"


class TuteliqError(Exception):
    """Base exception for all Tuteliq errors."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
        code: Optional[str] = None,
        suggestion: Optional[str] = None,
        links: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details
        self.code = code
        self.suggestion = suggestion
        self.links = links

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, code={self.code!r})"


class ValidationError(TuteliqError):
    """Request input was rejected, client-side or by the API (400).

    ``status_code`` is set only when the API returned the rejection.
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, details: Any = None, **kwargs: Any):
        super().__init__(message, details=details, **kwargs)


class AuthenticationError(TuteliqError):
    """API key missing, invalid, revoked or expired (401)."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, status_code=401, **kwargs)


class TierAccessError(TuteliqError):
    """Endpoint is not available on the current subscription tier (403)."""

    kind = ErrorKind.TIER_ACCESS

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, status_code=403, **kwargs)


class NotFoundError(TuteliqError):
    """Requested resource does not exist (404)."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, status_code=404, **kwargs)


class RateLimitError(TuteliqError):
    """Per-minute rate limit hit (429).

    ``retry_after`` is the server's hint in seconds, when one was sent.
    """

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs: Any):
        super().__init__(message, status_code=429, **kwargs)
        self.retry_after = retry_after


class QuotaExceededError(TuteliqError):
    """Monthly quota exhausted (429 with ``RATE_2003``)."""

    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, status_code=429, **kwargs)


class ServerError(TuteliqError):
    """API returned a 5xx response."""

    kind = ErrorKind.SERVER

    def __init__(self, message: str, status_code: int = 500, **kwargs: Any):
        super().__init__(message, status_code=status_code, **kwargs)


class RequestTimeoutError(TuteliqError):
    """Request did not complete within the configured timeout."""

    kind = ErrorKind.TIMEOUT


class NetworkError(TuteliqError):
    """Transport-level failure: DNS, connection reset, TLS and the like."""

    kind = ErrorKind.NETWORK


class StreamError(TuteliqError):
    """Voice stream failed: connection loss, protocol violation or server error event."""

    kind = ErrorKind.STREAM


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def classify_error(
    status: int,
    body: Any,
    headers: Optional[Mapping[str, str]] = None,
) -> TuteliqError:
    """Map a failed HTTP response to a ``TuteliqError``.

    Args:
        status: HTTP status code
        body: Decoded response body (anything; non-dict bodies are treated as ``{}``)
        headers: Response headers, consulted for ``retry-after`` on 429

    Returns:
        The error instance to raise
    """
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        error = {}

    message = error.get("message") or "Unknown error"
    code = error.get("code")
    details = error.get("details")
    extra = {
        "code": code,
        "suggestion": error.get("suggestion"),
        "links": error.get("links"),
    }

    if status == 400:
        return ValidationError(message, status_code=status, details=details, **extra)
    if status == 401:
        return AuthenticationError(message, **extra)
    if status == 403:
        return TierAccessError(message, details=details, **extra)
    if status == 404:
        return NotFoundError(message, **extra)
    if status == 429:
        if code == ErrorCode.QUOTA_EXCEEDED.value:
            return QuotaExceededError(message, details=details, **extra)
        retry_after = _parse_retry_after((headers or {}).get("retry-after"))
        return RateLimitError(message, retry_after=retry_after, **extra)
    if status >= 500:
        return ServerError(message, status_code=status, **extra)
    return TuteliqError(message, status_code=status, details=details, **extra)
