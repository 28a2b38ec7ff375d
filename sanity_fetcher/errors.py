"""
Error types raised by the fetch path.

Fetch errors propagate unchanged through the cache layers; remote cache
failures never surface as one of these.
"""
from typing import Any, Dict, Optional


class SanityFetchError(Exception):
    """Base exception for Sanity fetch failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class TransportError(SanityFetchError):
    """Network-level failure (DNS, connection refused, timeout, unreadable body)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        details = {"cause": repr(cause)} if cause is not None else {}
        super().__init__("TRANSPORT_ERROR", message, details)
        self.cause = cause


class RemoteRequestError(SanityFetchError):
    """The API answered with a non-success status."""

    def __init__(self, status: int, status_text: str = ""):
        super().__init__(
            "REMOTE_REQUEST_ERROR",
            f"Sanity fetch failed: {status} {status_text}".rstrip(),
            {"status": status, "status_text": status_text},
        )
        self.status = status
        self.status_text = status_text

    @property
    def is_retryable(self) -> bool:
        """Rate limited or server-side failures are worth another attempt."""
        return self.status == 429 or self.status >= 500


class ConfigurationError(SanityFetchError):
    """A required identifier (project id, dataset) is missing."""

    def __init__(self, message: str):
        super().__init__("CONFIGURATION_ERROR", message)
