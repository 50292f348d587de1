"""Error taxonomy for the TikTok client.

Every failure surfaced by the client is a :class:`TikTokError`. The ``kind``
attribute discriminates between the categories so callers can branch on a
single type, while the subclasses allow ``except`` clauses to target one
category directly.
"""

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Discriminator for :class:`TikTokError`."""

    CSRF_MISMATCH = "csrf_mismatch"
    INVALID_PERMISSION = "invalid_permission"
    INVALID_FIELD = "invalid_field"
    API_ERROR = "api_error"
    MALFORMED_RESPONSE = "malformed_response"
    CAPABILITY_VIOLATION = "capability_violation"
    UPLOAD_SESSION_ERROR = "upload_session_error"
    TRANSPORT_FAILURE = "transport_failure"
    CONFIG_ERROR = "config_error"


class TikTokError(Exception):
    """Base class for all client errors."""

    kind: ErrorKind = ErrorKind.API_ERROR

    def __init__(self, message: str, *, code: str = "", log_id: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.log_id = log_id

    @property
    def retryable(self) -> bool:
        """Whether repeating the same call may succeed."""
        return self.kind == ErrorKind.TRANSPORT_FAILURE


class CsrfMismatchError(TikTokError):
    """Raised when the callback state does not match the stored state."""

    kind = ErrorKind.CSRF_MISMATCH


class InvalidPermissionError(TikTokError):
    """Raised when an unknown OAuth scope is requested."""

    kind = ErrorKind.INVALID_PERMISSION


class InvalidFieldError(TikTokError):
    """Raised when an unknown user or video field is requested."""

    kind = ErrorKind.INVALID_FIELD


class ApiError(TikTokError):
    """Raised when TikTok reports a business error."""

    kind = ErrorKind.API_ERROR


class MalformedResponseError(TikTokError):
    """Raised when a response lacks a field the protocol requires."""

    kind = ErrorKind.MALFORMED_RESPONSE

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class CapabilityViolationError(TikTokError):
    """Raised when a post asks for settings the creator cannot use."""

    kind = ErrorKind.CAPABILITY_VIOLATION


class UploadSessionError(TikTokError):
    """Raised when a file upload session cannot be opened or fed."""

    kind = ErrorKind.UPLOAD_SESSION_ERROR


class TransportError(TikTokError):
    """Raised when the HTTP layer returned no usable response."""

    kind = ErrorKind.TRANSPORT_FAILURE


class ConfigError(TikTokError):
    """Raised when client configuration is missing or invalid."""

    kind = ErrorKind.CONFIG_ERROR
