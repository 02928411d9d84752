"""
Custom exceptions for the Meeting Notes service.

Every domain error carries a stable machine-readable ``kind`` and the HTTP
status the API layer renders it with.
"""

from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class MeetingNotesException(Exception):
    """Base exception for Meeting Notes errors."""

    kind = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Public error body. Never includes tracebacks or details."""
        return {"kind": self.kind, "message": self.message}


class NotFoundError(MeetingNotesException):
    """Raised when a session is unknown or not visible to the requester."""
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class AccessDeniedError(MeetingNotesException):
    """Raised when the provider rejects credentials or a password."""
    kind = "access_denied"
    status_code = status.HTTP_403_FORBIDDEN


class StaleStateError(AccessDeniedError):
    """Raised when a transition is requested from a state that no longer allows it."""
    kind = "stale_state"
    status_code = status.HTTP_409_CONFLICT


class InvalidRequestError(MeetingNotesException):
    """Raised on malformed caller input."""
    kind = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST


class TranscriptionError(MeetingNotesException):
    """Raised when transcription operations fail."""
    kind = "transcription_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class GenerationError(MeetingNotesException):
    """Raised when the notes generation call fails."""
    kind = "generation_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class ProviderTimeoutError(MeetingNotesException):
    """Raised when a provider call exceeds its timeout."""
    kind = "provider_timeout"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class ProviderError(MeetingNotesException):
    """Raised when a provider fails for reasons other than rejection or timeout."""
    kind = "provider_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class AuthExpiredError(MeetingNotesException):
    """Raised when no usable OAuth token exists and re-authentication is required."""
    kind = "auth_expired"
    status_code = status.HTTP_401_UNAUTHORIZED


class ConfigurationError(MeetingNotesException):
    """Raised when configuration is invalid."""
    kind = "configuration_error"


# HTTP Exceptions for API responses
class HTTPUnauthorized(HTTPException):
    """401 Unauthorized"""
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class HTTPInternalServerError(HTTPException):
    """500 Internal Server Error"""
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
