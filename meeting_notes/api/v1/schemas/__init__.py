"""
API request and response schemas.
"""

from .auth import AuthMeResponse, AuthUrlResponse, CheckTokenResponse, LogoutResponse, TokenStatus
from .meeting import (
    EndMeetingResponse,
    EnrichMeetingResponse,
    ErrorResponse,
    HealthCheckResponse,
    JoinMeetingRequest,
    ProcessMeetingRequest,
    ProcessMeetingResponse,
    ProviderTranscriptResponse,
    ScheduleMeetingRequest,
    SessionSnapshot,
    UpdateMeetingRequest,
)

__all__ = [
    "AuthMeResponse",
    "AuthUrlResponse",
    "CheckTokenResponse",
    "LogoutResponse",
    "TokenStatus",
    "EndMeetingResponse",
    "EnrichMeetingResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "JoinMeetingRequest",
    "ProcessMeetingRequest",
    "ProcessMeetingResponse",
    "ProviderTranscriptResponse",
    "ScheduleMeetingRequest",
    "SessionSnapshot",
    "UpdateMeetingRequest",
]
