"""
API request/response schemas for meeting operations.
"""

from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime

from meeting_notes.domain.models import Session


class CamelModel(BaseModel):
    """Serialized with camelCase keys; accepts either spelling on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JoinMeetingRequest(CamelModel):
    """Request to join a meeting."""
    meeting_id: str = Field(..., description="Zoom meeting id", min_length=1)
    password: Optional[str] = Field(default=None, description="Meeting passcode")


class ScheduleMeetingRequest(CamelModel):
    """Request to pre-create a meeting before anyone joins."""
    meeting_id: str = Field(..., min_length=1)
    topic: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)


class ProcessMeetingRequest(CamelModel):
    """Transcript text or base64 audio to generate notes from."""
    meeting_id: str = Field(..., min_length=1)
    transcript: Optional[str] = None
    audio_file: Optional[str] = Field(default=None, description="Base64-encoded audio")


class UpdateMeetingRequest(CamelModel):
    topic: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)


class ParticipantSchema(CamelModel):
    identity: str
    join_time: datetime
    leave_time: Optional[datetime] = None


class TranscriptEntrySchema(CamelModel):
    speaker: str
    text: str
    timestamp: datetime


class ActionItemSchema(CamelModel):
    description: str
    assignee: Optional[str] = None
    due_date: Optional[datetime] = None
    status: str


class NotesResultSchema(CamelModel):
    summary: List[str]
    action_items: List[ActionItemSchema]
    parse_kind: str
    generated_at: datetime


class SessionSnapshot(CamelModel):
    """A meeting session as returned to clients."""
    session_id: str
    owner_id: str
    topic: str
    scheduled_start: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    state: str
    participants: List[ParticipantSchema] = []
    transcript: List[TranscriptEntrySchema] = []
    notes_result: Optional[NotesResultSchema] = None
    join_url: Optional[str] = None
    recording_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionSnapshot":
        return cls.model_validate(session.to_dict())


class ProcessMeetingResponse(CamelModel):
    """Generated notes for a meeting."""
    success: bool = True
    meeting_id: str
    summary: List[str]
    action_items: List[str]
    parse: str
    topic: Optional[str] = None


class EndMeetingResponse(CamelModel):
    success: bool = True
    meeting_id: str
    state: str


class EnrichMeetingResponse(CamelModel):
    enriched: bool
    recording_url: Optional[str] = None
    reason: Optional[str] = None


class ProviderTranscriptResponse(CamelModel):
    meeting_id: str
    transcript: str


class HealthCheckResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    timestamp: datetime
    version: str


class ErrorBody(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: ErrorBody
