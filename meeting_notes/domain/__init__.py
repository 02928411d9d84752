"""
Domain layer exports.
"""

from .models import (
    ARROW,
    UNTITLED_TOPIC,
    ActionItem,
    ActionItemStatus,
    MeetingInfo,
    NotesOutcome,
    NotesResult,
    ParseKind,
    Participant,
    PipelineRequest,
    Session,
    SessionState,
    TERMINAL_STATES,
    TokenGrant,
    TokenRecord,
    TranscriptEntry,
    parse_transcript_text,
    utcnow,
)

__all__ = [
    "ARROW",
    "UNTITLED_TOPIC",
    "ActionItem",
    "ActionItemStatus",
    "MeetingInfo",
    "NotesOutcome",
    "NotesResult",
    "ParseKind",
    "Participant",
    "PipelineRequest",
    "Session",
    "SessionState",
    "TERMINAL_STATES",
    "TokenGrant",
    "TokenRecord",
    "TranscriptEntry",
    "parse_transcript_text",
    "utcnow",
]
