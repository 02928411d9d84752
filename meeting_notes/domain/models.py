"""
Data models for meeting sessions, notes and OAuth credentials.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

from meeting_notes.core.exceptions import InvalidRequestError, StaleStateError
from meeting_notes.utils import parse_datetime


ARROW = "→"
UNTITLED_TOPIC = "Untitled Meeting"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class SessionState(str, Enum):
    """Lifecycle states of a meeting session."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.CANCELED})

# No state ever transitions back to SCHEDULED.
ALLOWED_TRANSITIONS = {
    SessionState.SCHEDULED: frozenset({SessionState.IN_PROGRESS}),
    SessionState.IN_PROGRESS: frozenset({SessionState.COMPLETED, SessionState.CANCELED}),
    SessionState.COMPLETED: frozenset(),
    SessionState.CANCELED: frozenset(),
}


class ActionItemStatus(str, Enum):
    """Progress of a single action item."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ParseKind(str, Enum):
    """How the generation output was turned into notes."""
    STRUCTURED = "structured"
    FALLBACK = "fallback"


@dataclass
class Participant:
    """One join of an identity into a session."""
    identity: str
    join_time: datetime
    leave_time: Optional[datetime] = None

    @property
    def is_present(self) -> bool:
        return self.leave_time is None

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "join_time": _iso(self.join_time),
            "leave_time": _iso(self.leave_time),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Participant":
        return cls(
            identity=data["identity"],
            join_time=parse_datetime(data["join_time"]),
            leave_time=parse_datetime(data["leave_time"]) if data.get("leave_time") else None,
        )


@dataclass
class TranscriptEntry:
    """A single spoken line."""
    speaker: str
    text: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {"speaker": self.speaker, "text": self.text, "timestamp": _iso(self.timestamp)}

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptEntry":
        return cls(
            speaker=data["speaker"],
            text=data["text"],
            timestamp=parse_datetime(data["timestamp"]),
        )


_SPEAKER_LINE = re.compile(r"^\s*([^:]{1,64}):\s*(.+)$")


def parse_transcript_text(text: str, timestamp: Optional[datetime] = None) -> List[TranscriptEntry]:
    """
    Split plain transcript text into entries.

    Lines shaped like ``Speaker: words`` keep their speaker; anything else is
    attributed to ``unknown``.

    Args:
        text: Transcript text, one utterance per line.
        timestamp: Timestamp stamped on every entry (defaults to now).

    Returns:
        Ordered transcript entries, blank lines skipped.
    """
    stamp = timestamp or utcnow()
    entries: List[TranscriptEntry] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        match = _SPEAKER_LINE.match(line)
        if match:
            entries.append(TranscriptEntry(match.group(1).strip(), match.group(2).strip(), stamp))
        else:
            entries.append(TranscriptEntry("unknown", line, stamp))
    return entries


@dataclass
class ActionItem:
    """A follow-up task extracted from a meeting."""
    description: str
    assignee: Optional[str] = None
    due_date: Optional[datetime] = None
    status: ActionItemStatus = ActionItemStatus.PENDING

    @classmethod
    def from_line(cls, line: str) -> "ActionItem":
        """Build from an ``"<assignee> → <task>"`` string."""
        if ARROW in line:
            assignee, _, task = line.partition(ARROW)
            assignee = assignee.strip().lstrip("-*• ").strip()
            return cls(description=task.strip(), assignee=assignee or None)
        return cls(description=line.strip())

    def to_line(self) -> str:
        if self.assignee:
            return f"{self.assignee} {ARROW} {self.description}"
        return self.description

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "assignee": self.assignee,
            "due_date": _iso(self.due_date),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActionItem":
        return cls(
            description=data["description"],
            assignee=data.get("assignee"),
            due_date=parse_datetime(data["due_date"]) if data.get("due_date") else None,
            status=ActionItemStatus(data.get("status", ActionItemStatus.PENDING.value)),
        )


@dataclass
class NotesResult:
    """Summary bullets and action items attached to a completed session."""
    summary: List[str]
    action_items: List[ActionItem]
    parse_kind: ParseKind = ParseKind.STRUCTURED
    generated_at: datetime = field(default_factory=utcnow)

    def action_item_lines(self) -> List[str]:
        return [item.to_line() for item in self.action_items]

    def to_dict(self) -> dict:
        return {
            "summary": list(self.summary),
            "action_items": [item.to_dict() for item in self.action_items],
            "parse_kind": self.parse_kind.value,
            "generated_at": _iso(self.generated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NotesResult":
        return cls(
            summary=list(data.get("summary", [])),
            action_items=[ActionItem.from_dict(item) for item in data.get("action_items", [])],
            parse_kind=ParseKind(data.get("parse_kind", ParseKind.STRUCTURED.value)),
            generated_at=parse_datetime(data["generated_at"]) if data.get("generated_at") else utcnow(),
        )


@dataclass
class Session:
    """
    One meeting being tracked, keyed by the provider's meeting id.

    ``notes_result`` is present exactly when ``state`` is COMPLETED.
    """
    session_id: str
    owner_id: str
    topic: str = UNTITLED_TOPIC
    scheduled_start: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    state: SessionState = SessionState.SCHEDULED
    participants: List[Participant] = field(default_factory=list)
    transcript: List[TranscriptEntry] = field(default_factory=list)
    notes_result: Optional[NotesResult] = None
    join_url: Optional[str] = None
    recording_url: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def is_visible_to(self, requester: str) -> bool:
        """Owners and anyone who ever joined can see the session."""
        if self.owner_id == requester:
            return True
        return any(p.identity == requester for p in self.participants)

    def has_present_participant(self, identity: str) -> bool:
        return any(p.identity == identity and p.is_present for p in self.participants)

    def add_participant(self, identity: str, when: Optional[datetime] = None) -> Participant:
        participant = Participant(identity=identity, join_time=when or utcnow())
        self.participants.append(participant)
        return participant

    def mark_participants_left(self, when: Optional[datetime] = None) -> None:
        stamp = when or utcnow()
        for participant in self.participants:
            if participant.leave_time is None:
                participant.leave_time = stamp

    def transition_to(self, new_state: SessionState) -> None:
        """
        Move to ``new_state`` if the lifecycle allows it.

        Raises:
            StaleStateError: If the transition is not allowed from the current state.
        """
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise StaleStateError(
                f"Session {self.session_id} is {self.state.value}; cannot move to {new_state.value}",
                details={"state": self.state.value, "requested": new_state.value},
            )
        self.state = new_state
        self.updated_at = utcnow()

    def validate(self) -> None:
        """Check model invariants; raises ValueError on violation."""
        if (self.notes_result is not None) != (self.state == SessionState.COMPLETED):
            raise ValueError(
                f"Session {self.session_id}: notes_result must be set iff state is completed "
                f"(state={self.state.value}, has_notes={self.notes_result is not None})"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "owner_id": self.owner_id,
            "topic": self.topic,
            "scheduled_start": _iso(self.scheduled_start),
            "duration_minutes": self.duration_minutes,
            "state": self.state.value,
            "participants": [p.to_dict() for p in self.participants],
            "transcript": [t.to_dict() for t in self.transcript],
            "notes_result": self.notes_result.to_dict() if self.notes_result else None,
            "join_url": self.join_url,
            "recording_url": self.recording_url,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            session_id=data["session_id"],
            owner_id=data["owner_id"],
            topic=data.get("topic") or UNTITLED_TOPIC,
            scheduled_start=parse_datetime(data["scheduled_start"]) if data.get("scheduled_start") else None,
            duration_minutes=data.get("duration_minutes"),
            state=SessionState(data["state"]),
            participants=[Participant.from_dict(p) for p in data.get("participants", [])],
            transcript=[TranscriptEntry.from_dict(t) for t in data.get("transcript", [])],
            notes_result=NotesResult.from_dict(data["notes_result"]) if data.get("notes_result") else None,
            join_url=data.get("join_url"),
            recording_url=data.get("recording_url"),
            created_at=parse_datetime(data["created_at"]) if data.get("created_at") else utcnow(),
            updated_at=parse_datetime(data["updated_at"]) if data.get("updated_at") else utcnow(),
        )


@dataclass
class TokenRecord:
    """OAuth credentials for one authenticated identity."""
    identity: str
    access_token: str
    refresh_token: Optional[str]
    expires_at: datetime

    def is_stale(self, now: datetime, skew_seconds: int = 300) -> bool:
        """True once ``now`` is within ``skew_seconds`` of expiry."""
        return now.timestamp() >= self.expires_at.timestamp() - skew_seconds

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": _iso(self.expires_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TokenRecord":
        return cls(
            identity=data["identity"],
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=parse_datetime(data["expires_at"]),
        )


@dataclass(frozen=True)
class TokenGrant:
    """Token endpoint response."""
    access_token: str
    expires_in_seconds: int
    refresh_token: Optional[str] = None


@dataclass(frozen=True)
class PipelineRequest:
    """Input to notes generation. Exactly one payload field is set."""
    session_id: str
    transcript_text: Optional[str] = None
    audio_payload: Optional[bytes] = None

    def __post_init__(self) -> None:
        has_text = bool(self.transcript_text and self.transcript_text.strip())
        has_audio = bool(self.audio_payload)
        if has_text == has_audio:
            raise InvalidRequestError(
                "Exactly one of transcript text or audio payload is required"
            )

    @property
    def is_audio(self) -> bool:
        return bool(self.audio_payload)


@dataclass(frozen=True)
class MeetingInfo:
    """Meeting metadata as resolved by the provider."""
    meeting_id: str
    topic: str
    start_time: Optional[datetime]
    join_url: str
    duration_minutes: Optional[int] = None
    password_required: bool = False


@dataclass
class NotesOutcome:
    """
    Result of one pipeline run.

    ``kind`` tells a clean structured parse apart from a fallback text scan;
    both carry the same shape.
    """
    kind: ParseKind
    summary: List[str]
    action_items: List[str]
    transcript_text: str
    from_audio: bool = False
    title: Optional[str] = None

    def to_notes_result(self) -> NotesResult:
        return NotesResult(
            summary=list(self.summary),
            action_items=[ActionItem.from_line(line) for line in self.action_items],
            parse_kind=self.kind,
        )
