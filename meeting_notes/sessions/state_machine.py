"""
Session lifecycle: join, process, end and the descriptive operations around them.

Every mutation runs under the session's lock, works on a private copy from the
repository and is saved in one step at the end, so a failure part way through
leaves the stored session untouched. Events are published after the save.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from meeting_notes.core.exceptions import (
    InvalidRequestError,
    MeetingNotesException,
    NotFoundError,
    StaleStateError,
)
from meeting_notes.core.locks import KeyedLock
from meeting_notes.core.logging import get_logger
from meeting_notes.domain.models import (
    ALLOWED_TRANSITIONS,
    UNTITLED_TOPIC,
    NotesOutcome,
    PipelineRequest,
    Session,
    SessionState,
    parse_transcript_text,
    utcnow,
)
from meeting_notes.events.broadcaster import EventBroadcaster, EventKind
from meeting_notes.notes.pipeline import NotesGenerationPipeline
from meeting_notes.providers.meeting_client import ExternalMeetingClient
from meeting_notes.storage.session_store import SessionRepository

logger = get_logger("sessions")

# Zoom returns these on GET /meetings/{id}; they must not reach callers.
PASSCODE_FIELDS = frozenset({"password", "h323_password", "pstn_password", "encrypted_password"})


class SessionStateMachine:
    """
    Applies lifecycle transitions to sessions.

    scheduled -> in_progress -> completed | canceled. Transitions for one
    session are serialized; different sessions never wait on each other.
    """

    def __init__(
        self,
        repository: SessionRepository,
        meeting_client: ExternalMeetingClient,
        pipeline: NotesGenerationPipeline,
        broadcaster: EventBroadcaster,
        locks: Optional[KeyedLock] = None,
        generate_titles: bool = True,
    ):
        self._repository = repository
        self._meeting_client = meeting_client
        self._pipeline = pipeline
        self._broadcaster = broadcaster
        self._locks = locks or KeyedLock()
        self._generate_titles = generate_titles

    def _load_visible(self, session_id: str, requester: str) -> Session:
        session = self._repository.get(session_id)
        if session is None or not session.is_visible_to(requester):
            raise NotFoundError(f"Meeting {session_id} not found")
        return session

    async def join(self, session_id: str, requester: str, password: Optional[str] = None) -> Session:
        """
        Join a meeting, creating its session on first join.

        Args:
            session_id: Provider meeting id
            requester: Identity of the caller
            password: Meeting passcode, if any

        Returns:
            Snapshot of the session in ``in_progress``

        Raises:
            NotFoundError: The provider does not know the meeting
            AccessDeniedError: The provider rejected the credentials or passcode
            StaleStateError: The session already ended
        """
        info = await self._meeting_client.resolve_meeting(session_id, password=password, identity=requester)

        async with self._locks.hold(session_id):
            session = self._repository.get(session_id)
            if session is None:
                session = Session(
                    session_id=session_id,
                    owner_id=requester,
                    topic=info.topic,
                    scheduled_start=info.start_time,
                    duration_minutes=info.duration_minutes,
                    join_url=info.join_url,
                )
                session.transition_to(SessionState.IN_PROGRESS)
                session.add_participant(requester)
                logger.info(f"Created session {session_id} for {requester}")
            elif session.is_terminal:
                raise StaleStateError(
                    f"Meeting {session_id} has already {session.state.value}",
                    details={"state": session.state.value},
                )
            else:
                if session.state == SessionState.SCHEDULED:
                    session.transition_to(SessionState.IN_PROGRESS)
                    logger.info(f"Scheduled session {session_id} started by {requester}")
                session.join_url = info.join_url or session.join_url
                if not session.has_present_participant(requester):
                    session.add_participant(requester)
                session.updated_at = utcnow()
            saved = self._repository.save(session)

        self._broadcaster.publish(session_id, EventKind.SESSION_UPDATED, saved.to_dict())
        return saved

    async def schedule(
        self,
        session_id: str,
        owner: str,
        topic: Optional[str] = None,
        scheduled_start: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
    ) -> Session:
        """Pre-create a session in ``scheduled``."""
        async with self._locks.hold(session_id):
            if self._repository.exists(session_id):
                raise InvalidRequestError(f"Meeting {session_id} already exists")
            session = Session(
                session_id=session_id,
                owner_id=owner,
                topic=topic or UNTITLED_TOPIC,
                scheduled_start=scheduled_start,
                duration_minutes=duration_minutes,
            )
            saved = self._repository.save(session)

        logger.info(f"Scheduled session {session_id} for {owner}")
        self._broadcaster.publish(session_id, EventKind.SESSION_UPDATED, saved.to_dict())
        return saved

    async def process(
        self,
        session_id: str,
        requester: str,
        transcript_text: Optional[str] = None,
        audio_payload: Optional[bytes] = None,
    ) -> NotesOutcome:
        """
        Generate notes and complete the session.

        The lock is held for the whole pipeline run, so a concurrent process or
        end for the same session waits and then sees the new state.

        Raises:
            NotFoundError: No session visible to ``requester``
            InvalidRequestError: Neither or both of transcript and audio supplied
            StaleStateError: The session is not in progress
            TranscriptionError, GenerationError, ProviderTimeoutError: Pipeline failures;
                the session stays in progress
        """
        async with self._locks.hold(session_id):
            session = self._load_visible(session_id, requester)
            request = PipelineRequest(
                session_id=session_id,
                transcript_text=transcript_text,
                audio_payload=audio_payload,
            )
            if SessionState.COMPLETED not in ALLOWED_TRANSITIONS[session.state]:
                raise StaleStateError(
                    f"Meeting {session_id} is {session.state.value} and cannot be processed",
                    details={"state": session.state.value},
                )

            want_title = self._generate_titles and (
                not session.topic.strip() or session.topic == UNTITLED_TOPIC
            )
            outcome = await self._pipeline.run(request, want_title=want_title)

            if outcome.from_audio:
                session.transcript.extend(parse_transcript_text(outcome.transcript_text))
            session.notes_result = outcome.to_notes_result()
            if outcome.title:
                session.topic = outcome.title
            session.transition_to(SessionState.COMPLETED)
            saved = self._repository.save(session)

        logger.info(
            f"Processed session {session_id}: {len(outcome.summary)} summary points, "
            f"{len(outcome.action_items)} action items ({outcome.kind.value})"
        )
        self._broadcaster.publish(
            session_id,
            EventKind.SESSION_PROCESSED,
            {
                "summary": outcome.summary,
                "actionItems": outcome.action_items,
                "parse": outcome.kind.value,
                "session": saved.to_dict(),
            },
        )
        return outcome

    async def end(self, session_id: str, requester: str) -> Session:
        """
        End a meeting without notes.

        Ending a session that is already completed or canceled succeeds and
        changes nothing.

        Raises:
            NotFoundError: No session visible to ``requester``
            StaleStateError: The session has not started yet
        """
        async with self._locks.hold(session_id):
            session = self._load_visible(session_id, requester)
            if session.is_terminal:
                logger.info(f"End requested for {session.state.value} session {session_id}; nothing to do")
                return session
            session.transition_to(SessionState.CANCELED)
            session.mark_participants_left()
            saved = self._repository.save(session)

        logger.info(f"Session {session_id} ended by {requester}")
        self._broadcaster.publish(session_id, EventKind.SESSION_ENDED, saved.to_dict())
        return saved

    async def update_details(
        self,
        session_id: str,
        requester: str,
        topic: Optional[str] = None,
        scheduled_start: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
    ) -> Session:
        """Change descriptive fields of a session that has not finished."""
        if duration_minutes is not None and duration_minutes < 0:
            raise InvalidRequestError("durationMinutes must not be negative")

        async with self._locks.hold(session_id):
            session = self._load_visible(session_id, requester)
            if session.is_terminal:
                raise StaleStateError(
                    f"Meeting {session_id} is {session.state.value}; details can no longer change",
                    details={"state": session.state.value},
                )
            if topic is not None:
                session.topic = topic.strip() or UNTITLED_TOPIC
            if scheduled_start is not None:
                session.scheduled_start = scheduled_start
            if duration_minutes is not None:
                session.duration_minutes = duration_minutes
            session.updated_at = utcnow()
            saved = self._repository.save(session)

        self._broadcaster.publish(session_id, EventKind.SESSION_UPDATED, saved.to_dict())
        return saved

    async def enrich(self, session_id: str, requester: str) -> Dict[str, Any]:
        """
        Attach the provider's recording link. Provider failures are reported,
        not raised, and never change the session state.
        """
        self._load_visible(session_id, requester)
        try:
            recording = await self._meeting_client.fetch_recording(session_id, identity=requester)
        except MeetingNotesException as e:
            logger.warning(f"Could not fetch recording for meeting {session_id}: {e.message}")
            return {"enriched": False, "recordingUrl": None, "reason": e.message}

        recording_url = recording.get("share_url") or next(
            (f.get("play_url") for f in recording.get("recording_files", []) if f.get("play_url")),
            None,
        )
        if not recording_url:
            return {"enriched": False, "recordingUrl": None, "reason": "No recording available"}

        async with self._locks.hold(session_id):
            session = self._load_visible(session_id, requester)
            session.recording_url = recording_url
            session.updated_at = utcnow()
            saved = self._repository.save(session)

        self._broadcaster.publish(session_id, EventKind.SESSION_UPDATED, saved.to_dict())
        return {"enriched": True, "recordingUrl": recording_url}

    async def provider_transcript(self, session_id: str, requester: str) -> str:
        """The provider's own transcript for a session the requester can see."""
        self._load_visible(session_id, requester)
        return await self._meeting_client.fetch_transcript(session_id, identity=requester)

    async def meeting_details(self, meeting_id: str, requester: str) -> Dict[str, Any]:
        """Provider meeting details with every passcode field removed."""
        details = await self._meeting_client.get_meeting(meeting_id, identity=requester)
        return {key: value for key, value in details.items() if key not in PASSCODE_FIELDS}

    def get(self, session_id: str, requester: str) -> Session:
        return self._load_visible(session_id, requester)

    def is_visible(self, session_id: str, requester: str) -> bool:
        session = self._repository.get(session_id)
        return session is not None and session.is_visible_to(requester)

    def list_for(self, requester: str) -> List[Session]:
        return self._repository.list_for(requester)
