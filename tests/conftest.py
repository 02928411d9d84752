import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from meeting_notes.auth.oauth_manager import AuthManager
from meeting_notes.auth.token_coordinator import TokenLifecycleCoordinator
from meeting_notes.config import Settings
from meeting_notes.core.dependencies import ServiceContainer
from meeting_notes.core.exceptions import AccessDeniedError, AuthExpiredError, NotFoundError
from meeting_notes.domain.models import UNTITLED_TOPIC, MeetingInfo, TokenGrant
from meeting_notes.events.broadcaster import EventBroadcaster
from meeting_notes.main import create_app
from meeting_notes.notes.pipeline import NotesGenerationPipeline
from meeting_notes.sessions.state_machine import SessionStateMachine
from meeting_notes.storage.session_store import SessionRepository
from meeting_notes.storage.token_store import TokenStore
from meeting_notes.utils import parse_datetime

STRUCTURED_NOTES = (
    '{"summary": ["Report is due Friday", "Alice owns shipping"], '
    '"actionItems": ["Bob → send report by Friday"]}'
)


class FakeMeetingClient:
    def __init__(self, meetings=None, recordings=None, transcripts=None):
        self.meetings = meetings if meetings is not None else {
            "123456": {"id": 123456, "topic": "Standup", "start_time": "2024-01-01T09:00:00Z", "duration": 15},
        }
        self.recordings = recordings or {}
        self.transcripts = transcripts or {}
        self.calls = []

    async def resolve_meeting(self, meeting_id, password=None, identity=None):
        self.calls.append(("resolve_meeting", meeting_id, identity))
        data = self.meetings.get(meeting_id)
        if data is None:
            raise NotFoundError(f"Zoom could not find meeting {meeting_id}")
        expected = data.get("password") or ""
        if expected and (password or "") != expected:
            raise AccessDeniedError(f"Incorrect passcode for meeting {meeting_id}")
        return MeetingInfo(
            meeting_id=meeting_id,
            topic=data.get("topic") or UNTITLED_TOPIC,
            start_time=parse_datetime(data.get("start_time")),
            join_url=f"https://zoom.us/j/{meeting_id}",
            duration_minutes=data.get("duration"),
            password_required=bool(expected),
        )

    async def get_meeting(self, meeting_id, identity=None):
        self.calls.append(("get_meeting", meeting_id, identity))
        if meeting_id not in self.meetings:
            raise NotFoundError(f"Zoom could not find meeting {meeting_id}")
        return self.meetings[meeting_id]

    async def fetch_recording(self, meeting_id, identity=None):
        self.calls.append(("fetch_recording", meeting_id, identity))
        if meeting_id not in self.recordings:
            raise NotFoundError(f"Zoom could not find recordings for meeting {meeting_id}")
        return self.recordings[meeting_id]

    async def fetch_transcript(self, meeting_id, identity=None):
        self.calls.append(("fetch_transcript", meeting_id, identity))
        if meeting_id not in self.transcripts:
            raise NotFoundError(f"No transcript available for meeting {meeting_id}")
        return self.transcripts[meeting_id]

    async def get_user_profile(self, identity=None):
        return {"id": identity, "email": f"{identity}@example.com"}


class FakeChatProvider:
    """Returns queued responses in order, repeating the last one."""

    def __init__(self, *responses, error=None, delay=0.0):
        self.responses = list(responses) or [STRUCTURED_NOTES]
        self.error = error
        self.delay = delay
        self.calls = []

    async def complete(self, system_prompt, user_prompt, max_tokens=None):
        self.calls.append({"system": system_prompt, "user": user_prompt, "max_tokens": max_tokens})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


class FakeTranscription:
    def __init__(self, text="Alice: ship the report\nBob: okay, I will send it by Friday", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def transcribe(self, audio, filename="meeting.wav"):
        self.calls.append((audio, filename))
        if self.error is not None:
            raise self.error
        return self.text


class FakeTokenEndpoint:
    def __init__(self, refresh_grant=None, code_grant=None, reject=False, delay=0.0):
        self.refresh_grant = refresh_grant or TokenGrant("new-access", 3600, "new-refresh")
        self.code_grant = code_grant or TokenGrant("code-access", 3600, "code-refresh")
        self.reject = reject
        self.delay = delay
        self.refresh_calls = []
        self.code_calls = []

    def authorization_url(self, state):
        return f"https://zoom.us/oauth/authorize?state={state}"

    async def exchange_code(self, code):
        self.code_calls.append(code)
        if code == "bad-code":
            raise AccessDeniedError("Zoom rejected the authorization_code grant: invalid_grant")
        return self.code_grant

    async def exchange_refresh_token(self, refresh_token):
        self.refresh_calls.append(refresh_token)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.reject:
            raise AuthExpiredError("Zoom rejected the refresh_token grant: invalid_grant")
        return self.refresh_grant


class MutableClock:
    def __init__(self, now=None):
        self.now = now or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def meeting_client():
    return FakeMeetingClient()


@pytest.fixture
def chat():
    return FakeChatProvider()


@pytest.fixture
def transcription():
    return FakeTranscription()


@pytest.fixture
def repository():
    return SessionRepository()


@pytest.fixture
def broadcaster():
    return EventBroadcaster(queue_size=20)


@pytest.fixture
def pipeline(chat, transcription):
    return NotesGenerationPipeline(chat, transcription)


@pytest.fixture
def machine(repository, meeting_client, pipeline, broadcaster):
    return SessionStateMachine(repository, meeting_client, pipeline, broadcaster)


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def token_endpoint():
    return FakeTokenEndpoint()


@pytest.fixture
def token_store():
    return TokenStore()


@pytest.fixture
def coordinator(token_store, token_endpoint, clock):
    return TokenLifecycleCoordinator(token_store, token_endpoint, refresh_skew_seconds=300, clock=clock)


@pytest.fixture
def container(repository, token_store, token_endpoint, coordinator, meeting_client, chat,
              transcription, pipeline, broadcaster, machine):
    return ServiceContainer(
        settings=Settings(),
        sessions=repository,
        tokens=token_store,
        token_endpoint=token_endpoint,
        coordinator=coordinator,
        meeting_client=meeting_client,
        chat_provider=chat,
        transcription=transcription,
        pipeline=pipeline,
        broadcaster=broadcaster,
        state_machine=machine,
        auth=AuthManager(coordinator, token_endpoint, meeting_client=meeting_client),
    )


@pytest.fixture
def api_client(container):
    return TestClient(create_app(container))
