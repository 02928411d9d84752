import asyncio
from datetime import datetime, timezone

import pytest

from meeting_notes.core.exceptions import (
    AccessDeniedError,
    GenerationError,
    InvalidRequestError,
    NotFoundError,
    StaleStateError,
)
from meeting_notes.domain.models import ParseKind, SessionState
from meeting_notes.events.broadcaster import EventKind
from meeting_notes.notes.pipeline import SUMMARY_PLACEHOLDER

TRANSCRIPT = "Alice: ship the report\nBob: okay, I will send it by Friday"


def _drain(subscription):
    return subscription.drain()


async def test_join_then_process_with_malformed_output(machine, chat, repository):
    chat.responses = ["Sure! Here you go.\nAction Items:\nBob → send report by Friday"]

    session = await machine.join("123456", "userA", password="")
    assert session.state == SessionState.IN_PROGRESS
    assert session.topic == "Standup"
    assert session.scheduled_start == datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    assert [p.identity for p in session.participants] == ["userA"]
    assert session.transcript == []
    assert session.notes_result is None

    outcome = await machine.process("123456", "userA", transcript_text=TRANSCRIPT)
    assert outcome.action_items == ["Bob → send report by Friday"]
    assert outcome.summary == [SUMMARY_PLACEHOLDER]
    assert outcome.kind == ParseKind.FALLBACK

    stored = repository.get("123456")
    assert stored.state == SessionState.COMPLETED
    assert stored.notes_result.action_items[0].assignee == "Bob"
    assert stored.notes_result.action_items[0].description == "send report by Friday"
    assert stored.notes_result.parse_kind == ParseKind.FALLBACK
    # supplied text is not copied into the transcript
    assert stored.transcript == []


async def test_join_unknown_meeting(machine, repository):
    with pytest.raises(NotFoundError):
        await machine.join("999", "userA")
    assert repository.get("999") is None


async def test_join_with_wrong_password(machine, meeting_client, repository):
    meeting_client.meetings["555"] = {"topic": "Secret", "password": "letmein"}
    with pytest.raises(AccessDeniedError):
        await machine.join("555", "userA", password="nope")
    assert repository.get("555") is None

    session = await machine.join("555", "userA", password="letmein")
    assert session.state == SessionState.IN_PROGRESS


async def test_second_join_reuses_in_progress_session(machine, repository):
    await machine.join("123456", "userA")
    await machine.join("123456", "userB")
    session = await machine.join("123456", "userA")

    assert session.owner_id == "userA"
    assert [p.identity for p in session.participants] == ["userA", "userB"]
    assert len(repository.all()) == 1


async def test_join_after_completion_is_rejected(machine):
    await machine.join("123456", "userA")
    await machine.process("123456", "userA", transcript_text=TRANSCRIPT)
    with pytest.raises(StaleStateError):
        await machine.join("123456", "userB")


async def test_process_requires_visibility(machine):
    await machine.join("123456", "userA")
    with pytest.raises(NotFoundError):
        await machine.process("123456", "stranger", transcript_text=TRANSCRIPT)
    with pytest.raises(NotFoundError):
        await machine.process("unknown", "userA", transcript_text=TRANSCRIPT)


async def test_participant_can_process(machine):
    await machine.join("123456", "userA")
    await machine.join("123456", "userB")
    outcome = await machine.process("123456", "userB", transcript_text=TRANSCRIPT)
    assert outcome.kind == ParseKind.STRUCTURED


async def test_process_without_payload(machine, repository):
    await machine.join("123456", "userA")
    with pytest.raises(InvalidRequestError):
        await machine.process("123456", "userA")
    assert repository.get("123456").state == SessionState.IN_PROGRESS


async def test_pipeline_failure_keeps_session_in_progress(machine, chat, repository):
    await machine.join("123456", "userA")
    chat.error = GenerationError("model overloaded")

    with pytest.raises(GenerationError):
        await machine.process("123456", "userA", transcript_text=TRANSCRIPT)
    stored = repository.get("123456")
    assert stored.state == SessionState.IN_PROGRESS
    assert stored.notes_result is None

    chat.error = None
    await machine.process("123456", "userA", transcript_text=TRANSCRIPT)
    assert repository.get("123456").state == SessionState.COMPLETED


async def test_audio_transcript_is_persisted(machine, repository):
    await machine.join("123456", "userA")
    outcome = await machine.process("123456", "userA", audio_payload=b"RIFF....")
    assert outcome.from_audio is True

    transcript = repository.get("123456").transcript
    assert [(t.speaker, t.text) for t in transcript] == [
        ("Alice", "ship the report"),
        ("Bob", "okay, I will send it by Friday"),
    ]


async def test_concurrent_process_completes_once(machine, chat, repository):
    chat.delay = 0.05
    await machine.join("123456", "userA")

    results = await asyncio.gather(
        machine.process("123456", "userA", transcript_text="Alice: first"),
        machine.process("123456", "userA", transcript_text="Alice: second"),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], StaleStateError)
    assert len(chat.calls) == 1
    assert repository.get("123456").state == SessionState.COMPLETED


async def test_process_and_end_do_not_both_apply(machine, chat, repository, broadcaster):
    chat.delay = 0.05
    await machine.join("123456", "userA")
    subscription = broadcaster.subscribe("123456")

    await asyncio.gather(
        machine.process("123456", "userA", transcript_text=TRANSCRIPT),
        machine.end("123456", "userA"),
    )

    stored = repository.get("123456")
    assert stored.state == SessionState.COMPLETED
    assert stored.notes_result is not None
    kinds = [e.kind for e in _drain(subscription)]
    assert kinds == [EventKind.SESSION_PROCESSED]


async def test_end_cancels_and_is_idempotent(machine, repository, broadcaster):
    await machine.join("123456", "userA")
    subscription = broadcaster.subscribe("123456")

    first = await machine.end("123456", "userA")
    assert first.state == SessionState.CANCELED
    assert first.notes_result is None
    assert all(p.leave_time is not None for p in first.participants)

    second = await machine.end("123456", "userA")
    assert second.state == SessionState.CANCELED
    assert second.updated_at == first.updated_at
    assert [e.kind for e in _drain(subscription)] == [EventKind.SESSION_ENDED]


async def test_end_after_completion_is_a_no_op(machine, repository):
    await machine.join("123456", "userA")
    await machine.process("123456", "userA", transcript_text=TRANSCRIPT)
    session = await machine.end("123456", "userA")
    assert session.state == SessionState.COMPLETED
    assert session.notes_result is not None


async def test_end_requires_visibility(machine):
    await machine.join("123456", "userA")
    with pytest.raises(NotFoundError):
        await machine.end("123456", "stranger")


async def test_scheduled_session_lifecycle(machine):
    start = datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)
    scheduled = await machine.schedule("123456", "owner", topic="Planning", scheduled_start=start)
    assert scheduled.state == SessionState.SCHEDULED

    with pytest.raises(StaleStateError):
        await machine.end("123456", "owner")
    with pytest.raises(StaleStateError):
        await machine.process("123456", "owner", transcript_text=TRANSCRIPT)
    with pytest.raises(InvalidRequestError):
        await machine.schedule("123456", "owner")

    joined = await machine.join("123456", "userA")
    assert joined.state == SessionState.IN_PROGRESS
    assert joined.owner_id == "owner"
    assert joined.topic == "Planning"


async def test_untitled_meeting_gets_suggested_title(machine, meeting_client, chat, repository):
    meeting_client.meetings["777"] = {"topic": ""}
    chat.responses = ['{"summary": ["a"], "actionItems": ["Bob → b"]}', "'Release Readiness Review'"]

    await machine.join("777", "userA")
    outcome = await machine.process("777", "userA", transcript_text=TRANSCRIPT)

    assert outcome.title == "Release Readiness Review"
    assert repository.get("777").topic == "Release Readiness Review"


async def test_titled_meeting_is_not_renamed(machine, chat):
    await machine.join("123456", "userA")
    await machine.process("123456", "userA", transcript_text=TRANSCRIPT)
    assert len(chat.calls) == 1


async def test_update_details(machine):
    await machine.join("123456", "userA")
    session = await machine.update_details("123456", "userA", topic="Daily Standup", duration_minutes=30)
    assert session.topic == "Daily Standup"
    assert session.duration_minutes == 30

    await machine.end("123456", "userA")
    with pytest.raises(StaleStateError):
        await machine.update_details("123456", "userA", topic="Too late")


async def test_enrich_stores_recording_url(machine, meeting_client, repository):
    meeting_client.recordings["123456"] = {"share_url": "https://zoom.us/rec/share/abc"}
    await machine.join("123456", "userA")

    result = await machine.enrich("123456", "userA")
    assert result == {"enriched": True, "recordingUrl": "https://zoom.us/rec/share/abc"}
    stored = repository.get("123456")
    assert stored.recording_url == "https://zoom.us/rec/share/abc"
    assert stored.state == SessionState.IN_PROGRESS


async def test_enrich_failure_is_not_fatal(machine, repository):
    await machine.join("123456", "userA")
    result = await machine.enrich("123456", "userA")
    assert result["enriched"] is False
    assert repository.get("123456").state == SessionState.IN_PROGRESS


async def test_list_for_only_shows_visible_sessions(machine, meeting_client):
    meeting_client.meetings["222"] = {"topic": "Other"}
    await machine.join("123456", "userA")
    await machine.join("222", "userB")
    await machine.join("222", "userA")

    assert sorted(s.session_id for s in machine.list_for("userA")) == ["123456", "222"]
    assert [s.session_id for s in machine.list_for("userB")] == ["222"]
    assert machine.list_for("stranger") == []


async def test_events_follow_transitions(machine, broadcaster):
    session_sub = broadcaster.subscribe("123456")
    global_sub = broadcaster.subscribe()

    await machine.join("123456", "userA")
    await machine.process("123456", "userA", transcript_text=TRANSCRIPT)

    kinds = [e.kind for e in _drain(session_sub)]
    assert kinds == [EventKind.SESSION_UPDATED, EventKind.SESSION_PROCESSED]
    processed = [e for e in _drain(global_sub) if e.kind == EventKind.SESSION_PROCESSED][0]
    assert processed.payload["actionItems"] == ["Bob → send report by Friday"]
    assert processed.payload["parse"] == "structured"


async def test_notes_present_exactly_when_completed(machine, repository, meeting_client):
    meeting_client.meetings["222"] = {"topic": "Other"}
    await machine.join("123456", "userA")
    await machine.join("222", "userA")
    await machine.process("123456", "userA", transcript_text=TRANSCRIPT)
    await machine.end("222", "userA")

    for session in repository.all():
        assert (session.notes_result is not None) == (session.state == SessionState.COMPLETED)


async def test_meeting_details_hide_passcodes(machine, meeting_client):
    meeting_client.meetings["555"] = {
        "topic": "Secret",
        "password": "letmein",
        "h323_password": "123",
        "pstn_password": "456",
        "encrypted_password": "xyz",
    }
    with pytest.raises(AccessDeniedError):
        await machine.join("555", "mallory", password="nope")

    details = await machine.meeting_details("555", "mallory")
    assert details == {"topic": "Secret"}
    assert meeting_client.meetings["555"]["password"] == "letmein"
