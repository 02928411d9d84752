"""
Meeting lifecycle endpoints (join, process, end) and session queries.
"""

import base64
import binascii
from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from meeting_notes.api.v1.schemas.meeting import (
    EndMeetingResponse,
    EnrichMeetingResponse,
    JoinMeetingRequest,
    ProcessMeetingRequest,
    ProcessMeetingResponse,
    ProviderTranscriptResponse,
    ScheduleMeetingRequest,
    SessionSnapshot,
    UpdateMeetingRequest,
)
from meeting_notes.core.dependencies import RequesterDep, StateMachineDep
from meeting_notes.core.exceptions import InvalidRequestError
from meeting_notes.core.logging import get_logger
from meeting_notes.sessions.state_machine import SessionStateMachine

router = APIRouter()
logger = get_logger("api.meetings")


def _decode_audio(audio_file: Optional[str]) -> Optional[bytes]:
    """Accepts plain base64 or a ``data:...;base64,`` URL."""
    if not audio_file:
        return None
    payload = audio_file.split(",", 1)[1] if audio_file.startswith("data:") else audio_file
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError("audioFile must be base64-encoded") from e


@router.post("/join", response_model=SessionSnapshot, tags=["Meetings"])
async def join_meeting(
    body: JoinMeetingRequest,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> SessionSnapshot:
    """
    Join a Zoom meeting, creating its session on first join.

    Returns:
        The session snapshot
    """
    logger.info(f"Join request for meeting {body.meeting_id} from {requester}")
    session = await machine.join(body.meeting_id, requester, password=body.password)
    return SessionSnapshot.from_session(session)


@router.post("/schedule", response_model=SessionSnapshot, status_code=201, tags=["Meetings"])
async def schedule_meeting(
    body: ScheduleMeetingRequest,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> SessionSnapshot:
    session = await machine.schedule(
        body.meeting_id,
        requester,
        topic=body.topic,
        scheduled_start=body.scheduled_start,
        duration_minutes=body.duration_minutes,
    )
    return SessionSnapshot.from_session(session)


@router.post("/process", response_model=ProcessMeetingResponse, tags=["Meetings"])
async def process_meeting(
    body: ProcessMeetingRequest,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> ProcessMeetingResponse:
    """
    Generate summary and action items from a transcript or audio recording.

    Returns:
        Notes and whether they came from a structured or fallback parse
    """
    audio = _decode_audio(body.audio_file)
    outcome = await machine.process(
        body.meeting_id,
        requester,
        transcript_text=body.transcript,
        audio_payload=audio,
    )
    return ProcessMeetingResponse(
        meeting_id=body.meeting_id,
        summary=outcome.summary,
        action_items=outcome.action_items,
        parse=outcome.kind.value,
        topic=outcome.title,
    )


@router.post("/{meeting_id}/end", response_model=EndMeetingResponse, tags=["Meetings"])
async def end_meeting(
    meeting_id: str,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> EndMeetingResponse:
    session = await machine.end(meeting_id, requester)
    return EndMeetingResponse(meeting_id=meeting_id, state=session.state.value)


@router.get("", response_model=List[SessionSnapshot], tags=["Meetings"])
async def list_meetings(
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> List[SessionSnapshot]:
    """Meetings the caller owns or joined, newest first."""
    return [SessionSnapshot.from_session(s) for s in machine.list_for(requester)]


@router.get("/{meeting_id}", response_model=SessionSnapshot, tags=["Meetings"])
async def get_meeting(
    meeting_id: str,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> SessionSnapshot:
    return SessionSnapshot.from_session(machine.get(meeting_id, requester))


@router.patch("/{meeting_id}", response_model=SessionSnapshot, tags=["Meetings"])
async def update_meeting(
    meeting_id: str,
    body: UpdateMeetingRequest,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> SessionSnapshot:
    session = await machine.update_details(
        meeting_id,
        requester,
        topic=body.topic,
        scheduled_start=body.scheduled_start,
        duration_minutes=body.duration_minutes,
    )
    return SessionSnapshot.from_session(session)


@router.get("/{meeting_id}/details", tags=["Meetings"])
async def meeting_details(
    meeting_id: str,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> Dict[str, Any]:
    """Meeting details from Zoom, without passcodes."""
    return await machine.meeting_details(meeting_id, requester)


@router.post("/{meeting_id}/enrich", response_model=EnrichMeetingResponse, tags=["Meetings"])
async def enrich_meeting(
    meeting_id: str,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> EnrichMeetingResponse:
    result = await machine.enrich(meeting_id, requester)
    return EnrichMeetingResponse(**result)


@router.get("/{meeting_id}/provider-transcript", response_model=ProviderTranscriptResponse, tags=["Meetings"])
async def provider_transcript(
    meeting_id: str,
    requester: str = RequesterDep,
    machine: SessionStateMachine = StateMachineDep,
) -> ProviderTranscriptResponse:
    transcript = await machine.provider_transcript(meeting_id, requester)
    return ProviderTranscriptResponse(meeting_id=meeting_id, transcript=transcript)
