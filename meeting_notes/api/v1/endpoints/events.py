"""
Server-Sent Events streams of session lifecycle events.
"""

import json
from typing import AsyncIterator, Callable, Optional

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from meeting_notes.core.dependencies import ContainerDep, RequesterDep, ServiceContainer
from meeting_notes.core.logging import get_logger
from meeting_notes.events.broadcaster import SessionEvent, Subscription

router = APIRouter()
logger = get_logger("api.events")


async def _event_stream(
    request: Request,
    subscription: Subscription,
    heartbeat: float,
    allow: Optional[Callable[[SessionEvent], bool]] = None,
) -> AsyncIterator[str]:
    try:
        while not await request.is_disconnected():
            event = await subscription.get(timeout=heartbeat)
            if event is None:
                yield ": heartbeat\n\n"
                continue
            if allow is not None and not allow(event):
                continue
            yield format_event(event)
    finally:
        subscription.close()
        logger.info(f"SSE disconnected from channel {subscription.channel}")


def format_event(event: SessionEvent) -> str:
    return f"event: {event.kind.value}\ndata: {json.dumps(event.to_dict())}\n\n"


def visible_to(container: ServiceContainer, requester: str) -> Callable[[SessionEvent], bool]:
    """Event filter passing only sessions the requester can see."""
    def allow(event: SessionEvent) -> bool:
        return container.state_machine.is_visible(event.session_id, requester)
    return allow


@router.get("/meetings/{meeting_id}/events", tags=["Events"])
async def meeting_events(
    meeting_id: str,
    request: Request,
    requester: str = RequesterDep,
    container: ServiceContainer = ContainerDep,
) -> StreamingResponse:
    """Events for one meeting the caller can see."""
    container.state_machine.get(meeting_id, requester)
    logger.info(f"SSE connected for meeting {meeting_id} ({requester})")
    subscription = container.broadcaster.subscribe(meeting_id)
    return StreamingResponse(
        _event_stream(request, subscription, container.settings.events.heartbeat_seconds),
        media_type="text/event-stream",
    )


@router.get("/events", tags=["Events"])
async def all_events(
    request: Request,
    requester: str = RequesterDep,
    container: ServiceContainer = ContainerDep,
) -> StreamingResponse:
    """Events for every meeting the caller can see."""
    logger.info(f"SSE connected for all visible meetings ({requester})")
    subscription = container.broadcaster.subscribe()
    return StreamingResponse(
        _event_stream(
            request,
            subscription,
            container.settings.events.heartbeat_seconds,
            allow=visible_to(container, requester),
        ),
        media_type="text/event-stream",
    )
