"""
Dependency injection for the Meeting Notes API.
Builds the service graph once per application and hands it to endpoints.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from meeting_notes.auth.oauth_manager import AuthManager
from meeting_notes.auth.token_coordinator import TokenLifecycleCoordinator
from meeting_notes.auth.token_endpoint import ZoomTokenEndpoint
from meeting_notes.config import Settings
from meeting_notes.core.exceptions import HTTPInternalServerError, HTTPUnauthorized
from meeting_notes.core.logging import get_logger
from meeting_notes.events.broadcaster import EventBroadcaster
from meeting_notes.notes.pipeline import NotesGenerationPipeline
from meeting_notes.providers.llm import ChatProvider, OpenAIChatProvider
from meeting_notes.providers.meeting_client import ExternalMeetingClient, build_credentials
from meeting_notes.sessions.state_machine import SessionStateMachine
from meeting_notes.storage.session_store import SessionRepository
from meeting_notes.storage.token_store import TokenStore
from meeting_notes.transcription.adapter import TranscriptionAdapter, build_transcription_adapter

logger = get_logger("dependencies")


@dataclass
class ServiceContainer:
    """Everything the HTTP layer talks to, built once at startup."""
    settings: Settings
    sessions: SessionRepository
    tokens: TokenStore
    token_endpoint: ZoomTokenEndpoint
    coordinator: TokenLifecycleCoordinator
    meeting_client: ExternalMeetingClient
    chat_provider: ChatProvider
    transcription: TranscriptionAdapter
    pipeline: NotesGenerationPipeline
    broadcaster: EventBroadcaster
    state_machine: SessionStateMachine
    auth: AuthManager

    async def close(self) -> None:
        """Close every HTTP client the container owns."""
        for component in (self.meeting_client, self.token_endpoint, self.chat_provider, self.transcription):
            close = getattr(component, "close", None)
            if close is not None:
                await close()


def build_container(settings: Settings) -> ServiceContainer:
    """
    Wire the services from settings.

    Raises:
        ConfigurationError: A required provider setting is missing
    """
    sessions = SessionRepository(settings.storage.sessions_file)
    tokens = TokenStore(settings.token.store_file)
    token_endpoint = ZoomTokenEndpoint(settings.zoom)
    coordinator = TokenLifecycleCoordinator(
        tokens, token_endpoint, refresh_skew_seconds=settings.token.refresh_skew_seconds
    )
    meeting_client = ExternalMeetingClient(build_credentials(settings.zoom, coordinator), settings.zoom)
    chat_provider = OpenAIChatProvider(settings.openai)
    transcription = build_transcription_adapter(settings.transcription, settings.openai)
    pipeline = NotesGenerationPipeline(chat_provider, transcription)
    broadcaster = EventBroadcaster(queue_size=settings.events.subscriber_queue_size)
    state_machine = SessionStateMachine(
        sessions,
        meeting_client,
        pipeline,
        broadcaster,
        generate_titles=settings.openai.generate_titles,
    )
    auth = AuthManager(coordinator, token_endpoint, meeting_client=meeting_client)

    logger.info(
        f"Services ready (credentials={settings.zoom.credential_mode.value}, "
        f"transcription={settings.transcription.provider.value})"
    )
    return ServiceContainer(
        settings=settings,
        sessions=sessions,
        tokens=tokens,
        token_endpoint=token_endpoint,
        coordinator=coordinator,
        meeting_client=meeting_client,
        chat_provider=chat_provider,
        transcription=transcription,
        pipeline=pipeline,
        broadcaster=broadcaster,
        state_machine=state_machine,
        auth=auth,
    )


def get_container(request: Request) -> ServiceContainer:
    """
    Dependency injection for the service container.

    Raises:
        HTTPInternalServerError: If the application has not finished starting
    """
    container: Optional[ServiceContainer] = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPInternalServerError("Meeting notes services not initialized")
    return container


def get_state_machine(container: ServiceContainer = Depends(get_container)) -> SessionStateMachine:
    return container.state_machine


def get_auth_manager(container: ServiceContainer = Depends(get_container)) -> AuthManager:
    return container.auth


def get_requester(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity from the ``X-User-Id`` header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPUnauthorized("X-User-Id header is required")
    return x_user_id.strip()


ContainerDep = Depends(get_container)
StateMachineDep = Depends(get_state_machine)
AuthManagerDep = Depends(get_auth_manager)
RequesterDep = Depends(get_requester)
