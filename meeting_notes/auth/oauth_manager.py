"""
Pure logic for the Zoom OAuth authorization-code flow.
Contains no FastAPI dependencies.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from meeting_notes.auth.token_coordinator import TokenLifecycleCoordinator
from meeting_notes.auth.token_endpoint import ZoomTokenEndpoint
from meeting_notes.core.exceptions import InvalidRequestError, MeetingNotesException
from meeting_notes.core.logging import get_logger
from meeting_notes.domain.models import utcnow
from meeting_notes.providers.meeting_client import ExternalMeetingClient
from meeting_notes.utils import generate_id

logger = get_logger("auth_manager")


class AuthManager:
    """
    Manages pending OAuth flows and per-identity profile lookups.

    Each flow's ``state`` value is bound to the identity that started it, so
    the callback (which arrives without any caller headers) can be attributed
    and forged callbacks are rejected.
    """

    def __init__(
        self,
        coordinator: TokenLifecycleCoordinator,
        endpoint: ZoomTokenEndpoint,
        meeting_client: Optional[ExternalMeetingClient] = None,
        state_ttl_seconds: int = 600,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._coordinator = coordinator
        self._endpoint = endpoint
        self._meeting_client = meeting_client
        self._state_ttl = timedelta(seconds=state_ttl_seconds)
        self._clock = clock
        self._flows: Dict[str, Tuple[str, datetime]] = {}
        self._profiles: Dict[str, Dict[str, Any]] = {}

    def start(self, identity: str) -> Dict[str, str]:
        """Begin a flow for ``identity``; returns the authorize URL and state."""
        self._drop_expired_flows()
        state = generate_id(length=32)
        auth_url = self._endpoint.authorization_url(state)
        self._flows[state] = (identity, self._clock())
        logger.info(f"Starting Zoom OAuth flow for {identity}")
        return {"auth_url": auth_url, "state": state}

    async def complete(self, state: Optional[str], code: Optional[str]) -> Dict[str, Any]:
        """
        Finish a flow: validate state, exchange the code, fetch the profile.

        Raises:
            InvalidRequestError: Unknown/expired state or missing code
            AccessDeniedError: The provider rejected the code
        """
        self._drop_expired_flows()
        if not state or state not in self._flows:
            raise InvalidRequestError("Invalid state parameter")
        if not code:
            raise InvalidRequestError("Missing authorization code")

        identity, _ = self._flows.pop(state)
        await self._coordinator.store_from_code(identity, code)

        profile = None
        if self._meeting_client is not None:
            try:
                profile = await self._meeting_client.get_user_profile(identity)
                self._profiles[identity] = profile
            except MeetingNotesException as e:
                logger.warning(f"Could not fetch Zoom profile for {identity}: {e.message}")

        return {"identity": identity, "profile": profile}

    def me(self, identity: str) -> Dict[str, Any]:
        status = self._coordinator.status(identity)
        return {
            "identity": identity,
            "is_authenticated": status["authenticated"],
            "user": self._profiles.get(identity),
            "token": status,
        }

    async def check_token(self, identity: str) -> Dict[str, Any]:
        return await self._coordinator.check_token(identity)

    def logout(self, identity: str) -> bool:
        self._profiles.pop(identity, None)
        removed = self._coordinator.discard(identity)
        logger.info(f"Logged out {identity} (had_token={removed})")
        return removed

    def _drop_expired_flows(self) -> None:
        cutoff = self._clock() - self._state_ttl
        for state in [s for s, (_, started) in self._flows.items() if started < cutoff]:
            del self._flows[state]
