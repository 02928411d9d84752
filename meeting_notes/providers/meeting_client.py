"""
Zoom meeting API client.

One client, two credential strategies: a static pre-issued token, or a
per-user OAuth token freshened by the TokenLifecycleCoordinator. The strategy
is picked from configuration when the client is built.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from meeting_notes.auth.token_coordinator import TokenLifecycleCoordinator
from meeting_notes.config import CredentialMode, ZoomSettings
from meeting_notes.core.exceptions import (
    AccessDeniedError,
    ConfigurationError,
    NotFoundError,
    ProviderError,
    ProviderTimeoutError,
)
from meeting_notes.core.logging import get_logger
from meeting_notes.domain.models import MeetingInfo, UNTITLED_TOPIC
from meeting_notes.utils import parse_datetime

logger = get_logger("meeting_client")


class CredentialStrategy(ABC):
    """Supplies the bearer token for a provider call."""

    @abstractmethod
    async def bearer_token(self, identity: Optional[str]) -> str:
        raise NotImplementedError


class StaticKeyCredentials(CredentialStrategy):
    """Same pre-issued token for every caller."""

    def __init__(self, token: str):
        if not token:
            raise ConfigurationError("ZOOM_STATIC_TOKEN is required when credential_mode=static")
        self._token = token

    async def bearer_token(self, identity: Optional[str]) -> str:
        return self._token


class OAuthCredentials(CredentialStrategy):
    """Per-identity OAuth token, refreshed on demand."""

    def __init__(self, coordinator: TokenLifecycleCoordinator):
        self._coordinator = coordinator

    async def bearer_token(self, identity: Optional[str]) -> str:
        if not identity:
            raise AccessDeniedError("An authenticated identity is required for Zoom OAuth calls")
        return await self._coordinator.ensure_fresh(identity)


def build_credentials(
    zoom_settings: ZoomSettings, coordinator: TokenLifecycleCoordinator
) -> CredentialStrategy:
    """Select the credential strategy from configuration."""
    if zoom_settings.credential_mode == CredentialMode.STATIC:
        return StaticKeyCredentials(zoom_settings.static_token)
    return OAuthCredentials(coordinator)


class ExternalMeetingClient:
    """
    Wraps the Zoom REST API calls the core depends on.

    Every failure is mapped onto the service's error taxonomy: 404 becomes
    NotFoundError, 401/403 AccessDeniedError, timeouts ProviderTimeoutError
    and anything else ProviderError.
    """

    def __init__(
        self,
        credentials: CredentialStrategy,
        zoom_settings: ZoomSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._credentials = credentials
        self._timeout = zoom_settings.request_timeout_seconds
        self._http_client = http_client or httpx.AsyncClient(
            base_url=zoom_settings.api_base_url,
            timeout=self._timeout,
        )

    async def _get(self, path: str, identity: Optional[str], what: str) -> httpx.Response:
        token = await self._credentials.bearer_token(identity)
        try:
            response = await self._http_client.get(
                path,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Zoom API timed out while fetching {what}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to reach Zoom API: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"Zoom could not find {what}")
        if response.status_code in (401, 403):
            raise AccessDeniedError(f"Zoom denied access to {what}: {_message(response)}")
        if response.status_code >= 400:
            logger.error(f"Zoom API error for {what}: {response.status_code} {_message(response)}")
            raise ProviderError(f"Zoom API error {response.status_code}: {_message(response)}")
        return response

    async def resolve_meeting(
        self, meeting_id: str, password: Optional[str] = None, identity: Optional[str] = None
    ) -> MeetingInfo:
        """
        Resolve a meeting id to its metadata and join URL.

        Args:
            meeting_id: Zoom meeting id
            password: Meeting passcode, if the caller has one
            identity: Requesting user (used by OAuth credentials)

        Returns:
            MeetingInfo for the meeting

        Raises:
            NotFoundError: Unknown meeting id
            AccessDeniedError: Credentials rejected or passcode mismatch
        """
        data = await self.get_meeting(meeting_id, identity=identity)

        expected = data.get("password") or ""
        if expected and (password or "") != expected:
            raise AccessDeniedError(f"Incorrect passcode for meeting {meeting_id}")

        join_url = data.get("join_url") or ""
        if password and join_url:
            join_url = f"{join_url}?pwd={password}"

        return MeetingInfo(
            meeting_id=str(data.get("id", meeting_id)),
            topic=data.get("topic") or UNTITLED_TOPIC,
            start_time=parse_datetime(data.get("start_time")),
            join_url=join_url,
            duration_minutes=data.get("duration"),
            password_required=bool(expected),
        )

    async def get_meeting(self, meeting_id: str, identity: Optional[str] = None) -> Dict[str, Any]:
        """Raw meeting details from ``GET /meetings/{id}``."""
        what = f"meeting {meeting_id}"
        response = await self._get(f"/meetings/{meeting_id}", identity, what)
        return _json_body(response, what)

    async def fetch_recording(self, meeting_id: str, identity: Optional[str] = None) -> Dict[str, Any]:
        """Cloud recording listing from ``GET /meetings/{id}/recordings``."""
        what = f"recordings for meeting {meeting_id}"
        response = await self._get(f"/meetings/{meeting_id}/recordings", identity, what)
        return _json_body(response, what)

    async def fetch_transcript(self, meeting_id: str, identity: Optional[str] = None) -> str:
        """
        Download the meeting's cloud transcript as ``Speaker: text`` lines.

        Raises:
            NotFoundError: If the recording has no transcript file
        """
        recording = await self.fetch_recording(meeting_id, identity=identity)
        transcript_file = next(
            (f for f in recording.get("recording_files", []) if f.get("file_type") == "TRANSCRIPT"),
            None,
        )
        if not transcript_file or not transcript_file.get("download_url"):
            raise NotFoundError(f"No transcript available for meeting {meeting_id}")

        response = await self._get(
            transcript_file["download_url"], identity, f"transcript for meeting {meeting_id}"
        )
        return vtt_to_text(response.text)

    async def get_user_profile(self, identity: Optional[str] = None) -> Dict[str, Any]:
        """Current user's profile from ``GET /users/me``."""
        response = await self._get("/users/me", identity, "user profile")
        return _json_body(response, "user profile")

    async def close(self) -> None:
        await self._http_client.aclose()


_VTT_TIMING = re.compile(r"^\d{2}:\d{2}(:\d{2})?\.\d{3}\s+-->")


def vtt_to_text(vtt: str) -> str:
    """Strip WebVTT headers, cue numbers and timings, keeping spoken lines."""
    lines: List[str] = []
    for raw in vtt.splitlines():
        line = raw.strip()
        if not line or line == "WEBVTT" or line.isdigit() or _VTT_TIMING.match(line):
            continue
        lines.append(line)
    return "\n".join(lines)


def _json_body(response: httpx.Response, what: str) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        logger.error(f"Zoom API returned a non-JSON body for {what}")
        raise ProviderError(f"Zoom API returned a non-JSON body for {what}") from e
    if not isinstance(body, dict):
        raise ProviderError(f"Zoom API returned an unexpected body for {what}")
    return body


def _message(response: httpx.Response) -> str:
    try:
        return response.json().get("message", f"HTTP {response.status_code}")
    except (ValueError, AttributeError):
        return f"HTTP {response.status_code}"
