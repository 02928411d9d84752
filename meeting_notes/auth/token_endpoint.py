"""
Zoom OAuth token endpoint client.

Exchanges authorization codes and refresh tokens for access tokens.
"""

from typing import Optional
from urllib.parse import urlencode

import httpx

from meeting_notes.config import ZoomSettings
from meeting_notes.core.exceptions import (
    AccessDeniedError,
    AuthExpiredError,
    ConfigurationError,
    MeetingNotesException,
    ProviderError,
    ProviderTimeoutError,
)
from meeting_notes.core.logging import get_logger
from meeting_notes.domain.models import TokenGrant

logger = get_logger("token_endpoint")


class ZoomTokenEndpoint:
    """
    Thin async client for ``/oauth/authorize`` and ``/oauth/token``.

    Uses HTTP Basic auth with the app's client id/secret, as Zoom requires.
    """

    def __init__(self, zoom_settings: ZoomSettings, http_client: Optional[httpx.AsyncClient] = None):
        self._settings = zoom_settings
        self._base_url = zoom_settings.oauth_base_url.rstrip("/")
        self._http_client = http_client or httpx.AsyncClient(timeout=zoom_settings.request_timeout_seconds)

    def authorization_url(self, state: str) -> str:
        """
        Build the consent-screen URL.

        Args:
            state: Opaque CSRF value echoed back on the callback

        Returns:
            Authorize URL to redirect the browser to
        """
        if not self._settings.client_id:
            raise ConfigurationError("ZOOM_CLIENT_ID is not configured")
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": self._settings.redirect_uri,
            "state": state,
        }
        return f"{self._base_url}/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """
        Exchange an authorization code for tokens.

        Raises:
            AccessDeniedError: If the provider rejects the code
            ProviderTimeoutError: If the endpoint does not answer in time
        """
        return await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._settings.redirect_uri,
            },
            rejection=AccessDeniedError,
        )

    async def exchange_refresh_token(self, refresh_token: str) -> TokenGrant:
        """
        Exchange a refresh token for a new access token.

        Raises:
            AuthExpiredError: If the provider rejects the refresh token
            ProviderTimeoutError: If the endpoint does not answer in time
        """
        return await self._request_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            rejection=AuthExpiredError,
        )

    async def _request_token(self, form: dict, rejection: type[MeetingNotesException]) -> TokenGrant:
        try:
            response = await self._http_client.post(
                f"{self._base_url}/token",
                data=form,
                auth=(self._settings.client_id, self._settings.client_secret),
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Zoom token endpoint timed out") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to reach Zoom token endpoint: {e}") from e

        if response.status_code in (400, 401, 403):
            reason = _error_reason(response)
            logger.warning(f"Token request rejected ({form['grant_type']}): {reason}")
            raise rejection(f"Zoom rejected the {form['grant_type']} grant: {reason}")
        if response.status_code >= 400:
            raise ProviderError(f"Zoom token endpoint error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError("Zoom token endpoint returned a non-JSON body") from e
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise ProviderError("Zoom token response missing access_token")

        expires_in = payload.get("expires_in")
        try:
            expires_in_seconds = int(expires_in) if expires_in is not None else 3600
        except (TypeError, ValueError) as e:
            raise ProviderError(f"Zoom token response has invalid expires_in: {expires_in!r}") from e

        return TokenGrant(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in_seconds=expires_in_seconds,
        )

    async def close(self) -> None:
        await self._http_client.aclose()


def _error_reason(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if not isinstance(body, dict):
        return f"HTTP {response.status_code}"
    return body.get("reason") or body.get("error_description") or body.get("error") or f"HTTP {response.status_code}"
