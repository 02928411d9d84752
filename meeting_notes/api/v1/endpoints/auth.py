"""
OAuth authentication endpoints for Zoom.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query
from fastapi.responses import RedirectResponse

from meeting_notes.api.v1.schemas.auth import (
    AuthMeResponse,
    AuthUrlResponse,
    CheckTokenResponse,
    LogoutResponse,
)
from meeting_notes.auth.oauth_manager import AuthManager
from meeting_notes.core.dependencies import AuthManagerDep, ContainerDep, RequesterDep, ServiceContainer
from meeting_notes.core.exceptions import MeetingNotesException
from meeting_notes.core.logging import get_logger

router = APIRouter()
logger = get_logger("api.auth")


@router.get("/zoom", tags=["Authentication"])
async def zoom_login(
    requester: str = RequesterDep,
    auth: AuthManager = AuthManagerDep,
) -> RedirectResponse:
    """Redirect the browser to the Zoom consent screen."""
    flow = auth.start(requester)
    return RedirectResponse(url=flow["auth_url"])


@router.get("/zoom/url", response_model=AuthUrlResponse, tags=["Authentication"])
async def zoom_auth_url(
    requester: str = RequesterDep,
    auth: AuthManager = AuthManagerDep,
) -> Dict[str, str]:
    """Authorize URL for clients that open the consent screen themselves."""
    return auth.start(requester)


@router.get("/zoom/callback", tags=["Authentication"])
async def zoom_callback(
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    container: ServiceContainer = ContainerDep,
) -> RedirectResponse:
    """
    OAuth callback handler for Zoom.

    Exchanges the authorization code and sends the browser back to the
    frontend dashboard, or to its login page on failure.
    """
    frontend_url = container.settings.auth_server.frontend_url.rstrip("/")
    if error:
        logger.warning(f"Zoom OAuth returned an error: {error}")
        return RedirectResponse(url=f"{frontend_url}/login?error=oauth_failed")

    try:
        result = await container.auth.complete(state, code)
    except MeetingNotesException as e:
        logger.error(f"OAuth callback error: {e.message}")
        return RedirectResponse(url=f"{frontend_url}/login?error=oauth_failed")

    logger.info(f"Zoom authentication completed for {result['identity']}")
    return RedirectResponse(url=f"{frontend_url}/dashboard")


@router.get("/me", response_model=AuthMeResponse, tags=["Authentication"])
async def me(
    requester: str = RequesterDep,
    auth: AuthManager = AuthManagerDep,
) -> Dict[str, Any]:
    return auth.me(requester)


@router.get("/check-token", response_model=CheckTokenResponse, tags=["Authentication"])
async def check_token(
    requester: str = RequesterDep,
    auth: AuthManager = AuthManagerDep,
) -> Dict[str, Any]:
    """Refresh the caller's token if it is close to expiry."""
    return await auth.check_token(requester)


@router.post("/logout", response_model=LogoutResponse, tags=["Authentication"])
async def logout(
    requester: str = RequesterDep,
    auth: AuthManager = AuthManagerDep,
) -> Dict[str, Any]:
    return {"success": True, "had_token": auth.logout(requester)}
