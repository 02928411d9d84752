"""
API schemas for the Zoom OAuth endpoints.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel


class AuthUrlResponse(BaseModel):
    """Authorize URL for the Zoom consent screen."""
    auth_url: str
    state: str


class TokenStatus(BaseModel):
    authenticated: bool
    expires_at: Optional[str] = None
    needs_refresh: bool


class AuthMeResponse(BaseModel):
    """Who the caller is and whether their Zoom token is usable."""
    identity: str
    is_authenticated: bool
    user: Optional[Dict[str, Any]] = None
    token: TokenStatus


class CheckTokenResponse(BaseModel):
    needs_refresh: bool
    token_refreshed: Optional[bool] = None
    error: Optional[str] = None


class LogoutResponse(BaseModel):
    success: bool = True
    had_token: bool
