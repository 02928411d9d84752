"""
External provider clients (meeting API and chat completion).
"""

from .llm import ChatProvider, OpenAIChatProvider
from .meeting_client import (
    CredentialStrategy,
    ExternalMeetingClient,
    OAuthCredentials,
    StaticKeyCredentials,
    build_credentials,
)

__all__ = [
    "ChatProvider",
    "OpenAIChatProvider",
    "CredentialStrategy",
    "ExternalMeetingClient",
    "OAuthCredentials",
    "StaticKeyCredentials",
    "build_credentials",
]
