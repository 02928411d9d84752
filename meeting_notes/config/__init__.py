"""
Configuration module for the Meeting Notes service.
"""

from .settings import (
    Settings,
    settings,
    CredentialMode,
    TranscriptionProvider,
    ZoomSettings,
    OpenAISettings,
    TranscriptionSettings,
    TokenSettings,
    StorageSettings,
    EventSettings,
    AuthServerSettings,
)

__all__ = [
    "Settings",
    "settings",
    "CredentialMode",
    "TranscriptionProvider",
    "ZoomSettings",
    "OpenAISettings",
    "TranscriptionSettings",
    "TokenSettings",
    "StorageSettings",
    "EventSettings",
    "AuthServerSettings",
]
