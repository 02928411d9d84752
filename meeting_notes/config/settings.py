"""
Configuration settings for the Meeting Notes service.
Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from enum import Enum


class CredentialMode(str, Enum):
    """How the meeting provider client obtains its bearer credential."""
    STATIC = "static"
    OAUTH = "oauth"


class TranscriptionProvider(str, Enum):
    """Supported transcription services."""
    OPENAI_WHISPER = "openai_whisper"
    PLACEHOLDER = "placeholder"


class ZoomSettings(BaseSettings):
    """Zoom API and OAuth configuration."""
    model_config = SettingsConfigDict(env_prefix="ZOOM_")

    api_base_url: str = Field(
        default="https://api.zoom.us/v2",
        description="Zoom REST API base URL"
    )
    oauth_base_url: str = Field(
        default="https://zoom.us/oauth",
        description="Zoom OAuth base URL (authorize + token endpoints)"
    )
    client_id: str = Field(
        default="",
        description="OAuth app client ID"
    )
    client_secret: str = Field(
        default="",
        description="OAuth app client secret"
    )
    redirect_uri: str = Field(
        default="http://localhost:3001/api/v1/auth/zoom/callback",
        description="OAuth2 redirect URI"
    )
    credential_mode: CredentialMode = Field(
        default=CredentialMode.OAUTH,
        description="static: use static_token for every call; oauth: per-user tokens"
    )
    static_token: str = Field(
        default="",
        description="Pre-issued bearer token used when credential_mode=static"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for Zoom API and token endpoint calls"
    )


class OpenAISettings(BaseSettings):
    """Chat completion provider used for summaries and action items."""
    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str = Field(default="", description="OpenAI API key")
    base_url: str = Field(
        default="https://api.openai.com",
        description="OpenAI or OpenAI-compatible API base URL"
    )
    model: str = Field(default="gpt-3.5-turbo", description="Chat model")
    temperature: float = Field(default=0.3, description="Sampling temperature")
    max_tokens: int = Field(default=1000, description="Max tokens per completion")
    request_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for chat completion calls"
    )
    generate_titles: bool = Field(
        default=True,
        description="Suggest a title for untitled meetings after processing"
    )


class TranscriptionSettings(BaseSettings):
    """Transcription service configuration."""
    model_config = SettingsConfigDict(env_prefix="TRANSCRIPTION_")

    provider: TranscriptionProvider = Field(
        default=TranscriptionProvider.OPENAI_WHISPER,
        description="Transcription service provider"
    )
    model: str = Field(default="whisper-1", description="Transcription model")
    language: str = Field(
        default="en",
        description="Default transcription language"
    )
    request_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for transcription calls"
    )


class TokenSettings(BaseSettings):
    """OAuth token lifecycle configuration."""
    model_config = SettingsConfigDict(env_prefix="TOKEN_")

    refresh_skew_seconds: int = Field(
        default=300,
        description="Treat tokens as stale this many seconds before expiry"
    )
    store_file: Optional[str] = Field(
        default=None,
        description="JSON file for token records (in-memory when unset)"
    )


class StorageSettings(BaseSettings):
    """Session persistence configuration."""
    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    sessions_file: Optional[str] = Field(
        default=None,
        description="JSON file for session records (in-memory when unset)"
    )


class EventSettings(BaseSettings):
    """Event fan-out configuration."""
    model_config = SettingsConfigDict(env_prefix="EVENTS_")

    subscriber_queue_size: int = Field(
        default=100,
        description="Max buffered events per subscriber before dropping the oldest"
    )
    heartbeat_seconds: float = Field(
        default=15.0,
        description="SSE keepalive interval"
    )


class AuthServerSettings(BaseSettings):
    """HTTP server configuration."""
    model_config = SettingsConfigDict(env_prefix="AUTH_SERVER_")

    host: str = Field(default="localhost", description="Server host")
    port: int = Field(default=3001, description="Server port")
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Browser client URL used for OAuth redirects"
    )


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore"
    )

    project_name: str = Field(default="Meeting Notes API", description="API title")
    version: str = Field(default="1.0.0", description="API version")

    # Nested settings
    zoom: ZoomSettings = Field(default_factory=ZoomSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    token: TokenSettings = Field(default_factory=TokenSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    events: EventSettings = Field(default_factory=EventSettings)
    auth_server: AuthServerSettings = Field(default_factory=AuthServerSettings)

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


# Global settings instance
settings = Settings()
