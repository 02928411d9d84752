"""
Audio-to-text adapters used when a caller supplies audio instead of a transcript.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from meeting_notes.config import OpenAISettings, TranscriptionProvider, TranscriptionSettings
from meeting_notes.core.exceptions import ConfigurationError, ProviderTimeoutError, TranscriptionError
from meeting_notes.core.logging import get_logger

logger = get_logger("transcription")

PLACEHOLDER_TRANSCRIPT = (
    "This is a placeholder for the actual transcription. In a real implementation, "
    "this would be the transcribed text from the audio."
)


class TranscriptionAdapter(ABC):
    """Stateless audio transcription."""

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str = "meeting.wav") -> str:
        """
        Transcribe raw audio.

        Raises:
            TranscriptionError: The provider failed or returned no text
        """
        raise NotImplementedError


class WhisperTranscriptionAdapter(TranscriptionAdapter):
    """OpenAI ``/v1/audio/transcriptions``."""

    def __init__(
        self,
        transcription_settings: TranscriptionSettings,
        openai_settings: OpenAISettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not openai_settings.api_key:
            raise ConfigurationError("Missing OpenAI API key for Whisper transcription")
        self._settings = transcription_settings
        self._api_key = openai_settings.api_key
        self._base_url = openai_settings.base_url.rstrip("/")
        self._http_client = http_client or httpx.AsyncClient(timeout=transcription_settings.request_timeout_seconds)

    async def transcribe(self, audio: bytes, filename: str = "meeting.wav") -> str:
        logger.info(f"Transcribing {len(audio)} bytes of audio with {self._settings.model}")
        try:
            response = await self._http_client.post(
                f"{self._base_url}/v1/audio/transcriptions",
                headers={"Authorization": f"Bearer {self._api_key}"},
                data={
                    "model": self._settings.model,
                    "language": self._settings.language,
                    "response_format": "json",
                },
                files={"file": (filename, audio, "application/octet-stream")},
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Transcription request timed out") from e
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Failed to reach transcription service: {e}") from e

        if response.status_code != 200:
            raise TranscriptionError(f"Transcription failed: HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError("Transcription service returned a non-JSON body") from e
        text = (payload.get("text") or "").strip() if isinstance(payload, dict) else ""
        if not text:
            raise TranscriptionError("Transcription returned no text")
        return text

    async def close(self) -> None:
        await self._http_client.aclose()


class PlaceholderTranscriptionAdapter(TranscriptionAdapter):
    """Returns fixed text; for deployments without a speech-to-text provider."""

    async def transcribe(self, audio: bytes, filename: str = "meeting.wav") -> str:
        if not audio:
            raise TranscriptionError("Audio payload is empty")
        logger.warning("Placeholder transcription in use; audio content is ignored")
        return PLACEHOLDER_TRANSCRIPT


def build_transcription_adapter(
    transcription_settings: TranscriptionSettings, openai_settings: OpenAISettings
) -> TranscriptionAdapter:
    if transcription_settings.provider == TranscriptionProvider.PLACEHOLDER:
        return PlaceholderTranscriptionAdapter()
    return WhisperTranscriptionAdapter(transcription_settings, openai_settings)
