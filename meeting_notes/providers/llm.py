"""
Chat-completion providers for notes generation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from meeting_notes.config import OpenAISettings
from meeting_notes.core.exceptions import ConfigurationError, GenerationError, ProviderTimeoutError
from meeting_notes.core.logging import get_logger

logger = get_logger("llm")


class ChatProvider(ABC):
    """A single system+user instruction pair in, free-form text out."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: Optional[int] = None,
    ) -> str:
        raise NotImplementedError


class OpenAIChatProvider(ChatProvider):
    """Chat provider for OpenAI and OpenAI-compatible APIs."""

    def __init__(self, openai_settings: OpenAISettings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        if not openai_settings.api_key:
            raise ConfigurationError("Missing OpenAI API key. Set OPENAI_API_KEY.")
        self._settings = openai_settings
        self._base_url = openai_settings.base_url.rstrip("/")
        self._http_client = http_client or httpx.AsyncClient(timeout=openai_settings.request_timeout_seconds)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Make a call to the OpenAI API and return the response text."""
        request_body = {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._settings.temperature,
            "max_tokens": max_tokens or self._settings.max_tokens,
        }

        try:
            response = await self._http_client.post(
                f"{self._base_url}/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._settings.api_key}",
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError("OpenAI request timed out") from exc
        except httpx.HTTPError as exc:
            raise GenerationError(f"Failed to reach OpenAI: {exc}") from exc

        if response.status_code != 200:
            raise GenerationError(f"OpenAI error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise GenerationError("OpenAI returned a non-JSON body") from exc
        choices = data.get("choices", []) if isinstance(data, dict) else []
        if not choices:
            raise GenerationError("OpenAI response missing choices")

        content = choices[0].get("message", {}).get("content") or ""
        if not content.strip():
            raise GenerationError("No content in AI response")
        return content.strip()

    async def close(self) -> None:
        await self._http_client.aclose()
