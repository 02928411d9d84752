"""
Notes generation: transcript (or audio) in, summary bullets and action items out.
"""

import json
import re
from typing import Any, List, Tuple

from meeting_notes.core.exceptions import (
    GenerationError,
    ProviderTimeoutError,
    TranscriptionError,
)
from meeting_notes.core.logging import get_logger
from meeting_notes.domain.models import ARROW, NotesOutcome, ParseKind, PipelineRequest
from meeting_notes.providers.llm import ChatProvider
from meeting_notes.transcription.adapter import TranscriptionAdapter
from meeting_notes.utils import truncate_text

logger = get_logger("notes_pipeline")

SUMMARY_PLACEHOLDER = "No summary could be generated."
ACTION_ITEMS_PLACEHOLDER = "No action items could be identified."
DEFAULT_TITLE = "Meeting Notes"

NOTES_SYSTEM_PROMPT = (
    "You are a helpful meeting assistant that summarizes meetings and extracts action items."
)

NOTES_PROMPT = """You are a meeting assistant. Analyze the following meeting transcript and provide:
1. A concise summary (5-7 bullet points)
2. Action items in the format "Person {arrow} Task"

Transcript:
{transcript}

Format your response as a JSON object with the following structure:
{{
  "summary": ["point 1", "point 2", ...],
  "actionItems": ["Person {arrow} Task", ...]
}}"""

TITLE_SYSTEM_PROMPT = "You generate concise, descriptive titles for meetings based on their content."

TITLE_PROMPT = """Generate a concise, descriptive title (maximum 5-7 words) for a meeting with the following transcript:

{excerpt}..."""

_ENUMERATED = re.compile(r"^\d+[.)]")
_ENUMERATED_PREFIX = re.compile(r"^\d+[.)]\s*")


def _strip_markdown_code_blocks(text: str) -> str:
    """Remove markdown code block wrappers from text."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    return "\n".join(line for line in text.split("\n") if not line.startswith("```")).strip()


def _as_lines(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    raise ValueError(f"expected list or string, got {type(value).__name__}")


def parse_structured(content: str) -> Tuple[List[str], List[str]]:
    """
    Parse the model's JSON answer.

    Raises:
        ValueError: The content is not a JSON object of the expected shape
    """
    parsed = json.loads(_strip_markdown_code_blocks(content))
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    summary = _as_lines(parsed.get("summary"))
    action_items = _as_lines(parsed.get("actionItems", parsed.get("action_items")))
    return summary, action_items


def parse_fallback(content: str) -> Tuple[List[str], List[str]]:
    """
    Deterministic text scan for when the answer is not valid JSON.

    A "summary" line opens the summary section, a line with both "action" and
    "item" opens the action-item section. Enumerated lines ("1." / "1)") are
    kept as summary bullets with the marker stripped; lines containing the
    arrow are kept verbatim as action items.
    """
    summary: List[str] = []
    action_items: List[str] = []
    section = None

    for raw in content.split("\n"):
        line = raw.strip()
        if not line:
            continue
        lowered = line.lower()
        if "summary" in lowered:
            section = "summary"
        elif "action" in lowered and "item" in lowered:
            section = "actionItems"
        elif section == "summary" and _ENUMERATED.match(line):
            summary.append(_ENUMERATED_PREFIX.sub("", line).strip())
        elif section == "actionItems" and ARROW in line:
            action_items.append(line)

    return summary, action_items


def with_placeholders(summary: List[str], action_items: List[str]) -> Tuple[List[str], List[str]]:
    """Callers never receive an empty list."""
    return (
        summary or [SUMMARY_PLACEHOLDER],
        action_items or [ACTION_ITEMS_PLACEHOLDER],
    )


class NotesGenerationPipeline:
    """
    Orchestrates transcription (for audio input), the generation call and
    parsing. Stateless per invocation; nothing here retries.
    """

    def __init__(self, chat_provider: ChatProvider, transcription_adapter: TranscriptionAdapter):
        self._chat = chat_provider
        self._transcriber = transcription_adapter

    async def run(self, request: PipelineRequest, want_title: bool = False) -> NotesOutcome:
        """
        Produce notes for one request.

        Args:
            request: Transcript text or audio for a session
            want_title: Also ask for a short meeting title

        Returns:
            NotesOutcome tagged structured or fallback

        Raises:
            TranscriptionError: Audio could not be transcribed
            GenerationError: The generation call failed
            ProviderTimeoutError: A provider call timed out
        """
        from_audio = request.is_audio
        if from_audio:
            transcript_text = await self._transcribe(request)
        else:
            transcript_text = request.transcript_text.strip()

        outcome = await self.generate(transcript_text)
        outcome.from_audio = from_audio
        if want_title:
            outcome.title = await self.suggest_title(transcript_text)
        return outcome

    async def _transcribe(self, request: PipelineRequest) -> str:
        try:
            text = await self._transcriber.transcribe(
                request.audio_payload, filename=f"meeting-{request.session_id}.wav"
            )
        except (TranscriptionError, ProviderTimeoutError):
            raise
        except Exception as e:
            raise TranscriptionError(str(e) or "Failed to transcribe audio") from e
        if not text or not text.strip():
            raise TranscriptionError("Transcription returned no text")
        logger.info(f"Transcribed audio for session {request.session_id} ({len(text)} chars)")
        return text.strip()

    async def generate(self, transcript_text: str) -> NotesOutcome:
        """Run the single generation call and parse its answer."""
        prompt = NOTES_PROMPT.format(transcript=transcript_text, arrow=ARROW)
        try:
            content = await self._chat.complete(NOTES_SYSTEM_PROMPT, prompt)
        except (GenerationError, ProviderTimeoutError):
            raise
        except Exception as e:
            raise GenerationError(str(e) or "Failed to generate meeting notes") from e

        try:
            summary, action_items = parse_structured(content)
            kind = ParseKind.STRUCTURED
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"Failed to parse AI response as JSON ({e}); using text fallback")
            summary, action_items = parse_fallback(content)
            kind = ParseKind.FALLBACK

        summary, action_items = with_placeholders(summary, action_items)
        return NotesOutcome(
            kind=kind,
            summary=summary,
            action_items=action_items,
            transcript_text=transcript_text,
        )

    async def suggest_title(self, transcript_text: str) -> str:
        """Short title for the meeting; never fails."""
        prompt = TITLE_PROMPT.format(excerpt=transcript_text[:500])
        try:
            title = await self._chat.complete(TITLE_SYSTEM_PROMPT, prompt, max_tokens=30)
        except Exception as e:
            logger.warning(f"Error generating meeting title: {e}")
            return DEFAULT_TITLE
        title = re.sub(r"^[\"']|[\"']$", "", title.strip()).strip()
        return truncate_text(title, max_length=120) or DEFAULT_TITLE
