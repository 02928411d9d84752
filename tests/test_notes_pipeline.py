import pytest

from meeting_notes.core.exceptions import (
    GenerationError,
    InvalidRequestError,
    ProviderTimeoutError,
    TranscriptionError,
)
from meeting_notes.domain.models import ParseKind, PipelineRequest
from meeting_notes.notes.pipeline import (
    ACTION_ITEMS_PLACEHOLDER,
    SUMMARY_PLACEHOLDER,
    NotesGenerationPipeline,
    parse_structured,
)

from conftest import FakeChatProvider, FakeTranscription


def _pipeline(*responses, error=None, transcription=None):
    chat = FakeChatProvider(*responses, error=error)
    return NotesGenerationPipeline(chat, transcription or FakeTranscription()), chat


async def test_structured_response_is_returned_as_is():
    pipeline, chat = _pipeline('{"summary": ["a", "b"], "actionItems": ["Bob → c"]}')
    outcome = await pipeline.run(PipelineRequest("m1", transcript_text="Alice: hi"))
    assert outcome.kind == ParseKind.STRUCTURED
    assert outcome.summary == ["a", "b"]
    assert outcome.action_items == ["Bob → c"]
    assert outcome.from_audio is False
    assert "Alice: hi" in chat.calls[0]["user"]
    assert len(chat.calls) == 1


async def test_fenced_json_is_still_structured():
    content = '```json\n{"summary": ["a"], "actionItems": ["Bob → c"]}\n```'
    pipeline, _ = _pipeline(content)
    outcome = await pipeline.run(PipelineRequest("m1", transcript_text="x"))
    assert outcome.kind == ParseKind.STRUCTURED
    assert outcome.summary == ["a"]


async def test_empty_arrays_become_placeholders():
    pipeline, _ = _pipeline('{"summary": [], "actionItems": []}')
    outcome = await pipeline.run(PipelineRequest("m1", transcript_text="x"))
    assert outcome.kind == ParseKind.STRUCTURED
    assert outcome.summary == [SUMMARY_PLACEHOLDER]
    assert outcome.action_items == [ACTION_ITEMS_PLACEHOLDER]


def test_markdown_summary_string_is_kept_as_one_entry():
    summary, action_items = parse_structured('{"summary": "- a\\n- b", "actionItems": null}')
    assert summary == ["- a\n- b"]
    assert action_items == []


async def test_non_object_json_goes_through_fallback():
    pipeline, _ = _pipeline('["not", "an", "object"]')
    outcome = await pipeline.run(PipelineRequest("m1", transcript_text="x"))
    assert outcome.kind == ParseKind.FALLBACK
    assert outcome.summary == [SUMMARY_PLACEHOLDER]
    assert outcome.action_items == [ACTION_ITEMS_PLACEHOLDER]


async def test_malformed_output_uses_text_scan():
    pipeline, _ = _pipeline("Summary:\n1. shipped\nAction Items:\nBob → send report by Friday")
    outcome = await pipeline.run(PipelineRequest("m1", transcript_text="x"))
    assert outcome.kind == ParseKind.FALLBACK
    assert outcome.summary == ["shipped"]
    assert outcome.action_items == ["Bob → send report by Friday"]


async def test_provider_failure_becomes_generation_error():
    pipeline, _ = _pipeline(error=RuntimeError("connection reset"))
    with pytest.raises(GenerationError) as exc_info:
        await pipeline.run(PipelineRequest("m1", transcript_text="x"))
    assert "connection reset" in exc_info.value.message


async def test_timeout_is_not_reported_as_generation_error():
    pipeline, _ = _pipeline(error=ProviderTimeoutError("Chat completion timed out"))
    with pytest.raises(ProviderTimeoutError):
        await pipeline.run(PipelineRequest("m1", transcript_text="x"))


async def test_audio_is_transcribed_first():
    transcription = FakeTranscription(text="Alice: from audio")
    pipeline, chat = _pipeline(transcription=transcription)
    outcome = await pipeline.run(PipelineRequest("m1", audio_payload=b"RIFF"))
    assert outcome.from_audio is True
    assert outcome.transcript_text == "Alice: from audio"
    assert transcription.calls[0][0] == b"RIFF"
    assert "Alice: from audio" in chat.calls[0]["user"]


async def test_transcription_failure_stops_before_generation():
    pipeline, chat = _pipeline(transcription=FakeTranscription(error=RuntimeError("codec")))
    with pytest.raises(TranscriptionError):
        await pipeline.run(PipelineRequest("m1", audio_payload=b"RIFF"))
    assert chat.calls == []


async def test_blank_transcription_is_an_error():
    pipeline, _ = _pipeline(transcription=FakeTranscription(text="   "))
    with pytest.raises(TranscriptionError):
        await pipeline.run(PipelineRequest("m1", audio_payload=b"RIFF"))


def test_request_needs_exactly_one_payload():
    with pytest.raises(InvalidRequestError):
        PipelineRequest("m1")
    with pytest.raises(InvalidRequestError):
        PipelineRequest("m1", transcript_text="   ")
    with pytest.raises(InvalidRequestError):
        PipelineRequest("m1", transcript_text="x", audio_payload=b"y")


async def test_title_is_requested_when_wanted():
    pipeline, chat = _pipeline('{"summary": ["a"], "actionItems": []}', '"Quarterly Planning Sync"')
    outcome = await pipeline.run(PipelineRequest("m1", transcript_text="x"), want_title=True)
    assert outcome.title == "Quarterly Planning Sync"
    assert chat.calls[1]["max_tokens"] == 30


async def test_title_failure_falls_back():
    pipeline, _ = _pipeline(error=RuntimeError("down"))
    assert await pipeline.suggest_title("Alice: hi") == "Meeting Notes"
