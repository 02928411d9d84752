from .adapter import (
    PLACEHOLDER_TRANSCRIPT,
    PlaceholderTranscriptionAdapter,
    TranscriptionAdapter,
    WhisperTranscriptionAdapter,
    build_transcription_adapter,
)

__all__ = [
    "PLACEHOLDER_TRANSCRIPT",
    "PlaceholderTranscriptionAdapter",
    "TranscriptionAdapter",
    "WhisperTranscriptionAdapter",
    "build_transcription_adapter",
]
