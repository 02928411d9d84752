from .pipeline import (
    ACTION_ITEMS_PLACEHOLDER,
    SUMMARY_PLACEHOLDER,
    NotesGenerationPipeline,
    parse_fallback,
    parse_structured,
)

__all__ = [
    "ACTION_ITEMS_PLACEHOLDER",
    "SUMMARY_PLACEHOLDER",
    "NotesGenerationPipeline",
    "parse_fallback",
    "parse_structured",
]
