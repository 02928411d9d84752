"""
Core module exports.
"""

from .exceptions import (
    MeetingNotesException,
    NotFoundError,
    AccessDeniedError,
    StaleStateError,
    InvalidRequestError,
    TranscriptionError,
    GenerationError,
    ProviderTimeoutError,
    ProviderError,
    AuthExpiredError,
    ConfigurationError,
)
from .logging import get_logger, setup_logging, mask_secret

__all__ = [
    "MeetingNotesException",
    "NotFoundError",
    "AccessDeniedError",
    "StaleStateError",
    "InvalidRequestError",
    "TranscriptionError",
    "GenerationError",
    "ProviderTimeoutError",
    "ProviderError",
    "AuthExpiredError",
    "ConfigurationError",
    "get_logger",
    "setup_logging",
    "mask_secret",
]
