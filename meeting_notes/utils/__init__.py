"""
Utility functions for the Meeting Notes service.
"""

import uuid
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.parser import parse


def generate_id(prefix: str = "", length: int = 16) -> str:
    """
    Generate a unique ID.

    Args:
        prefix: Optional prefix for the ID.
        length: Length of the random part.

    Returns:
        Unique ID string.
    """
    random_part = uuid.uuid4().hex[:length]
    return f"{prefix}{random_part}" if prefix else random_part


def parse_datetime(dt_string: Optional[str], default_tz: str = "UTC") -> Optional[datetime]:
    """
    Parse a datetime string with timezone handling.

    Args:
        dt_string: Datetime string to parse.
        default_tz: Default timezone if not specified.

    Returns:
        Parsed datetime or None if parsing fails.
    """
    if not dt_string:
        return None
    try:
        dt = parse(dt_string)
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(default_tz))
    return dt


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: Text to truncate.
        max_length: Maximum length.
        suffix: Suffix to add when truncated.

    Returns:
        Truncated text.
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
