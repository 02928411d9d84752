"""
Persistence for sessions and OAuth tokens.
"""

from .session_store import SessionRepository
from .token_store import TokenStore

__all__ = ["SessionRepository", "TokenStore"]
