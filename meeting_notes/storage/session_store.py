"""
Session Repository - in-memory session records with an optional JSON file mirror.
"""
import copy
import json
import os
from pathlib import Path
from threading import Lock
from datetime import datetime
from typing import Dict, List, Optional

from meeting_notes.core.logging import get_logger
from meeting_notes.domain.models import Session

logger = get_logger("session_store")


class SessionRepository:
    """
    Stores Session records keyed by session id.

    Reads hand out deep copies, so a caller can mutate a session freely and
    only the copy passed back to ``save`` becomes visible. This is what makes
    transitions all-or-nothing.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = Path(db_path) if db_path else None
        self.lock = Lock()
        self._sessions: Dict[str, Session] = {}

        if self.db_path is None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        if self.db_path.exists():
            self._load_db()
            logger.info(f"Using existing session database at {self.db_path} ({len(self._sessions)} sessions)")
        else:
            self._save_db()
            logger.info(f"Created new session database at {self.db_path}")

    def _load_db(self) -> None:
        """Load sessions from file."""
        with open(self.db_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        for session_id, raw in data.get("sessions", {}).items():
            self._sessions[session_id] = Session.from_dict(raw)

    def _save_db(self) -> None:
        """Write all sessions to file via a temp file and atomic replace."""
        data = {
            "last_updated": datetime.now().isoformat(),
            "sessions": {sid: s.to_dict() for sid, s in self._sessions.items()},
        }
        temp_path = f"{self.db_path}.tmp"
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(temp_path, self.db_path)

    def get(self, session_id: str) -> Optional[Session]:
        """
        Get a session by id.

        Args:
            session_id: Provider meeting id

        Returns:
            A private copy of the session, or None if unknown
        """
        with self.lock:
            session = self._sessions.get(session_id)
            return copy.deepcopy(session) if session else None

    def exists(self, session_id: str) -> bool:
        with self.lock:
            return session_id in self._sessions

    def save(self, session: Session) -> Session:
        """
        Insert or replace a session.

        Args:
            session: Session to persist

        Returns:
            The stored session (a copy)

        Raises:
            ValueError: If the session violates its invariants
        """
        session.validate()
        with self.lock:
            existing = self._sessions.get(session.session_id)
            if existing and existing.owner_id != session.owner_id:
                raise ValueError(f"Session {session.session_id}: owner_id is immutable")
            self._sessions[session.session_id] = copy.deepcopy(session)
            if self.db_path is not None:
                self._save_db()
            logger.debug(f"Saved session {session.session_id} state={session.state.value}")
            return copy.deepcopy(session)

    def list_for(self, requester: str) -> List[Session]:
        """Sessions owned or joined by ``requester``, newest first."""
        with self.lock:
            visible = [copy.deepcopy(s) for s in self._sessions.values() if s.is_visible_to(requester)]
        return sorted(visible, key=lambda s: s.created_at, reverse=True)

    def all(self) -> List[Session]:
        with self.lock:
            return [copy.deepcopy(s) for s in self._sessions.values()]
