"""
Token Store - one OAuth credential set per authenticated identity.
"""
import json
import os
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from meeting_notes.core.logging import get_logger, mask_secret
from meeting_notes.domain.models import TokenRecord

logger = get_logger("token_store")


class TokenStore:
    """
    Holds TokenRecords in memory, optionally mirrored to a JSON file.

    Only the TokenLifecycleCoordinator writes here; everything else reads.
    """

    def __init__(self, token_file: Optional[str] = None):
        self.token_file = Path(token_file) if token_file else None
        self._lock = Lock()
        self._records: Dict[str, TokenRecord] = {}
        if self.token_file is not None:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)
            self._load_token_cache()

    def _load_token_cache(self) -> None:
        """Load token records from file."""
        if not self.token_file.exists():
            return
        with open(self.token_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
        for identity, raw in data.items():
            self._records[identity] = TokenRecord.from_dict(raw)
        logger.info(f"Loaded {len(self._records)} token record(s) from {self.token_file}")

    def _save_token_cache(self) -> None:
        """Save token records to file."""
        temp_path = f"{self.token_file}.tmp"
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump({k: v.to_dict() for k, v in self._records.items()}, f, indent=2)
        os.replace(temp_path, self.token_file)

    def get(self, identity: str) -> Optional[TokenRecord]:
        with self._lock:
            return self._records.get(identity)

    def put(self, record: TokenRecord) -> None:
        """Replace the record for ``record.identity`` in one step."""
        with self._lock:
            self._records[record.identity] = record
            if self.token_file is not None:
                self._save_token_cache()
        logger.debug(
            f"Stored token for {record.identity}: access={mask_secret(record.access_token)} "
            f"expires_at={record.expires_at.isoformat()}"
        )

    def delete(self, identity: str) -> bool:
        with self._lock:
            removed = self._records.pop(identity, None) is not None
            if removed and self.token_file is not None:
                self._save_token_cache()
            return removed
