"""Sync Log: a bounded, newest-first audit trail of sync attempts.

Entries are persisted as a JSON list in a file outside the working tree so
writing the log never dirties the repository it audits. The log is a
diagnostic record only; git history stays the source of truth.

* **Atomic writes**: the file is replaced via a temp file and
  ``os.replace()`` so readers never see partial data.
* **Bounded**: once ``limit`` entries exist, the oldest is evicted.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from .models import SyncAttempt

logger = logging.getLogger(__name__)


class SyncLog:
    """Load, append to, and clear the persisted sync log.

    Args:
        path: JSON file holding the entries.
        limit: Maximum number of entries kept.
    """

    def __init__(self, path: Path, limit: int = 100) -> None:
        self.path = Path(path)
        self.limit = limit
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError:
            logger.warning("Sync log %s is corrupt, starting a new one", self.path)
            return []
        return data if isinstance(data, list) else []

    def _save(self, entries: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(entries, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(self, attempt: SyncAttempt) -> None:
        """Prepend *attempt*, evicting the oldest entries beyond the limit."""
        entry = attempt.model_dump(mode="json", by_alias=True, exclude_none=True)
        with self._lock:
            entries = self._load()
            entries.insert(0, entry)
            del entries[self.limit :]
            self._save(entries)

    def entries(self) -> list[SyncAttempt]:
        """All entries, newest first. Unreadable entries are skipped."""
        with self._lock:
            raw = self._load()
        result = []
        for item in raw:
            try:
                result.append(SyncAttempt.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed sync log entry: %r", item)
        return result

    def clear(self) -> None:
        with self._lock:
            self._save([])
