"""
Durable record of which Notion pages have already been migrated.

The state file is a JSON object with a single ``processed_pages`` mapping
from page id to ``true``.  It is rewritten in full after every migrated
page, through a temporary file and :func:`os.replace`, so an interrupted run
never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import Dict, FrozenSet, Optional

from notion2memos.utils.errors import StateIOError

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = os.path.join("~", ".notion2memos", "state.json")


class StateTracker:
    """
    The processed-set of one migration.

    All accessors take an internal lock, so one tracker may be shared by
    several threads even though the migration itself runs sequentially.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = os.path.expanduser(path or DEFAULT_STATE_FILE)
        self._processed: Dict[str, bool] = {}
        self._lock = threading.RLock()

    @classmethod
    def open(cls, path: Optional[str] = None) -> "StateTracker":
        """Create a tracker and load its state file."""
        tracker = cls(path)
        tracker.load()
        return tracker

    def load(self) -> FrozenSet[str]:
        """
        Read the state file, replacing the in-memory set.  A missing file
        yields an empty set.

        :raises StateIOError: if the file exists but cannot be read or parsed.
        """
        with self._lock:
            if not os.path.exists(self.path):
                self._processed = {}
                return self.processed_ids
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise StateIOError(f"failed to read state file {self.path}: {e}") from e

            pages = data.get("processed_pages") if isinstance(data, dict) else None
            if pages is None:
                pages = {}
            if not isinstance(pages, dict):
                raise StateIOError(f"state file {self.path} has an invalid 'processed_pages' field")
            self._processed = {str(k): True for k, v in pages.items() if v is True}
            logger.debug("Loaded %d processed pages from %s", len(self._processed), self.path)
            return self.processed_ids

    @property
    def processed_ids(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._processed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._processed)

    def contains(self, page_id: str) -> bool:
        with self._lock:
            return self._processed.get(page_id, False)

    __contains__ = contains

    def mark_processed(self, page_id: str) -> None:
        with self._lock:
            self._processed[page_id] = True

    def persist(self) -> None:
        """
        Write the full set to the state file, replacing it atomically.

        :raises StateIOError: if the directory or file cannot be written.
        """
        with self._lock:
            payload = {"processed_pages": dict(self._processed)}
            directory = os.path.dirname(self.path) or "."
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(payload, f, indent=2)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, self.path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except OSError as e:
                raise StateIOError(f"failed to write state file {self.path}: {e}") from e

    def clear(self) -> None:
        """
        Forget every processed page and delete the state file.  Deleting a
        file that does not exist is not an error.

        :raises StateIOError: if an existing file cannot be removed.
        """
        with self._lock:
            self._processed = {}
            try:
                os.remove(self.path)
            except FileNotFoundError:
                pass
            except OSError as e:
                raise StateIOError(f"failed to remove state file {self.path}: {e}") from e
