"""Durable key-value slice store.

Each slice is one named, JSON-serializable fragment of application state
stored as ``<root>/data/<key>.json``. Reads never raise: missing or corrupt
data is reported as absent. Writes never raise either: failures are logged
and reported through the return value so the in-memory state can carry on.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from mindwell.fileio import read_json, remove_file, write_json_atomic
from mindwell.workspace import data_dir, workspace_root

logger = logging.getLogger(__name__)

JOURNAL_ENTRIES = "journal-entries"
GOALS = "goals"
PIN_CREDENTIAL_HASH = "pin-credential-hash"
ACHIEVEMENTS_UNLOCKED = "achievements-unlocked"
DAILY_QUOTE = "daily-quote"

_KEY_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


class SliceStore:
    def __init__(self, root: Path | None = None):
        if root is None:
            root = workspace_root()
        self.root = root
        self.directory = data_dir(root)

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid slice key: {key!r}")
        return self.directory / f"{key}.json"

    def load(self, key: str) -> Any | None:
        """Return the stored value for *key*, or None if absent or unreadable."""
        path = self.path_for(key)
        try:
            return read_json(path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Discarding unreadable slice %s (%s): %s", key, path, e)
            return None

    def save(self, key: str, value: Any) -> bool:
        """Persist *value* under *key*. Returns False on failure."""
        path = self.path_for(key)
        try:
            write_json_atomic(path, value)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save slice %s (%s): %s", key, path, e)
            return False
        return True

    def remove(self, key: str) -> bool:
        """Delete the slice. Returns False if it was absent or could not be removed."""
        path = self.path_for(key)
        try:
            return remove_file(path)
        except OSError as e:
            logger.error("Failed to remove slice %s (%s): %s", key, path, e)
            return False
