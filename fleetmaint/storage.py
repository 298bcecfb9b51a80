"""
Design (storage.py)
- Purpose: Key/value blob store backing the Entity Store and the Session. One JSON file per
           key (ships, components, jobs, notifications, currentUser) inside the data directory.
- Inputs: Data directory (from get_data_dir()), key names, serialized values.
- Outputs: Raw blob strings on get; None on set/remove.
- Side effects: Reads/writes/deletes files. Any OSError surfaces as StorageError; failed writes
                never leave a half-written blob behind (temp file + os.replace).
- Thread-safety: Call under FleetRepo's lock (or from the main thread for the Session).
"""

import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from .config import DATA_DIR_ENV, DATA_DIR_NAME

log = logging.getLogger(__name__)


class StorageError(Exception):
    """The backing store could not be read or written."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"storage unavailable for '{key}': {reason}")
        self.key = key
        self.reason = reason


def get_data_dir() -> Path:
    """
    Resolve the data directory. FLEETMAINT_DATA_DIR wins; otherwise prefer the app data dir so
    it works when installed and survives reinstalls. Fallback to ~/.fleetmaint.
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / DATA_DIR_NAME
    return Path.home() / ".fleetmaint"


class BlobStore:
    """
    Design (BlobStore)
    - State:
        root: directory holding <key>.json files (created lazily on first write)
    - Contract: opaque strings in, opaque strings out; callers own (de)serialization.
    """

    SUFFIX = ".json"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        """
        Purpose: Read the blob stored under key.
        Outputs: str, or None when the key has never been written.
        Side effects: Reads file.
        """
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(key, str(exc)) from exc

    def set(self, key: str, value: str) -> None:
        """
        Purpose: Replace the blob stored under key.
        Side effects: Writes a temp file in root then atomically renames it over <key>.json.
        """
        path = self._path(key)
        tmp_name = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}-", suffix=".tmp", dir=self.root)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(key, str(exc)) from exc

    def remove(self, key: str) -> None:
        """Delete the blob; no-op if absent."""
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(key, str(exc)) from exc

    # -------- JSON convenience --------

    def get_json(self, key: str) -> Any:
        """
        Purpose: Read and decode a JSON blob.
        Outputs: Decoded value, or None if absent.
        Raises: json.JSONDecodeError on a corrupt blob (caller decides the fallback).
        """
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, indent=2))
