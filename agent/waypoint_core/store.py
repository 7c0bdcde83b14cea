"""
Durable key-value persistence.

One JSON document per key under a state directory. Writes go to a temp file
that is then os.replace()d over the target, so a crash mid-write leaves the
previous value intact. Read failures (missing file, corrupt JSON) are logged
and fall back to the caller's default instead of raising.
"""

import json
import os
import threading
from pathlib import Path

from .config import log


class KeyValueStore:

    def __init__(self, directory):
        self._dir = Path(directory)
        self._lock = threading.Lock()

    @property
    def directory(self):
        return self._dir

    def _path(self, key):
        return self._dir / f"{key}.json"

    def get(self, key, default=None):
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return default
            try:
                return json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
                log.error("Failed to read %s: %s, using default", path.name, e)
                return default

    def set(self, key, value):
        """Persist value. Returns False (and logs) if it could not be written."""
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                self._dir.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(value, allow_nan=False), encoding="utf-8")
                os.replace(tmp, path)
                return True
            except (TypeError, ValueError, OSError) as e:
                log.error("Failed to save %s: %s", path.name, e)
                return False

    def delete(self, key):
        with self._lock:
            try:
                self._path(key).unlink(missing_ok=True)
            except OSError as e:
                log.error("Failed to delete %s: %s", key, e)
