"""
Durable key/value state for the client (current session, cached reports,
pending report queue), kept as one JSON document on disk.
"""

import json
import logging
import os
import shutil
import tempfile
import threading
from typing import Any, Dict

log = logging.getLogger(__name__)

SESSION_KEY = "civic_pulse_user"
REPORTS_KEY = "civic_pulse_reports"
PENDING_REPORTS_KEY = "civic_pulse_pending_reports"


class LocalStorage:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read().strip()
            return json.loads(content) if content else {}
        except json.JSONDecodeError:
            log.warning("Corrupted local state file %s. Starting empty.", self.path)
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        """Atomic replace, so a crash never leaves half a file behind."""
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=directory)
        os.close(tmp_fd)
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            shutil.move(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._data.get(key, default)
        # callers get a copy they can mutate freely
        return json.loads(json.dumps(value)) if value is not None else default

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            updated = {**self._data, key: value}
            self._write(updated)
            self._data = updated

    def remove(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            updated = {k: v for k, v in self._data.items() if k != key}
            self._write(updated)
            self._data = updated
