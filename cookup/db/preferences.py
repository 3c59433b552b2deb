"""
On-device key-value preferences backed by a JSON file
"""
import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, List, Optional

from cookup.errors import LocalStorageError

logger = logging.getLogger(__name__)


class LocalPreferences:
    """
    Durable string-keyed preferences stored as one JSON object.

    Writes replace the whole file atomically, so a crash mid-write leaves the
    previous contents in place.
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise LocalStorageError(f"Failed to read preferences at {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise LocalStorageError(f"Preferences at {self.path} are not a JSON object")
        return data

    def get(self, key: str) -> Any:
        """Return the raw value stored under key, or None."""
        with self._lock:
            return self._read_all().get(key)

    def get_string_list(self, key: str) -> Optional[List[str]]:
        """
        Return the value under key if it is a list of strings.

        Args:
            key: Preference key

        Returns:
            The list, or None when the key is absent or holds another type

        Raises:
            LocalStorageError: if the preferences file cannot be read
        """
        value = self.get(key)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            LocalStorageError: if the preferences file cannot be written
        """
        with self._lock:
            try:
                data = self._read_all()
            except LocalStorageError:
                logger.warning("Discarding unreadable preferences at %s", self.path)
                data = {}
            data[key] = value

            directory = os.path.dirname(self.path) or "."
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".prefs-", suffix=".json")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                    raise
            except OSError as e:
                raise LocalStorageError(f"Failed to write preferences at {self.path}: {e}") from e
