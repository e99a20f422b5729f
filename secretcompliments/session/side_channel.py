"""Remembers each user's last joined group across restarts."""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class LastGroupStore:
    """A JSON file mapping user id to the id of the group they were last in."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._load().get(user_id)

    def remember(self, user_id: str, group_id: str) -> None:
        with self._lock:
            data = self._load()
            data[user_id] = group_id
            self._save(data)

    def forget(self, user_id: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(user_id, None) is not None:
                self._save(data)

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable last-group file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v}

    def _save(self, data: dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)
