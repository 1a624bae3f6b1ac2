"""
Local key-value storage backed by a directory of files.

Each key maps to one file holding a string value. It plays the role the
browser's localStorage plays for the web client.
"""

import os
import logging
from typing import Optional

from survey_backend.constants import LOCAL_STORAGE_DIR

logger = logging.getLogger(__name__)


class LocalStorage:
    """String key-value store persisted under a directory"""

    def __init__(self, root: str = LOCAL_STORAGE_DIR):
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        if not key or os.sep in key or (os.altsep and os.altsep in key) or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self.root, key)

    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if there is none"""
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value"""
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp_path, path)

    def remove_item(self, key: str) -> bool:
        """Remove key, returning True if it existed"""
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)
            return True
        return False
