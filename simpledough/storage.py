"""
Local slot store: named JSON documents kept under one data directory.

Each slot is read in full and written in full. There is no locking and no
schema versioning; the last writer wins.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalStore:
    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)

    def _path(self, slot: str) -> Path:
        return self.data_dir / f"{slot}.json"

    def read(self, slot: str, default=None):
        """Return the decoded slot, or `default` when absent or unreadable."""
        path = self._path(slot)
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("slot %s unreadable, using default: %s", slot, e)
            return default

    def write(self, slot: str, value) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with self._path(slot).open("w", encoding="utf-8") as f:
            json.dump(value, f)

    def remove(self, slot: str) -> None:
        self._path(slot).unlink(missing_ok=True)

    def healthy(self) -> bool:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return self.data_dir.is_dir()
