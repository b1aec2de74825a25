"""
Local key/value storage backing the TTL cache

Both backends store plain strings under string keys and have a finite
capacity: once `max_entries` keys are held, writing a new key raises
StorageFullError. Overwriting an existing key is always allowed.
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class StorageFullError(Exception):
    """Raised when the storage quota does not allow another entry"""


class KeyValueStorage:
    """Synchronous string-keyed storage interface"""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = "") -> List[str]:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.keys())


class MemoryStorage(KeyValueStorage):
    """Process-local storage with an entry quota"""

    def __init__(self, max_entries: int = 200):
        self.max_entries = max_entries
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if key not in self._items and len(self._items) >= self.max_entries:
            raise StorageFullError(f"Storage quota of {self.max_entries} entries exceeded")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return [k for k in self._items if k.startswith(prefix)]


class JsonFileStorage(MemoryStorage):
    """
    Storage persisted to a single JSON object on disk

    The file is read once on construction and rewritten after every change.
    An unreadable file starts the storage empty. A write that cannot reach
    the disk is rolled back and reported as StorageFullError.
    """

    def __init__(self, path: str, max_entries: int = 200):
        super().__init__(max_entries=max_entries)
        self.path = Path(path)
        self._items = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring unreadable cache file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self._items, f, ensure_ascii=False)

    def set_item(self, key: str, value: str) -> None:
        previous = self._items.get(key)
        super().set_item(key, value)
        try:
            self._flush()
        except OSError as e:
            # memory must not hold what the file does not
            if previous is None:
                self._items.pop(key, None)
            else:
                self._items[key] = previous
            raise StorageFullError(f"Cannot write cache file {self.path}: {e}") from e

    def remove_item(self, key: str) -> None:
        if key in self._items:
            super().remove_item(key)
            try:
                self._flush()
            except OSError as e:
                logger.warning(f"⚠️ Could not rewrite cache file {self.path} after removing '{key}': {e}")
