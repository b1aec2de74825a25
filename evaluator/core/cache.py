"""
TTL cache over a local key/value storage

Entries are stored as JSON strings:
    {"data": <payload>, "timestamp": <write time>, "expires": <write time + ttl>}

Rules:
  - An entry is logically absent once now > expires. Expired entries stay in
    storage so the loader can still fall back to them when a fetch fails.
  - An entry that cannot be parsed is removed on read and reported as a miss.
  - When storage rejects a write, the oldest entries (by write timestamp) are
    evicted and the write is retried exactly once. Eviction only runs when more
    than `soft_ceiling` entries exist and is triggered by writes, not reads,
    so this is not an LRU.
  - While force refresh is on, every lookup misses.
"""
import json
import logging
import time
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from evaluator.core.storage import KeyValueStorage, StorageFullError

logger = logging.getLogger(__name__)


DEFAULT_PREFIX = "smart_evaluator_"
DEFAULT_TTL = 5 * 60          # seconds
SOFT_CEILING = 50             # entries
EVICT_COUNT = 10              # entries removed per eviction pass
FORCE_REFRESH_SECONDS = 1.0


class CacheLookup(NamedTuple):
    """Outcome of a cache read: `hit` is False for absent, expired or corrupt entries"""
    hit: bool
    data: Any = None
    expired: bool = False


MISS = CacheLookup(hit=False)


class TTLCache:
    """Namespaced TTL cache with write-triggered oldest-first eviction"""

    def __init__(
        self,
        storage: KeyValueStorage,
        prefix: str = DEFAULT_PREFIX,
        ttl: float = DEFAULT_TTL,
        soft_ceiling: int = SOFT_CEILING,
        evict_count: int = EVICT_COUNT,
        force_refresh_seconds: float = FORCE_REFRESH_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.prefix = prefix
        self.ttl = ttl
        self.soft_ceiling = soft_ceiling
        self.evict_count = evict_count
        self.force_refresh_seconds = force_refresh_seconds
        self.clock = clock
        self._force_refresh = False
        self._force_refresh_until: Optional[float] = None

    # ==================== FORCE REFRESH ====================

    @property
    def force_refresh(self) -> bool:
        if not self._force_refresh:
            return False
        if self._force_refresh_until is not None and self.clock() >= self._force_refresh_until:
            self.end_force_refresh()
            return False
        return True

    @force_refresh.setter
    def force_refresh(self, value: bool) -> None:
        if value:
            self.begin_force_refresh(None)
        else:
            self.end_force_refresh()

    def begin_force_refresh(self, seconds: Optional[float] = -1) -> None:
        """
        Make every lookup miss until end_force_refresh() or until `seconds` pass

        Args:
            seconds: Auto-reset delay. -1 uses the configured default,
                     None keeps the mode on until it is ended explicitly.
        """
        if seconds == -1:
            seconds = self.force_refresh_seconds
        self._force_refresh = True
        self._force_refresh_until = self.clock() + seconds if seconds is not None else None
        logger.info("🔄 Cache force refresh enabled")

    def end_force_refresh(self) -> None:
        self._force_refresh = False
        self._force_refresh_until = None

    # ==================== READ / WRITE ====================

    def _full_key(self, key: str) -> str:
        return self.prefix + key

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> bool:
        """
        Write an entry

        Args:
            key: Cache key (without namespace prefix)
            data: JSON-serialisable payload
            ttl: Lifetime in seconds (default: cache TTL)

        Returns:
            True if stored, False if storage stayed full after one eviction pass
        """
        now = self.clock()
        raw = json.dumps({
            "data": data,
            "timestamp": now,
            "expires": now + (ttl if ttl is not None else self.ttl),
        })
        full_key = self._full_key(key)

        try:
            self.storage.set_item(full_key, raw)
            return True
        except StorageFullError:
            evicted = self.evict_oldest()
            logger.warning(f"⚠️ Cache storage full writing '{key}', evicted {evicted} entries")

        try:
            self.storage.set_item(full_key, raw)
            return True
        except StorageFullError:
            logger.warning(f"⚠️ Cache write for '{key}' dropped, storage still full")
            return False

    def _read(self, key: str) -> Optional[Tuple[Any, float, float]]:
        full_key = self._full_key(key)
        raw = self.storage.get_item(full_key)
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            return entry["data"], float(entry["timestamp"]), float(entry["expires"])
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"⚠️ Removing corrupt cache entry '{key}': {e}")
            self.storage.remove_item(full_key)
            return None

    def lookup(self, key: str) -> CacheLookup:
        """Read an entry, honouring expiry and force refresh"""
        if self.force_refresh:
            return MISS
        entry = self._read(key)
        if entry is None:
            return MISS
        data, _, expires = entry
        if self.clock() > expires:
            return CacheLookup(hit=False, expired=True)
        return CacheLookup(hit=True, data=data)

    def get(self, key: str, default: Any = None) -> Any:
        result = self.lookup(key)
        return result.data if result.hit else default

    def peek_stale(self, key: str) -> CacheLookup:
        """Read an entry ignoring expiry and force refresh (fallback reads only)"""
        entry = self._read(key)
        if entry is None:
            return MISS
        data, _, expires = entry
        return CacheLookup(hit=True, data=data, expired=self.clock() > expires)

    # ==================== INVALIDATION ====================

    def clear(self, key: str) -> None:
        self.storage.remove_item(self._full_key(key))

    def clear_all(self) -> int:
        """Remove every entry under this cache's namespace"""
        keys = self.storage.keys(self.prefix)
        for full_key in keys:
            self.storage.remove_item(full_key)
        logger.info(f"🧹 Cleared {len(keys)} cache entries")
        return len(keys)

    def keys(self) -> List[str]:
        return [k[len(self.prefix):] for k in self.storage.keys(self.prefix)]

    def evict_oldest(self) -> int:
        """
        Drop the `evict_count` oldest entries when above the soft ceiling

        Entries whose timestamp cannot be read sort first.

        Returns:
            Number of entries removed
        """
        full_keys = self.storage.keys(self.prefix)
        if len(full_keys) <= self.soft_ceiling:
            return 0

        stamped = []
        for full_key in full_keys:
            try:
                timestamp = float(json.loads(self.storage.get_item(full_key))["timestamp"])
            except (ValueError, TypeError, KeyError):
                timestamp = float("-inf")
            stamped.append((timestamp, full_key))
        stamped.sort(key=lambda item: item[0])

        victims = stamped[:self.evict_count]
        for _, full_key in victims:
            self.storage.remove_item(full_key)
        return len(victims)
