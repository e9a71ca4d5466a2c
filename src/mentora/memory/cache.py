"""In-process TTL cache shadowing the persistence port.

Entries expire lazily on read and eagerly on sweep(). There is no size bound
or LRU eviction; the cache never owns data.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mentora.core.logging import get_logger

logger = get_logger("memory.cache")

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    """Cached value with its creation time and time-to-live."""

    value: Any
    created_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


class TTLCache:
    """Key/value cache with per-entry expiry."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value, replacing any previous entry for key."""
        entry = CacheEntry(
            value=value,
            created_at=self._clock(),
            ttl=ttl if ttl is not None else self.default_ttl,
        )
        self._entries[key] = entry
        logger.debug(f"Cache set: {key} (ttl={entry.ttl}s)")

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss: {key}")
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None

        logger.debug(f"Cache hit: {key}")
        return entry.value

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False

        if entry.is_expired(self._clock()):
            del self._entries[key]
            return False

        return True

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if an entry was present."""
        deleted = self._entries.pop(key, None) is not None
        if deleted:
            logger.debug(f"Cache delete: {key}")
        return deleted

    def delete_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix."""
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        size = len(self._entries)
        self._entries.clear()
        logger.info(f"Cache cleared ({size} entries removed)")

    def sweep(self) -> int:
        """Eagerly remove every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.info(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def stats(self) -> dict[str, Any]:
        """Physical size and keys (may include not-yet-swept expired entries)."""
        return {"size": len(self._entries), "keys": list(self._entries)}

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Any:
        """Return the cached value or compute, cache and return it.

        None results are not cached. Factory errors are logged and re-raised.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        try:
            value = await factory()
        except Exception as e:
            logger.error(f"Cache factory failed for {key}: {e}")
            raise

        if value is not None:
            self.set(key, value, ttl)
        return value
