"""
Grouped key/value cache.

Each named group is its own cachetools cache: least-recently-used eviction,
plus expiry when a time-to-live is configured.
"""
import logging
import threading
from typing import Any

import cachetools

logger = logging.getLogger(__name__)

DEFAULT_GROUP = 'default'


class Cache:
    """Thread-safe cache of named groups.

    >>> cache = Cache()
    >>> cache.set('user:1', {'name': 'Tom'})
    >>> cache.get('user:1')
    {'name': 'Tom'}
    >>> cache.get('user:1', group='sessions') is None
    True
    """

    def __init__(self, maxsize: int = 1024, ttl: float | None = None) -> None:
        """Args:
            maxsize: Maximum entries per group
            ttl: Seconds before an entry expires, or None to keep entries until evicted
        """
        self.maxsize = maxsize
        self.ttl = ttl
        self._caches: dict[str, cachetools.Cache] = {}
        self._lock = threading.RLock()

    def _new_cache(self) -> cachetools.Cache:
        if self.ttl is None:
            return cachetools.LRUCache(maxsize=self.maxsize)
        return cachetools.TTLCache(maxsize=self.maxsize, ttl=self.ttl)

    def _group(self, name: str, create: bool = False) -> cachetools.Cache | None:
        if name not in self._caches and create:
            self._caches[name] = self._new_cache()
        return self._caches.get(name)

    def set(self, key: Any, value: Any, group: str = DEFAULT_GROUP) -> None:
        """Store a value, replacing any previous value for the key.
        """
        with self._lock:
            self._group(group, create=True)[key] = value

    def get(self, key: Any, default: Any = None, group: str = DEFAULT_GROUP) -> Any:
        """Return the cached value, or `default` when missing or expired.
        """
        with self._lock:
            cache = self._group(group)
            if cache is None:
                return default
            return cache.get(key, default)

    def delete(self, key: Any, group: str = DEFAULT_GROUP) -> None:
        with self._lock:
            cache = self._group(group)
            if cache is not None:
                cache.pop(key, None)

    def clear(self, group: str | None = None) -> None:
        """Clear one group, or every group when `group` is None.
        """
        with self._lock:
            if group is None:
                self._caches.clear()
                logger.debug('Cleared all cache groups')
            elif group in self._caches:
                del self._caches[group]
                logger.debug(f'Cleared cache group {group}')

    def groups(self) -> list[str]:
        with self._lock:
            return list(self._caches)

    def __contains__(self, key: Any) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return sum(len(cache) for cache in self._caches.values())


_MISSING = object()


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
