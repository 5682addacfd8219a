"""TTL cache for hotel detail lookups, invalidated by hotel writes."""
from __future__ import annotations

from typing import Callable, Generic, Hashable, Optional, TypeVar

from cachetools import TTLCache

T = TypeVar("T")


class ReadThroughCache(Generic[T]):
    def __init__(self, ttl: int, maxsize: int = 512) -> None:
        self._cache: TTLCache[Hashable, T] = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, key: Hashable) -> Optional[T]:
        return self._cache.get(key)

    def get_or_load(self, key: Hashable, loader: Callable[[], Optional[T]]) -> Optional[T]:
        """Return the cached value, or call ``loader`` and cache a non-None result."""
        value = self._cache.get(key)
        if value is None:
            value = loader()
            if value is not None:
                self._cache[key] = value
        return value

    def invalidate(self, key: Hashable) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
