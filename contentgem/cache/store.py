"""Key-value cache abstraction + in-memory TTL implementation."""

import time
from abc import ABC, abstractmethod
from typing import Any


class CacheStore(ABC):
    """Abstract base for TTL-bounded key-value storage.

    Values are plain JSON-compatible dicts. Writes replace the whole entry.
    """

    @abstractmethod
    async def get(self, key: str) -> dict | None:
        """Return the stored value, or None when missing or expired."""
        ...

    @abstractmethod
    async def set(self, key: str, value: dict, ttl: int) -> None:
        """Store `value` under `key` for `ttl` seconds."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove `key`. Missing keys are ignored."""
        ...


class MemoryCacheStore(CacheStore):
    """Process-local store. Expired entries are dropped on read."""

    def __init__(self):
        self._entries: dict[str, tuple[dict, float]] = {}

    async def get(self, key: str) -> dict | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return dict(value)

    async def set(self, key: str, value: dict, ttl: int) -> None:
        self._entries[key] = (dict(value), time.monotonic() + ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        return key in self._entries
