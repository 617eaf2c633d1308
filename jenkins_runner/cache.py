from abc import ABC, abstractmethod
from typing import Any, Optional


class CacheProvider(ABC):
    """Base class for cache providers that defines the contract for all cache implementations."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Set a value in the cache."""
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> None:
        """Drop every value whose key starts with ``prefix``."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Clear all values from the cache."""
        pass


class InMemoryCacheProvider(CacheProvider):
    def __init__(self, storage: dict[str, Any] | None = None) -> None:
        self._storage = storage if storage is not None else {}

    async def get(self, key: str) -> Optional[Any]:
        return self._storage.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._storage[key] = value

    async def delete_prefix(self, prefix: str) -> None:
        for key in [key for key in self._storage if key.startswith(prefix)]:
            del self._storage[key]

    async def clear(self) -> None:
        self._storage.clear()
