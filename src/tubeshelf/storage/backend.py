"""Abstract key-value backend interface and an in-memory implementation."""

from abc import ABC, abstractmethod
from collections.abc import Iterable


class KeyValueBackend(ABC):
    """Abstract base class defining the durable key-value contract.

    Keys are opaque strings and values are already-serialized text.
    Implementations guarantee atomicity per single key only; nothing
    is promised across keys. The library layer depends on this
    abstraction, never on a concrete engine.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value for key, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove key. No-op if key does not exist."""

    @abstractmethod
    async def remove_many(self, keys: Iterable[str]) -> None:
        """Remove every key in keys. Missing keys are ignored."""

    async def close(self) -> None:
        """Release any held resources."""


class MemoryBackend(KeyValueBackend):
    """Dict-backed storage for tests and throwaway sessions."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
