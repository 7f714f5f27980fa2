"""Typed JSON read/write over a key-value backend."""

import json
import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from tubeshelf.storage.backend import KeyValueBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageError(Exception):
    """Base class for durable storage failures."""


class StorageReadError(StorageError):
    """Raised when a stored value cannot be read or decoded."""


class StorageWriteError(StorageError):
    """Raised when a value cannot be written to or removed from storage.

    Attributes:
        keys: Keys whose durable state may not match the requested change.
    """

    def __init__(self, message: str, keys: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.keys = tuple(keys)


class DurableStore:
    """Generic JSON serialization over a KeyValueBackend.

    Knows nothing about library collections — only keys and values.
    Reads never fail outward: a missing, unreadable or corrupt entry
    yields the caller's fallback. Writes and removals raise
    StorageWriteError so callers can abort their mutation.
    """

    def __init__(self, backend: KeyValueBackend) -> None:
        self._backend = backend

    async def write(self, key: str, value: Any) -> None:
        """Serialize value as JSON and store it under key.

        Raises:
            StorageWriteError: If serialization or the backend write fails.
        """
        try:
            payload = json.dumps(value, ensure_ascii=False)
            await self._backend.set(key, payload)
        except Exception as e:
            logger.error("Error saving data for key %s: %s", key, e)
            raise StorageWriteError(f"Failed to write {key}: {e}", keys=[key]) from e

    async def read(self, key: str, fallback: T) -> T:
        """Load and decode the value under key, or return fallback."""
        try:
            return await self._read(key, fallback)
        except StorageReadError as e:
            logger.warning("Error reading data for key %s: %s", key, e)
            return fallback

    async def _read(self, key: str, fallback: T) -> T:
        try:
            payload = await self._backend.get(key)
        except Exception as e:
            raise StorageReadError(str(e)) from e
        if payload is None:
            return fallback
        try:
            return json.loads(payload)
        except (json.JSONDecodeError, TypeError) as e:
            raise StorageReadError(f"Malformed JSON: {e}") from e

    async def erase(self, key: str) -> None:
        """Remove key from storage.

        Raises:
            StorageWriteError: If the backend removal fails.
        """
        try:
            await self._backend.remove(key)
        except Exception as e:
            logger.error("Error removing data for key %s: %s", key, e)
            raise StorageWriteError(f"Failed to remove {key}: {e}", keys=[key]) from e

    async def erase_all(self, keys: Iterable[str]) -> None:
        """Remove several keys.

        The backend is not atomic across keys, so on failure every key is
        probed and those that may still be present are reported.

        Raises:
            StorageWriteError: With ``keys`` set to the keys not confirmed erased.
        """
        keys = list(keys)
        try:
            await self._backend.remove_many(keys)
        except Exception as e:
            remaining = await self._surviving(keys)
            logger.error("Error clearing %d key(s), %d remain: %s", len(keys), len(remaining), e)
            raise StorageWriteError(
                f"Failed to clear {len(remaining)} of {len(keys)} key(s): {e}",
                keys=remaining,
            ) from e

    async def _surviving(self, keys: list[str]) -> list[str]:
        """Keys still present, or whose presence cannot be checked."""
        remaining = []
        for key in keys:
            try:
                present = await self._backend.get(key) is not None
            except Exception:
                present = True
            if present:
                remaining.append(key)
        return remaining

    async def close(self) -> None:
        await self._backend.close()
