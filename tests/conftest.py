"""Shared fixtures for tubeshelf tests."""

import asyncio
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from tubeshelf.config import Settings
from tubeshelf.library import LibraryStore
from tubeshelf.models import VideoRef
from tubeshelf.storage.adapter import DurableStore
from tubeshelf.storage.backend import MemoryBackend


class FlakyBackend(MemoryBackend):
    """MemoryBackend whose writes and removals can be made to fail or stall."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_keys: set[str] = set()  # set()/remove() fail for these keys
        self.fail_reads = False
        self.fail_remove_many_after: int | None = None  # remove this many keys, then fail
        self.yield_on_write = False  # suspend inside set() like a real backend
        self.gate: asyncio.Event | None = None  # set() blocks until the event is set

    async def get(self, key):
        if self.fail_reads:
            raise OSError("disk unreadable")
        return await super().get(key)

    async def set(self, key, value):
        if self.yield_on_write:
            await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if key in self.fail_keys:
            raise OSError(f"disk full writing {key}")
        await super().set(key, value)

    async def remove(self, key):
        if key in self.fail_keys:
            raise OSError(f"cannot remove {key}")
        await super().remove(key)

    async def remove_many(self, keys):
        keys = list(keys)
        if self.fail_remove_many_after is not None:
            for key in keys[: self.fail_remove_many_after]:
                await super().remove(key)
            raise OSError("storage went away mid-clear")
        await super().remove_many(keys)


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the user's real data directory."""
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def backend():
    return FlakyBackend()


@pytest.fixture
def durable(backend):
    return DurableStore(backend)


@pytest_asyncio.fixture
async def library(durable, test_settings):
    """Loaded LibraryStore over an empty in-memory backend."""
    store = LibraryStore(durable, test_settings)
    await store.load()
    return store


@pytest.fixture
def sample_ref():
    """Pre-built VideoRef with every optional field populated."""
    return VideoRef(
        video_id="dQw4w9WgXcQ",
        title="Never Gonna Give You Up",
        thumbnail_url="https://img.youtube.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
        channel_name="Rick Astley",
        duration="3:33",
        views="1,500,000,000",
        added_at=datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest_asyncio.fixture
async def slow_library(backend, durable, test_settings):
    """Loaded LibraryStore whose writes suspend before landing."""
    backend.yield_on_write = True
    store = LibraryStore(durable, test_settings)
    await store.load()
    return store
