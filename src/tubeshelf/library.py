"""Library store — playlists, favorites, watch later, history and the video cache."""

import asyncio
import logging
import random
import time
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from tubeshelf.config import Settings, settings
from tubeshelf.models import HistoryItem, LibraryState, Playlist, VideoRef, utc_now
from tubeshelf.storage.adapter import DurableStore, StorageWriteError

logger = logging.getLogger(__name__)

PLAYLISTS = "playlists"
FAVORITES = "favorites"
WATCH_LATER = "watch_later"
HISTORY = "history"
VIDEOS = "videos"
SEARCH_HISTORY = "search_history"

COLLECTIONS = (PLAYLISTS, FAVORITES, WATCH_LATER, HISTORY, VIDEOS, SEARCH_HISTORY)

_ADAPTERS: dict[str, TypeAdapter] = {
    PLAYLISTS: TypeAdapter(tuple[Playlist, ...]),
    FAVORITES: TypeAdapter(tuple[str, ...]),
    WATCH_LATER: TypeAdapter(tuple[str, ...]),
    HISTORY: TypeAdapter(tuple[HistoryItem, ...]),
    VIDEOS: TypeAdapter(dict[str, VideoRef]),
    SEARCH_HISTORY: TypeAdapter(tuple[str, ...]),
}


def _empty(name: str) -> Any:
    return {} if name == VIDEOS else ()


def generate_id() -> str:
    """Millisecond timestamp plus a random suffix, e.g. ``1718000000000-3f9a0c1b2``."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def _later(previous: datetime | None) -> datetime:
    """Current time, never earlier than previous."""
    now = utc_now()
    if previous is not None and previous > now:
        return previous
    return now


class LibraryStore:
    """Owns every library collection and keeps it in step with durable storage.

    Each mutation computes the next value of one collection from the
    current snapshot, writes it through the DurableStore, and only then
    swaps the snapshot in. A failed write raises StorageWriteError and
    leaves memory untouched, so memory never holds unpersisted state.

    Mutations of the same collection are serialized with a per-collection
    lock. Operations that touch two collections (e.g. a favorite plus its
    cached VideoRef) commit them one after the other and are not atomic.
    """

    def __init__(self, store: DurableStore, config: Settings | None = None) -> None:
        self._store = store
        self._settings = config or settings
        self._keys = {name: f"{self._settings.key_prefix}{name}" for name in COLLECTIONS}
        self._data: dict[str, Any] = {name: _empty(name) for name in COLLECTIONS}
        self._locks = {name: asyncio.Lock() for name in COLLECTIONS}
        self._loaded = False

    # ------------------------------------------------------------------
    # Lifecycle

    async def load(self) -> None:
        """Load all collections concurrently.

        A collection that is missing, unreadable or fails validation
        starts empty; no single failure aborts the load. Waits for any
        in-flight mutation so a committed value is never replaced by an
        older read.
        """
        async with self._all_locks():
            values = await asyncio.gather(*(self._load(name) for name in COLLECTIONS))
            self._data = dict(zip(COLLECTIONS, values))
            self._loaded = True
        logger.info(
            "Library loaded: %d playlist(s), %d favorite(s), %d history item(s), %d cached video(s)",
            len(self.playlists), len(self.favorites), len(self.history), len(self.videos),
        )

    async def _load(self, name: str) -> Any:
        raw = await self._store.read(self._keys[name], None)
        if raw is None:
            return _empty(name)
        try:
            return _ADAPTERS[name].validate_python(raw)
        except ValidationError as e:
            logger.warning("Discarding invalid %s data: %s", name, e)
            return _empty(name)

    async def close(self) -> None:
        await self._store.close()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def keys(self) -> dict[str, str]:
        """Durable key used for each collection."""
        return dict(self._keys)

    @asynccontextmanager
    async def _all_locks(self) -> AsyncIterator[None]:
        """Hold every collection lock, always taken in COLLECTIONS order."""
        async with AsyncExitStack() as stack:
            for name in COLLECTIONS:
                await stack.enter_async_context(self._locks[name])
            yield

    async def _commit(self, name: str, value: Any) -> None:
        """Write value through to storage, then swap it in. Caller holds the lock."""
        payload = _ADAPTERS[name].dump_python(value, mode="json")
        await self._store.write(self._keys[name], payload)
        self._data[name] = value

    # ------------------------------------------------------------------
    # Snapshots

    @property
    def state(self) -> LibraryState:
        return LibraryState(
            playlists=self.playlists,
            favorites=self.favorites,
            watch_later=self.watch_later,
            history=self.history,
            videos=self.videos,
            search_history=self.search_history,
        )

    @property
    def playlists(self) -> tuple[Playlist, ...]:
        return self._data[PLAYLISTS]

    @property
    def favorites(self) -> tuple[str, ...]:
        return self._data[FAVORITES]

    @property
    def watch_later(self) -> tuple[str, ...]:
        return self._data[WATCH_LATER]

    @property
    def history(self) -> tuple[HistoryItem, ...]:
        return self._data[HISTORY]

    @property
    def videos(self) -> dict[str, VideoRef]:
        return dict(self._data[VIDEOS])

    @property
    def search_history(self) -> tuple[str, ...]:
        return self._data[SEARCH_HISTORY]

    # ------------------------------------------------------------------
    # Playlists

    def get_playlist(self, playlist_id: str) -> Playlist | None:
        return next((p for p in self.playlists if p.id == playlist_id), None)

    async def create_playlist(self, name: str) -> Playlist:
        """Create an empty playlist and append it to the collection.

        Raises:
            StorageWriteError: If the playlists cannot be persisted.
        """
        now = utc_now()
        playlist = Playlist(id=generate_id(), name=name, created_at=now, updated_at=now)
        async with self._locks[PLAYLISTS]:
            await self._commit(PLAYLISTS, (*self.playlists, playlist))
        logger.info("Playlist created: %s — %s", playlist.id, name)
        return playlist

    async def delete_playlist(self, playlist_id: str) -> None:
        """Delete a playlist. No-op if playlist_id does not exist."""
        async with self._locks[PLAYLISTS]:
            remaining = tuple(p for p in self.playlists if p.id != playlist_id)
            if len(remaining) == len(self.playlists):
                return
            await self._commit(PLAYLISTS, remaining)
        logger.info("Playlist deleted: %s", playlist_id)

    async def rename_playlist(self, playlist_id: str, new_name: str) -> None:
        """Rename a playlist. No-op if playlist_id does not exist."""
        await self._update_playlist(
            playlist_id,
            lambda p: p.model_copy(update={"name": new_name, "updated_at": _later(p.updated_at)}),
        )

    async def add_video_to_playlist(self, playlist_id: str, video_id: str, title: str) -> None:
        """Append a video to a playlist unless it is already there.

        Also caches a VideoRef for the video when none exists yet.

        Args:
            playlist_id: Target playlist.
            video_id: YouTube video ID.
            title: Video title, used only for the cache entry.

        Raises:
            StorageWriteError: If either the playlist or the cache write fails.
        """

        def append(p: Playlist) -> Playlist:
            if video_id in p.video_ids:
                return p
            return p.model_copy(update={
                "video_ids": (*p.video_ids, video_id),
                "updated_at": _later(p.updated_at),
            })

        await self._update_playlist(playlist_id, append)
        await self._cache_if_absent(video_id, title)

    async def remove_video_from_playlist(self, playlist_id: str, video_id: str) -> None:
        """Remove a video from a playlist. No-op if either is absent."""

        def drop(p: Playlist) -> Playlist:
            if video_id not in p.video_ids:
                return p
            return p.model_copy(update={
                "video_ids": tuple(v for v in p.video_ids if v != video_id),
                "updated_at": _later(p.updated_at),
            })

        await self._update_playlist(playlist_id, drop)

    async def _update_playlist(self, playlist_id: str, change: Callable[[Playlist], Playlist]) -> None:
        async with self._locks[PLAYLISTS]:
            playlists = list(self.playlists)
            for i, playlist in enumerate(playlists):
                if playlist.id == playlist_id:
                    break
            else:
                logger.debug("Playlist not found: %s", playlist_id)
                return

            updated = change(playlist)
            if updated is playlist:
                return
            playlists[i] = updated
            await self._commit(PLAYLISTS, tuple(playlists))

    # ------------------------------------------------------------------
    # Favorites and watch later

    def is_favorite(self, video_id: str) -> bool:
        return video_id in self.favorites

    def is_in_watch_later(self, video_id: str) -> bool:
        return video_id in self.watch_later

    async def toggle_favorite(self, video_id: str, title: str) -> bool:
        """Add the video to favorites, or remove it if already there.

        Returns:
            True if the video is a favorite after the call.
        """
        return await self._toggle(FAVORITES, video_id, title)

    async def toggle_watch_later(self, video_id: str, title: str) -> bool:
        """Add the video to the watch-later queue, or remove it if queued.

        Returns:
            True if the video is queued after the call.
        """
        return await self._toggle(WATCH_LATER, video_id, title)

    async def _toggle(self, name: str, video_id: str, title: str) -> bool:
        async with self._locks[name]:
            current: tuple[str, ...] = self._data[name]
            present = video_id in current
            if present:
                updated = tuple(v for v in current if v != video_id)
            else:
                updated = (*current, video_id)
            await self._commit(name, updated)
        logger.debug("%s %s: %s", "Removed from" if present else "Added to", name, video_id)

        await self._cache_if_absent(video_id, title)
        return not present

    # ------------------------------------------------------------------
    # Playback history

    async def add_to_history(self, video_id: str) -> None:
        """Record a play, moving the video to the front of the history.

        History keeps at most one entry per video and is truncated to
        the configured limit. The cached VideoRef, if any, gets its
        last_played_at refreshed.
        """
        async with self._locks[HISTORY]:
            previous = next((h.played_at for h in self.history if h.video_id == video_id), None)
            updated = (
                HistoryItem(video_id=video_id, played_at=_later(previous)),
                *(h for h in self.history if h.video_id != video_id),
            )[: self._settings.history_limit]
            await self._commit(HISTORY, updated)

        async with self._locks[VIDEOS]:
            ref = self._data[VIDEOS].get(video_id)
            if ref is None:
                return
            refreshed = ref.model_copy(update={"last_played_at": _later(ref.last_played_at)})
            await self._commit(VIDEOS, {**self._data[VIDEOS], video_id: refreshed})

    async def clear_history(self) -> None:
        async with self._locks[HISTORY]:
            await self._commit(HISTORY, ())
        logger.info("History cleared")

    # ------------------------------------------------------------------
    # Search history

    async def add_to_search_history(self, keyword: str) -> None:
        """Record a search keyword at the front of the search history.

        Blank input is ignored. Matching is case-insensitive and the
        latest spelling replaces any earlier one.
        """
        keyword = keyword.strip()
        if not keyword:
            return
        folded = keyword.casefold()
        async with self._locks[SEARCH_HISTORY]:
            updated = (
                keyword,
                *(k for k in self.search_history if k.casefold() != folded),
            )[: self._settings.search_history_limit]
            await self._commit(SEARCH_HISTORY, updated)

    def get_random_search_keywords(self, count: int) -> list[str]:
        """Random sample of past keywords, without replacement."""
        keywords = self.search_history
        if count <= 0 or not keywords:
            return []
        return random.sample(keywords, min(count, len(keywords)))

    # ------------------------------------------------------------------
    # Video metadata cache

    def get_video(self, video_id: str) -> VideoRef | None:
        return self._data[VIDEOS].get(video_id)

    async def cache_video(self, ref: VideoRef) -> None:
        """Insert or fully replace the cache entry for ref.video_id."""
        async with self._locks[VIDEOS]:
            await self._commit(VIDEOS, {**self._data[VIDEOS], ref.video_id: ref})

    async def _cache_if_absent(self, video_id: str, title: str) -> None:
        async with self._locks[VIDEOS]:
            if video_id in self._data[VIDEOS]:
                return
            ref = VideoRef.from_title(video_id, title, self._settings.thumbnail_quality)
            await self._commit(VIDEOS, {**self._data[VIDEOS], video_id: ref})

    # ------------------------------------------------------------------
    # Bulk

    async def clear_all_data(self) -> None:
        """Erase every collection from storage and memory.

        Irreversible. Storage is not atomic across keys: if only some keys
        are erased, the matching collections are reset, the others keep
        their contents, and the failure is raised.

        Raises:
            StorageWriteError: With ``keys`` listing the keys left behind.
        """
        async with self._all_locks():
            try:
                await self._store.erase_all(self._keys.values())
            except StorageWriteError as e:
                left = set(e.keys)
                for name in COLLECTIONS:
                    if self._keys[name] not in left:
                        self._data[name] = _empty(name)
                raise

            for name in COLLECTIONS:
                self._data[name] = _empty(name)
        logger.info("All library data cleared")
