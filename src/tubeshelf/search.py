"""Remote video search — provider interface and yt-dlp implementation."""

import asyncio
import logging
from abc import ABC, abstractmethod

import yt_dlp

from tubeshelf.config import settings
from tubeshelf.format import format_duration, format_number
from tubeshelf.models import VideoDetail, VideoSearchResult
from tubeshelf.youtube import thumbnail_url, watch_url

logger = logging.getLogger(__name__)


class SearchProvider(ABC):
    """Abstract source of YouTube search results and video details.

    Implementations fail soft: network or parsing problems produce an
    empty result list or None, never an exception.
    """

    @abstractmethod
    async def search_videos(self, query: str, limit: int | None = None) -> list[VideoSearchResult]:
        """Search for videos by query."""

    @abstractmethod
    async def get_video_details(self, video_id: str) -> VideoDetail | None:
        """Fetch details for a single video, or None if unavailable."""


class YtDlpSearchProvider(SearchProvider):
    """Searches YouTube through yt-dlp (no API key needed).

    Search uses flat extraction of a ``ytsearchN:`` query so only
    listing metadata is fetched. yt-dlp is blocking, so calls run in
    a worker thread.
    """

    _YDL_OPTS = {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
    }

    def __init__(self, default_limit: int | None = None) -> None:
        self._default_limit = default_limit or settings.search_limit

    async def search_videos(self, query: str, limit: int | None = None) -> list[VideoSearchResult]:
        if limit is None:
            limit = self._default_limit
        query = query.strip()
        if not query or limit <= 0:
            return []
        try:
            entries = await asyncio.to_thread(self._search, query, limit)
            results = self._to_results(entries)
        except yt_dlp.utils.DownloadError as e:
            logger.warning("YouTube search failed: %s", e)
            return []
        except Exception as e:
            logger.error("Unexpected error searching for %r: %s", query, e)
            return []

        logger.info("Found %d video(s) for %r", len(results), query)
        return results[:limit]

    async def get_video_details(self, video_id: str) -> VideoDetail | None:
        try:
            info = await asyncio.to_thread(self._fetch_info, watch_url(video_id))
            if not info:
                return None
            base = self._to_result(info)
            return VideoDetail(
                **base.model_dump(exclude={"url"}),
                description=info.get("description") or None,
                channel_id=info.get("channel_id") or None,
            )
        except yt_dlp.utils.DownloadError as e:
            logger.warning("Failed to fetch details for %s: %s", video_id, e)
            return None
        except Exception as e:
            logger.error("Unexpected error fetching details for %s: %s", video_id, e)
            return None

    def _search(self, query: str, limit: int) -> list[dict]:
        opts = {**self._YDL_OPTS, "extract_flat": True}
        with yt_dlp.YoutubeDL(opts) as ydl:
            info = ydl.extract_info(f"ytsearch{limit}:{query}", download=False)
        if not info or "entries" not in info:
            return []
        return list(info["entries"])

    def _fetch_info(self, url: str) -> dict | None:
        with yt_dlp.YoutubeDL(self._YDL_OPTS) as ydl:
            return ydl.extract_info(url, download=False)

    @classmethod
    def _to_results(cls, entries: list[dict]) -> list[VideoSearchResult]:
        """Map search entries to results, skipping any that cannot be parsed."""
        results = []
        for entry in entries:
            if not entry or not entry.get("id"):
                continue
            try:
                results.append(cls._to_result(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed search entry %s: %s", entry.get("id"), e)
        return results

    @classmethod
    def _to_result(cls, entry: dict) -> VideoSearchResult:
        video_id = entry["id"]
        duration = entry.get("duration")
        views = entry.get("view_count")
        return VideoSearchResult(
            video_id=video_id,
            title=entry.get("title") or "",
            channel_name=entry.get("channel") or entry.get("uploader") or "",
            thumbnail_url=cls._best_thumbnail(entry) or thumbnail_url(video_id, settings.thumbnail_quality),
            duration=format_duration(int(duration)) if duration else None,
            views=format_number(views) if views is not None else None,
            published_at=entry.get("upload_date") or None,
        )

    @staticmethod
    def _best_thumbnail(entry: dict) -> str:
        """Widest thumbnail URL, with protocol-relative URLs fixed up."""
        candidates = [t for t in entry.get("thumbnails") or [] if t and t.get("url") and t.get("width")]
        if candidates:
            url = max(candidates, key=lambda t: t["width"])["url"]
        else:
            url = entry.get("thumbnail") or ""
        if url.startswith("//"):
            url = "https:" + url
        return url
