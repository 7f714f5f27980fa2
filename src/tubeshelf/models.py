"""Domain models for tubeshelf."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from tubeshelf.youtube import thumbnail_url, watch_url


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Playlist(BaseModel):
    """A named, ordered list of videos."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    video_ids: tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("video_ids")
    @classmethod
    def _drop_duplicates(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # First occurrence keeps its position
        return tuple(dict.fromkeys(value))


class HistoryItem(BaseModel):
    """A single playback record."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    played_at: datetime = Field(default_factory=utc_now)


class VideoSearchResult(BaseModel):
    """A video returned by the remote search provider."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    title: str
    channel_name: str = ""
    thumbnail_url: str = ""
    duration: str | None = None  # display text, e.g. "3:45"
    views: str | None = None
    published_at: str | None = None  # relative text, e.g. "2 years ago"

    @computed_field
    @property
    def url(self) -> str:
        """Full YouTube URL derived from video_id."""
        return watch_url(self.video_id)


class VideoDetail(VideoSearchResult):
    """Search result enriched with per-video details."""

    description: str | None = None
    channel_id: str | None = None


class VideoRef(BaseModel):
    """Cached metadata for a video referenced anywhere in the library."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    title: str
    thumbnail_url: str
    channel_name: str | None = None
    duration: str | None = None
    views: str | None = None
    added_at: datetime = Field(default_factory=utc_now)
    last_played_at: datetime | None = None

    @classmethod
    def from_title(cls, video_id: str, title: str, quality: str = "hq") -> "VideoRef":
        """Minimal cache entry with a derived thumbnail."""
        return cls(video_id=video_id, title=title, thumbnail_url=thumbnail_url(video_id, quality))

    @classmethod
    def from_search_result(cls, result: VideoSearchResult) -> "VideoRef":
        return cls(
            video_id=result.video_id,
            title=result.title,
            thumbnail_url=result.thumbnail_url or thumbnail_url(result.video_id),
            channel_name=result.channel_name or None,
            duration=result.duration,
            views=result.views,
        )


class LibraryState(BaseModel):
    """Read-only snapshot of every library collection."""

    model_config = ConfigDict(frozen=True)

    playlists: tuple[Playlist, ...] = ()
    favorites: tuple[str, ...] = ()
    watch_later: tuple[str, ...] = ()
    history: tuple[HistoryItem, ...] = ()
    videos: dict[str, VideoRef] = Field(default_factory=dict)
    search_history: tuple[str, ...] = ()
