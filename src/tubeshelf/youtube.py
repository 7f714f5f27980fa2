"""Pure YouTube URL helpers — no network access."""

import re
from urllib.parse import parse_qs, urlencode, urlparse

_VIDEO_ID = re.compile(r"^[\w-]{11}$")

_URL_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?.*v=)([\w-]{11})"),
    re.compile(r"(?:youtu\.be/)([\w-]{11})"),
    re.compile(r"(?:youtube\.com/shorts/)([\w-]{11})"),
    re.compile(r"(?:youtube\.com/embed/)([\w-]{11})"),
]

THUMBNAIL_QUALITIES = {
    "default": "default",
    "hq": "hqdefault",
    "mq": "mqdefault",
    "sd": "sddefault",
    "maxres": "maxresdefault",
}


def is_valid_video_id(value: str) -> bool:
    """Check whether a string looks like an 11-character YouTube video ID."""
    return bool(_VIDEO_ID.match(value))


def extract_video_id(url_or_id: str) -> str | None:
    """Extract the video ID from a bare ID or any common YouTube URL.

    Supports youtube.com/watch, youtu.be, /shorts/ and /embed/ formats.
    Returns None when nothing matches.
    """
    url_or_id = url_or_id.strip()
    if is_valid_video_id(url_or_id):
        return url_or_id

    for pattern in _URL_PATTERNS:
        match = pattern.search(url_or_id)
        if match:
            return match.group(1)

    # Fallback: query parameter parsing
    video_id = parse_qs(urlparse(url_or_id).query).get("v", [None])[0]
    if video_id and is_valid_video_id(video_id):
        return video_id
    return None


def thumbnail_url(video_id: str, quality: str = "hq") -> str:
    """Build the static thumbnail URL for a video.

    Args:
        video_id: YouTube video ID.
        quality: One of default, hq, mq, sd, maxres.

    Raises:
        ValueError: If the quality tier is unknown.
    """
    try:
        name = THUMBNAIL_QUALITIES[quality]
    except KeyError:
        raise ValueError(
            f"Unknown thumbnail quality: {quality!r}. "
            f"Expected one of: {', '.join(THUMBNAIL_QUALITIES)}"
        ) from None
    return f"https://img.youtube.com/vi/{video_id}/{name}.jpg"


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def embed_url(video_id: str, autoplay: bool = False) -> str:
    """Build an iframe embed URL with related videos and branding minimised."""
    params = {"rel": "0", "modestbranding": "1"}
    if autoplay:
        params["autoplay"] = "1"
    return f"https://www.youtube.com/embed/{video_id}?{urlencode(params)}"
