"""Display formatting for view counts and durations."""

import re

_ISO_DURATION = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def format_number(value: str | int) -> str:
    """Format a count with thousands separators.

    Strings that already look formatted ("1,234", "1.2M views") are
    returned unchanged, as is anything that does not parse.
    """
    if isinstance(value, str):
        if "," in value or re.search(r"[a-zA-Z]", value):
            return value
        try:
            value = int(value.strip())
        except ValueError:
            return value
    return f"{value:,}"


def format_duration(value: str | int | None) -> str | None:
    """Render a duration as ``H:MM:SS`` or ``M:SS``.

    Accepts seconds (int or numeric string) or ISO-8601 durations such
    as ``PT1H2M30S``. Text already containing a colon passes through;
    unparseable text is returned as-is and empty input gives None.
    """
    if not value:
        return None

    if isinstance(value, str):
        if ":" in value:
            return value
        if value.strip().isdigit():
            total = int(value)
        else:
            match = _ISO_DURATION.match(value.strip())
            if not match or not any(match.groups()):
                return value
            hours, minutes, seconds = (int(g or 0) for g in match.groups())
            total = hours * 3600 + minutes * 60 + seconds
    else:
        total = int(value)

    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"
