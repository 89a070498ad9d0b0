from __future__ import annotations

import re
from datetime import UTC, datetime

_ISO_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def format_count(count: str | None) -> str:
    """Compact a numeric string: 1234 -> 1.2K, 2500000 -> 2.5M."""
    if not count:
        return "0"
    try:
        value = int(count)
    except ValueError:
        return "0"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)


def format_duration(duration: str | None) -> str:
    if not duration:
        return ""
    match = _ISO_DURATION_PATTERN.match(duration)
    if match is None:
        return ""
    hours, minutes, seconds = (int(part) if part else 0 for part in match.groups())
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_relative_time(published_at: str, *, now: datetime | None = None) -> str:
    try:
        published = datetime.fromisoformat(published_at.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if published.tzinfo is None:
        published = published.replace(tzinfo=UTC)
    reference = now or datetime.now(UTC)
    seconds = int((reference - published).total_seconds())

    if seconds < 60:
        return "less than a minute ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minutes ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hours ago"
    days = hours // 24
    if days < 7:
        return f"{days} days ago"
    if days < 28:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{max(1, days // 30)} months ago"
    return f"{days // 365} years ago"
