from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class Video:
    id: str
    title: str
    description: str
    thumbnail_url: str
    channel_name: str
    channel_id: str
    published_at: str
    view_count: str | None = None
    like_count: str | None = None
    duration: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


def video_from_payload(payload: dict[str, Any]) -> Video:
    """Build a Video from an API payload, tolerating missing optional fields."""
    video_id = payload.get("id")
    if not isinstance(video_id, str) or not video_id.strip():
        raise ValueError("video payload is missing an id")
    return Video(
        id=video_id,
        title=_text(payload.get("title")),
        description=_text(payload.get("description")),
        thumbnail_url=_text(payload.get("thumbnail_url")),
        channel_name=_text(payload.get("channel_name")),
        channel_id=_text(payload.get("channel_id")),
        published_at=_text(payload.get("published_at")),
        view_count=_optional_text(payload.get("view_count")),
        like_count=_optional_text(payload.get("like_count")),
        duration=_optional_text(payload.get("duration")),
    )


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


def _optional_text(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None
