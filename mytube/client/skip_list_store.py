from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, TypeVar

from mytube.client.background import BackgroundWriter
from mytube.client.backends import SkipListBackend, SkipListEntry

LOGGER = logging.getLogger("mytube.client.skip_list")


class _HasId(Protocol):
    @property
    def id(self) -> str: ...


VideoT = TypeVar("VideoT", bound=_HasId)


class SkipListStore:
    """Permanent set of excluded video ids with optimistic updates."""

    def __init__(
        self,
        backend: SkipListBackend,
        *,
        writer: BackgroundWriter,
        fallback: SkipListBackend | None = None,
    ) -> None:
        self._backend = backend
        self._writer = writer
        self._fallback = fallback
        self._entries: dict[str, SkipListEntry] = {}

    @property
    def video_ids(self) -> list[str]:
        return list(self._entries)

    @property
    def entries(self) -> list[SkipListEntry]:
        return list(self._entries.values())

    async def load(self) -> set[str]:
        entries = await self._load_with_fallback()
        self._entries = {entry.video_id: entry for entry in entries}
        return set(self._entries)

    def add(
        self,
        video_id: str,
        title: str | None = None,
        channel_name: str | None = None,
    ) -> bool:
        """Skip a video. Returns False when it was already on the list or blank."""
        video_id = video_id.strip()
        if not video_id:
            return False
        if video_id in self._entries:
            LOGGER.debug("skip ignored, already present video_id=%s", video_id)
            return False
        self._entries[video_id] = SkipListEntry(
            video_id=video_id,
            video_title=title,
            channel_name=channel_name,
        )

        backend = self._backend
        self._writer.fire("skip_list.add", lambda: backend.add(video_id, title, channel_name))
        return True

    def remove(self, video_id: str) -> None:
        video_id = video_id.strip()
        self._entries.pop(video_id, None)

        backend = self._backend
        self._writer.fire("skip_list.remove", lambda: backend.remove(video_id))

    def is_skipped(self, video_id: str) -> bool:
        return video_id.strip() in self._entries

    def filter(self, videos: Iterable[VideoT]) -> list[VideoT]:
        return [video for video in videos if video.id not in self._entries]

    async def _load_with_fallback(self) -> list[SkipListEntry]:
        try:
            return await self._backend.load()
        except Exception as exc:
            LOGGER.warning(
                "skip list load failed error_type=%s error=%s",
                type(exc).__name__,
                exc,
            )
        if self._fallback is None:
            return []
        try:
            return await self._fallback.load()
        except Exception as exc:
            LOGGER.warning("skip list fallback load failed error=%s", exc)
            return []
