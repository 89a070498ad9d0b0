from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

from mytube.client.api_client import MyTubeApiClient
from mytube.client.local_storage import (
    SEARCH_HISTORY_KEY,
    SKIPPED_VIDEOS_KEY,
    LocalKeyValueStore,
)
from mytube.repositories.search_history_repository import HistoryTier


def _empty_list() -> list[str]:
    return []


@dataclass(frozen=True)
class HistorySnapshot:
    full_history: list[str] = field(default_factory=_empty_list)
    single_history: list[str] = field(default_factory=_empty_list)


@dataclass(frozen=True)
class SkipListEntry:
    video_id: str
    video_title: str | None = None
    channel_name: str | None = None


class HistoryBackend(Protocol):
    @property
    def has_single_tier(self) -> bool: ...

    async def load(self) -> HistorySnapshot: ...

    async def record(
        self,
        query_text: str,
        terms: list[str],
        result_count: int | None,
    ) -> None: ...

    async def remove(self, query_text: str, tier: HistoryTier) -> None: ...

    async def clear(self) -> None: ...


class SkipListBackend(Protocol):
    async def load(self) -> list[SkipListEntry]: ...

    async def add(
        self,
        video_id: str,
        video_title: str | None,
        channel_name: str | None,
    ) -> bool: ...

    async def remove(self, video_id: str) -> None: ...


class RemoteHistoryBackend:
    def __init__(self, api_client: MyTubeApiClient) -> None:
        self._api_client = api_client

    @property
    def has_single_tier(self) -> bool:
        return True

    async def load(self) -> HistorySnapshot:
        full_history, single_history = await self._api_client.get_search_history()
        return HistorySnapshot(full_history=full_history, single_history=single_history)

    async def record(self, query_text: str, terms: list[str], result_count: int | None) -> None:
        await self._api_client.record_search(query_text, terms=terms, result_count=result_count)

    async def remove(self, query_text: str, tier: HistoryTier) -> None:
        await self._api_client.delete_search_history(query_text=query_text, tier=tier.value)

    async def clear(self) -> None:
        await self._api_client.delete_search_history()


class LocalHistoryBackend:
    """Guest history: one capped list of full queries under a fixed key."""

    def __init__(self, storage: LocalKeyValueStore, *, limit: int = 10) -> None:
        self._storage = storage
        self._limit = max(1, limit)
        self._lock = asyncio.Lock()

    @property
    def has_single_tier(self) -> bool:
        return False

    async def load(self) -> HistorySnapshot:
        stored = await asyncio.to_thread(self._storage.get_json_list, SEARCH_HISTORY_KEY)
        return HistorySnapshot(full_history=stored[: self._limit])

    async def record(self, query_text: str, terms: list[str], result_count: int | None) -> None:
        async with self._lock:
            await asyncio.to_thread(self._record_sync, query_text)

    async def remove(self, query_text: str, tier: HistoryTier) -> None:
        if tier is not HistoryTier.FULL:
            return
        async with self._lock:
            await asyncio.to_thread(self._remove_sync, query_text)

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._storage.remove_item, SEARCH_HISTORY_KEY)

    def _record_sync(self, query_text: str) -> None:
        stored = self._storage.get_json_list(SEARCH_HISTORY_KEY)
        updated = move_to_front(stored, query_text, limit=self._limit)
        self._storage.set_json_list(SEARCH_HISTORY_KEY, updated)

    def _remove_sync(self, query_text: str) -> None:
        stored = self._storage.get_json_list(SEARCH_HISTORY_KEY)
        self._storage.set_json_list(
            SEARCH_HISTORY_KEY,
            [item for item in stored if item != query_text],
        )


class RemoteSkipListBackend:
    def __init__(self, api_client: MyTubeApiClient) -> None:
        self._api_client = api_client

    async def load(self) -> list[SkipListEntry]:
        entries: list[SkipListEntry] = []
        for item in await self._api_client.get_skipped_videos():
            video_id = item.get("video_id")
            if not isinstance(video_id, str) or not video_id:
                continue
            entries.append(
                SkipListEntry(
                    video_id=video_id,
                    video_title=_optional_str(item.get("video_title")),
                    channel_name=_optional_str(item.get("channel_name")),
                )
            )
        return entries

    async def add(
        self,
        video_id: str,
        video_title: str | None,
        channel_name: str | None,
    ) -> bool:
        status = await self._api_client.skip_video(
            video_id,
            video_title=video_title,
            channel_name=channel_name,
        )
        return status != "already_present"

    async def remove(self, video_id: str) -> None:
        await self._api_client.unskip_video(video_id)


class LocalSkipListBackend:
    """Guest skip-list: a JSON array of video ids under a fixed key."""

    def __init__(self, storage: LocalKeyValueStore) -> None:
        self._storage = storage
        self._lock = asyncio.Lock()

    async def load(self) -> list[SkipListEntry]:
        stored = await asyncio.to_thread(self._storage.get_json_list, SKIPPED_VIDEOS_KEY)
        return [SkipListEntry(video_id=video_id) for video_id in dict.fromkeys(stored)]

    async def add(
        self,
        video_id: str,
        video_title: str | None,
        channel_name: str | None,
    ) -> bool:
        async with self._lock:
            return await asyncio.to_thread(self._add_sync, video_id)

    async def remove(self, video_id: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._remove_sync, video_id)

    def _add_sync(self, video_id: str) -> bool:
        stored = self._storage.get_json_list(SKIPPED_VIDEOS_KEY)
        if video_id in stored:
            return False
        self._storage.set_json_list(SKIPPED_VIDEOS_KEY, [*stored, video_id])
        return True

    def _remove_sync(self, video_id: str) -> None:
        stored = self._storage.get_json_list(SKIPPED_VIDEOS_KEY)
        self._storage.set_json_list(
            SKIPPED_VIDEOS_KEY,
            [item for item in stored if item != video_id],
        )


def move_to_front(values: list[str], value: str, *, limit: int) -> list[str]:
    """Put `value` first, dropping case-insensitive duplicates, then cap the list."""
    normalized = value.lower()
    remaining = [item for item in values if item.lower() != normalized]
    return [value, *remaining][: max(1, limit)]


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None
