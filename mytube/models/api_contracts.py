from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

HistoryTierName = Literal["full", "single"]
SkipStatus = Literal["created", "already_present"]


def _default_terms() -> list[str]:
    return []


class VideoPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

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


class VideoSearchResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    videos: list[VideoPayload]


class PreferencesPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    theme: str
    language: str
    autoplay: bool


class PreferencesResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    preferences: PreferencesPayload


class PreferencesUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    theme: Literal["light", "dark"] | None = None
    language: str | None = Field(default=None, min_length=2, max_length=16)
    autoplay: bool | None = None


class SearchHistoryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    history: list[str]
    single_history: list[str]


class SearchHistoryRecordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search_query: str
    search_terms: list[str] = Field(default_factory=_default_terms)
    results_count: int | None = Field(default=None, ge=0)

    @field_validator("search_query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        return value.strip()


class SearchHistoryEntryPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    tier: HistoryTierName
    search_query: str
    search_terms: list[str]
    results_count: int
    created_at: str


class SearchHistoryRecordResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    entry: SearchHistoryEntryPayload


class DeleteResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    deleted: int


class SkippedVideoPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video_id: str
    video_title: str | None = None
    channel_name: str | None = None
    created_at: str


class SkippedVideosResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    skipped_video_ids: list[str]
    skipped_videos: list[SkippedVideoPayload]


class SkipVideoRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video_id: str = Field(min_length=1)
    video_title: str | None = None
    channel_name: str | None = None


class SkipVideoResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    status: SkipStatus
    entry: SkippedVideoPayload
