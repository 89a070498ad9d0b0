from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from structlog.contextvars import bind_contextvars, reset_contextvars

from mytube.dependencies import (
    get_current_owner_id,
    get_preferences_repository,
    get_search_history_repository,
    get_settings,
    get_skipped_videos_repository,
    get_telemetry,
    get_youtube_search_service,
)
from mytube.config import AppSettings
from mytube.models.api_contracts import (
    DeleteResponse,
    HistoryTierName,
    PreferencesPayload,
    PreferencesResponse,
    PreferencesUpdateRequest,
    SearchHistoryEntryPayload,
    SearchHistoryRecordRequest,
    SearchHistoryRecordResponse,
    SearchHistoryResponse,
    SkippedVideoPayload,
    SkippedVideosResponse,
    SkipVideoRequest,
    SkipVideoResponse,
    VideoPayload,
    VideoSearchResponse,
)
from mytube.repositories.preferences_repository import PreferencesRepository, UserPreferences
from mytube.repositories.search_history_repository import (
    HistoryTier,
    SearchHistoryEntry,
    SearchHistoryRepository,
)
from mytube.repositories.skipped_videos_repository import SkippedVideo, SkippedVideosRepository
from mytube.services.youtube_search import YouTubeApiError, YouTubeSearchService
from mytube.telemetry import TelemetryClient, search_fingerprint

LOGGER = logging.getLogger("mytube.api")

router = APIRouter()

OwnerId = Annotated[str, Depends(get_current_owner_id)]


@router.get(
    "/api/youtube/search",
    response_model=VideoSearchResponse,
    tags=["youtube"],
    operation_id="youtube_search",
)
def youtube_search(
    search_service: Annotated[YouTubeSearchService | None, Depends(get_youtube_search_service)],
    telemetry: Annotated[TelemetryClient, Depends(get_telemetry)],
    q: str | None = None,
    max_results: Annotated[int, Query(ge=1, le=50)] = 20,
    prefer_new: bool = False,
) -> VideoSearchResponse:
    if q is None or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    if search_service is None:
        raise HTTPException(status_code=500, detail="YouTube API key is not configured")

    try:
        with telemetry.span(
            "youtube.search",
            fingerprint=search_fingerprint(q),
            max_results=max_results,
            prefer_new=prefer_new,
        ) as outcome:
            videos = search_service.search(q, max_results=max_results, prefer_new=prefer_new)
            outcome["result_count"] = len(videos)
    except YouTubeApiError as exc:
        LOGGER.warning("youtube search failed status_code=%s error=%s", exc.status_code, exc)
        status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
        raise HTTPException(status_code=status_code, detail=str(exc)) from exc

    return VideoSearchResponse(videos=[VideoPayload(**video.to_payload()) for video in videos])


@router.get(
    "/api/user/preferences",
    response_model=PreferencesResponse,
    tags=["user"],
    operation_id="preferences_get",
)
def preferences_get(
    owner_id: OwnerId,
    repository: Annotated[PreferencesRepository, Depends(get_preferences_repository)],
) -> PreferencesResponse:
    return PreferencesResponse(preferences=_preferences_payload(repository.get(owner_id)))


@router.post(
    "/api/user/preferences",
    response_model=PreferencesResponse,
    tags=["user"],
    operation_id="preferences_save",
)
def preferences_save(
    request: PreferencesUpdateRequest,
    owner_id: OwnerId,
    repository: Annotated[PreferencesRepository, Depends(get_preferences_repository)],
) -> PreferencesResponse:
    preferences = repository.upsert(
        owner_id,
        theme=request.theme,
        language=request.language,
        autoplay=request.autoplay,
    )
    return PreferencesResponse(preferences=_preferences_payload(preferences))


@router.get(
    "/api/user/search-history",
    response_model=SearchHistoryResponse,
    tags=["user"],
    operation_id="search_history_list",
)
def search_history_list(
    owner_id: OwnerId,
    repository: Annotated[SearchHistoryRepository, Depends(get_search_history_repository)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> SearchHistoryResponse:
    return SearchHistoryResponse(
        history=repository.list_recent_queries(
            owner_id=owner_id,
            tier=HistoryTier.FULL,
            limit=settings.history_full_limit,
        ),
        single_history=repository.list_recent_queries(
            owner_id=owner_id,
            tier=HistoryTier.SINGLE,
            limit=settings.history_single_limit,
        ),
    )


@router.post(
    "/api/user/search-history",
    response_model=SearchHistoryRecordResponse,
    tags=["user"],
    operation_id="search_history_record",
)
def search_history_record(
    request: SearchHistoryRecordRequest,
    owner_id: OwnerId,
    repository: Annotated[SearchHistoryRepository, Depends(get_search_history_repository)],
) -> SearchHistoryRecordResponse:
    if not request.search_query:
        raise HTTPException(status_code=400, detail="Search query is required")

    context_tokens = bind_contextvars(history_owner_id=owner_id)
    try:
        entry = repository.record_search(
            owner_id=owner_id,
            query_text=request.search_query,
            terms=request.search_terms,
            result_count=request.results_count,
        )
        LOGGER.info(
            "search history recorded entry_id=%s terms=%s results=%s",
            entry.id,
            len(entry.terms),
            entry.result_count,
        )
    finally:
        reset_contextvars(**context_tokens)
    return SearchHistoryRecordResponse(success=True, entry=_history_entry_payload(entry))


@router.delete(
    "/api/user/search-history",
    response_model=DeleteResponse,
    tags=["user"],
    operation_id="search_history_delete",
)
def search_history_delete(
    owner_id: OwnerId,
    repository: Annotated[SearchHistoryRepository, Depends(get_search_history_repository)],
    query: str | None = None,
    tier: HistoryTierName | None = None,
) -> DeleteResponse:
    if query:
        deleted = repository.delete_query(
            owner_id=owner_id,
            query_text=query,
            tier=HistoryTier(tier) if tier is not None else HistoryTier.FULL,
        )
    else:
        deleted = repository.clear(
            owner_id=owner_id,
            tier=HistoryTier(tier) if tier is not None else None,
        )
    return DeleteResponse(success=True, deleted=deleted)


@router.get(
    "/api/user/skipped-videos",
    response_model=SkippedVideosResponse,
    tags=["user"],
    operation_id="skipped_videos_list",
)
def skipped_videos_list(
    owner_id: OwnerId,
    repository: Annotated[SkippedVideosRepository, Depends(get_skipped_videos_repository)],
) -> SkippedVideosResponse:
    skipped = repository.list_for_owner(owner_id)
    return SkippedVideosResponse(
        skipped_video_ids=[video.video_id for video in skipped],
        skipped_videos=[_skipped_video_payload(video) for video in skipped],
    )


@router.post(
    "/api/user/skipped-videos",
    response_model=SkipVideoResponse,
    tags=["user"],
    operation_id="skipped_videos_add",
)
def skipped_videos_add(
    request: SkipVideoRequest,
    owner_id: OwnerId,
    repository: Annotated[SkippedVideosRepository, Depends(get_skipped_videos_repository)],
) -> SkipVideoResponse:
    try:
        skipped, created = repository.add_if_absent(
            owner_id=owner_id,
            video_id=request.video_id,
            video_title=request.video_title,
            channel_name=request.channel_name,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Video ID is required") from exc

    return SkipVideoResponse(
        success=True,
        status="created" if created else "already_present",
        entry=_skipped_video_payload(skipped),
    )


@router.delete(
    "/api/user/skipped-videos",
    response_model=DeleteResponse,
    tags=["user"],
    operation_id="skipped_videos_remove",
)
def skipped_videos_remove(
    owner_id: OwnerId,
    repository: Annotated[SkippedVideosRepository, Depends(get_skipped_videos_repository)],
    video_id: str | None = None,
) -> DeleteResponse:
    if video_id is None or not video_id.strip():
        raise HTTPException(status_code=400, detail="Video ID is required")
    removed = repository.remove(owner_id=owner_id, video_id=video_id.strip())
    return DeleteResponse(success=True, deleted=int(removed))


def _preferences_payload(preferences: UserPreferences) -> PreferencesPayload:
    return PreferencesPayload(
        theme=preferences.theme,
        language=preferences.language,
        autoplay=preferences.autoplay,
    )


def _history_entry_payload(entry: SearchHistoryEntry) -> SearchHistoryEntryPayload:
    return SearchHistoryEntryPayload(
        id=entry.id,
        tier=entry.tier.value,
        search_query=entry.query_text,
        search_terms=list(entry.terms),
        results_count=entry.result_count,
        created_at=entry.created_at,
    )


def _skipped_video_payload(video: SkippedVideo) -> SkippedVideoPayload:
    return SkippedVideoPayload(
        video_id=video.video_id,
        video_title=video.video_title,
        channel_name=video.channel_name,
        created_at=video.created_at,
    )
