from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException

from mytube.config import AppSettings, load_settings
from mytube.repositories.api_key_repository import ApiKeyRepository
from mytube.repositories.database import Database
from mytube.repositories.preferences_repository import PreferencesRepository
from mytube.repositories.search_history_repository import SearchHistoryRepository
from mytube.repositories.skipped_videos_repository import SkippedVideosRepository
from mytube.services.youtube_search import YouTubeSearchService
from mytube.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_database() -> Database:
    database = Database(get_settings().db_path)
    database.initialize()
    return database


@lru_cache(maxsize=1)
def get_api_key_repository() -> ApiKeyRepository:
    return ApiKeyRepository(get_database())


@lru_cache(maxsize=1)
def get_preferences_repository() -> PreferencesRepository:
    return PreferencesRepository(get_database())


@lru_cache(maxsize=1)
def get_search_history_repository() -> SearchHistoryRepository:
    settings = get_settings()
    return SearchHistoryRepository(get_database(), fetch_window=settings.history_fetch_window)


@lru_cache(maxsize=1)
def get_skipped_videos_repository() -> SkippedVideosRepository:
    return SkippedVideosRepository(get_database())


@lru_cache(maxsize=1)
def get_youtube_search_service() -> YouTubeSearchService | None:
    settings = get_settings()
    if settings.youtube_api_key is None:
        return None
    return YouTubeSearchService(
        settings.youtube_api_key,
        base_url=settings.youtube_api_base_url,
        timeout_seconds=settings.youtube_http_timeout_seconds,
        prefer_new_years=settings.youtube_prefer_new_years,
    )


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def get_current_owner_id(
    api_keys: Annotated[ApiKeyRepository, Depends(get_api_key_repository)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    token = _extract_bearer_token(authorization)
    owner_id = api_keys.resolve_owner(token) if token is not None else None
    if owner_id is None:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return owner_id


def _extract_bearer_token(authorization: str | None) -> str | None:
    if authorization is None:
        return None
    scheme, _, credentials = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    normalized = credentials.strip()
    return normalized or None


def reset_cached_dependencies() -> None:
    get_youtube_search_service.cache_clear()
    get_skipped_videos_repository.cache_clear()
    get_search_history_repository.cache_clear()
    get_preferences_repository.cache_clear()
    get_api_key_repository.cache_clear()
    get_database.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
