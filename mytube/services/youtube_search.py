from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any, cast
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from mytube.models.video import Video

LOGGER = logging.getLogger("mytube.youtube")

YOUTUBE_MAX_RESULTS_PER_PAGE = 20
THUMBNAIL_QUALITY_PREFERENCE: tuple[str, ...] = ("high", "medium", "default")


class YouTubeApiError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class YouTubeSearchService:
    """Keyword search against the YouTube Data API with statistics enrichment."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://www.googleapis.com/youtube/v3",
        timeout_seconds: float = 10.0,
        prefer_new_years: int = 3,
    ) -> None:
        normalized_key = api_key.strip()
        if not normalized_key:
            raise YouTubeApiError("YouTube API key is not configured")
        self._api_key = normalized_key
        self._base_url = base_url.strip().rstrip("/")
        self._timeout_seconds = max(1.0, timeout_seconds)
        self._prefer_new_years = max(1, prefer_new_years)

    def search(self, query: str, *, max_results: int = 20, prefer_new: bool = False) -> list[Video]:
        normalized_query = query.strip()
        if not normalized_query:
            raise ValueError("query must not be empty")
        clamped_max_results = max(1, min(YOUTUBE_MAX_RESULTS_PER_PAGE, max_results))

        params = {
            "part": "snippet",
            "q": normalized_query,
            "type": "video",
            "maxResults": str(clamped_max_results),
            "key": self._api_key,
        }
        # Relevance ordering is kept; only the publish window narrows.
        if prefer_new:
            params["publishedAfter"] = _years_ago_iso(self._prefer_new_years)

        status_code, payload = _fetch_youtube_json(
            url=f"{self._base_url}/search",
            params=params,
            timeout_seconds=self._timeout_seconds,
        )
        if status_code < 200 or status_code >= 300:
            LOGGER.warning(
                "youtube search failed status=%s error=%s",
                status_code,
                _extract_error_message(payload),
            )
            raise YouTubeApiError("Failed to fetch from YouTube API", status_code=status_code)

        items = [_as_dict(item) for item in _as_list(payload.get("items"))]
        video_ids: list[str] = []
        for item in items:
            video_id = _search_item_video_id(item)
            if video_id is not None:
                video_ids.append(video_id)
        statistics = self._fetch_statistics(video_ids)

        videos: list[Video] = []
        for item in items:
            video_id = _search_item_video_id(item)
            if video_id is None:
                continue
            snippet = _as_dict(item.get("snippet"))
            stats = statistics.get(video_id, {})
            videos.append(
                Video(
                    id=video_id,
                    title=_as_text(snippet.get("title")),
                    description=_as_text(snippet.get("description")),
                    thumbnail_url=_preferred_thumbnail_url(snippet),
                    channel_name=_as_text(snippet.get("channelTitle")),
                    channel_id=_as_text(snippet.get("channelId")),
                    published_at=_as_text(snippet.get("publishedAt")),
                    view_count=stats.get("view_count"),
                    like_count=stats.get("like_count"),
                    duration=stats.get("duration"),
                )
            )

        LOGGER.info(
            "youtube search completed results=%s requested=%s prefer_new=%s",
            len(videos),
            clamped_max_results,
            prefer_new,
        )
        return videos

    def _fetch_statistics(self, video_ids: list[str]) -> dict[str, dict[str, str]]:
        if not video_ids:
            return {}

        try:
            status_code, payload = _fetch_youtube_json(
                url=f"{self._base_url}/videos",
                params={
                    "part": "statistics,contentDetails",
                    "id": ",".join(video_ids),
                    "key": self._api_key,
                },
                timeout_seconds=self._timeout_seconds,
            )
        except YouTubeApiError as exc:
            LOGGER.warning("youtube statistics enrichment failed error=%s", exc)
            return {}
        if status_code < 200 or status_code >= 300:
            LOGGER.warning("youtube statistics enrichment failed status=%s", status_code)
            return {}

        statistics: dict[str, dict[str, str]] = {}
        for raw_item in _as_list(payload.get("items")):
            item = _as_dict(raw_item)
            video_id = item.get("id")
            if not isinstance(video_id, str) or not video_id:
                continue
            item_stats = _as_dict(item.get("statistics"))
            content_details = _as_dict(item.get("contentDetails"))
            statistics[video_id] = {
                "view_count": _as_text(item_stats.get("viewCount")) or "0",
                "like_count": _as_text(item_stats.get("likeCount")) or "0",
                "duration": _as_text(content_details.get("duration")),
            }
        return statistics


def _fetch_youtube_json(
    *,
    url: str,
    params: dict[str, str],
    timeout_seconds: float,
) -> tuple[int, dict[str, Any]]:
    request = Request(
        f"{url}?{urlencode(params)}",
        headers={
            "accept": "application/json",
            "user-agent": "mytube/0.1",
        },
        method="GET",
    )

    status_code = 0
    raw_body = ""
    try:
        with urlopen(request, timeout=timeout_seconds) as response:
            status_code = int(response.getcode() or 0)
            raw_body = response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        status_code = int(exc.code)
        raw_body = exc.read().decode("utf-8", errors="replace")
    except (URLError, TimeoutError, OSError) as exc:
        raise YouTubeApiError(f"YouTube request failed: {exc}") from exc

    return status_code, _parse_json_dict(raw_body)


def _years_ago_iso(years: int) -> str:
    now = datetime.now(UTC)
    try:
        cutoff = now.replace(year=now.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year.
        cutoff = now.replace(year=now.year - years, day=28)
    return cutoff.isoformat().replace("+00:00", "Z")


def _search_item_video_id(item: dict[str, Any]) -> str | None:
    video_id = _as_dict(item.get("id")).get("videoId")
    if isinstance(video_id, str) and video_id.strip():
        return video_id
    return None


def _preferred_thumbnail_url(snippet: dict[str, Any]) -> str:
    thumbnails = _as_dict(snippet.get("thumbnails"))
    for quality in THUMBNAIL_QUALITY_PREFERENCE:
        url_value = _as_dict(thumbnails.get(quality)).get("url")
        if isinstance(url_value, str) and url_value.strip():
            return url_value
    return ""


def _extract_error_message(payload: dict[str, Any]) -> str | None:
    error = _as_dict(payload.get("error"))
    message = error.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


def _parse_json_dict(raw_body: str) -> dict[str, Any]:
    if not raw_body.strip():
        return {}
    try:
        parsed = json.loads(raw_body)
    except json.JSONDecodeError:
        return {}
    return _as_dict(parsed)


def _as_text(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return cast(dict[str, Any], value)
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return cast(list[Any], value)
    return []
