from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, cast
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from mytube.models.video import Video, video_from_payload

LOGGER = logging.getLogger("mytube.client.api")


class ApiRequestError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiUnauthorizedError(ApiRequestError):
    pass


class MyTubeApiClient:
    """Client for the MyTube HTTP API.

    Every public method is a coroutine; the blocking urllib call runs in a
    worker thread.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._base_url = base_url.strip().rstrip("/")
        self._token = token.strip() if token is not None and token.strip() else None
        self._timeout_seconds = max(1.0, timeout_seconds)

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    async def get_preferences(self) -> dict[str, Any]:
        payload = await self._request("GET", "/api/user/preferences")
        return _as_dict(payload.get("preferences"))

    async def save_preferences(
        self,
        *,
        theme: str | None = None,
        language: str | None = None,
        autoplay: bool | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if theme is not None:
            body["theme"] = theme
        if language is not None:
            body["language"] = language
        if autoplay is not None:
            body["autoplay"] = autoplay
        payload = await self._request("POST", "/api/user/preferences", body=body)
        return _as_dict(payload.get("preferences"))

    async def get_search_history(self) -> tuple[list[str], list[str]]:
        payload = await self._request("GET", "/api/user/search-history")
        return _string_list(payload.get("history")), _string_list(payload.get("single_history"))

    async def record_search(
        self,
        query_text: str,
        *,
        terms: list[str] | None = None,
        result_count: int | None = None,
    ) -> None:
        body: dict[str, Any] = {"search_query": query_text, "search_terms": list(terms or [])}
        if result_count is not None:
            body["results_count"] = result_count
        await self._request("POST", "/api/user/search-history", body=body)

    async def delete_search_history(
        self,
        *,
        query_text: str | None = None,
        tier: str | None = None,
    ) -> int:
        params: dict[str, str] = {}
        if query_text is not None:
            params["query"] = query_text
        if tier is not None:
            params["tier"] = tier
        payload = await self._request("DELETE", "/api/user/search-history", params=params)
        deleted = payload.get("deleted")
        return deleted if isinstance(deleted, int) else 0

    async def get_skipped_videos(self) -> list[dict[str, Any]]:
        payload = await self._request("GET", "/api/user/skipped-videos")
        return [_as_dict(item) for item in _as_list(payload.get("skipped_videos"))]

    async def skip_video(
        self,
        video_id: str,
        *,
        video_title: str | None = None,
        channel_name: str | None = None,
    ) -> str:
        payload = await self._request(
            "POST",
            "/api/user/skipped-videos",
            body={
                "video_id": video_id,
                "video_title": video_title,
                "channel_name": channel_name,
            },
        )
        status = payload.get("status")
        return status if isinstance(status, str) else "created"

    async def unskip_video(self, video_id: str) -> None:
        await self._request("DELETE", "/api/user/skipped-videos", params={"video_id": video_id})

    async def search_videos(
        self,
        query: str,
        *,
        max_results: int = 20,
        prefer_new: bool = False,
    ) -> list[Video]:
        payload = await self._request(
            "GET",
            "/api/youtube/search",
            params={
                "q": query,
                "max_results": str(max_results),
                "prefer_new": "true" if prefer_new else "false",
            },
            authenticated=False,
        )
        videos: list[Video] = []
        for item in _as_list(payload.get("videos")):
            try:
                videos.append(video_from_payload(_as_dict(item)))
            except ValueError:
                LOGGER.debug("search result without id dropped")
        return videos

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> dict[str, Any]:
        headers = {"accept": "application/json", "user-agent": "mytube-client/0.1"}
        if authenticated:
            if self._token is None:
                raise ApiUnauthorizedError("No API token configured", status_code=401)
            headers["authorization"] = f"Bearer {self._token}"

        url = f"{self._base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"

        status_code, payload = await asyncio.to_thread(
            _send_json_request,
            method=method,
            url=url,
            headers=headers,
            body=body,
            timeout_seconds=self._timeout_seconds,
        )
        if status_code == 401:
            raise ApiUnauthorizedError("Unauthorized", status_code=status_code)
        if status_code < 200 or status_code >= 300:
            raise ApiRequestError(
                _extract_detail(payload) or f"Request failed with status {status_code}",
                status_code=status_code,
            )
        return payload


def _send_json_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: dict[str, Any] | None,
    timeout_seconds: float,
) -> tuple[int, dict[str, Any]]:
    data: bytes | None = None
    request_headers = dict(headers)
    if body is not None:
        data = json.dumps(body).encode("utf-8")
        request_headers["content-type"] = "application/json"

    request = Request(url, data=data, headers=request_headers, method=method)

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
        raise ApiRequestError(f"API request failed: {exc}") from exc

    return status_code, _parse_json_dict(raw_body)


def _extract_detail(payload: dict[str, Any]) -> str | None:
    for key in ("detail", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _parse_json_dict(raw_body: str) -> dict[str, Any]:
    if not raw_body.strip():
        return {}
    try:
        parsed = json.loads(raw_body)
    except json.JSONDecodeError:
        return {}
    return _as_dict(parsed)


def _string_list(value: Any) -> list[str]:
    return [item for item in _as_list(value) if isinstance(item, str)]


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return cast(dict[str, Any], value)
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return cast(list[Any], value)
    return []
