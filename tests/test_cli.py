from __future__ import annotations

from typing import Any

import pytest
from click.testing import CliRunner

from mytube.cli import main
from mytube.client import api_client as api_client_module
from mytube.client.local_storage import SEARCH_HISTORY_KEY, SKIPPED_VIDEOS_KEY, LocalKeyValueStore
from mytube.config import load_settings


def _video_payload(video_id: str) -> dict[str, Any]:
    return {
        "id": video_id,
        "title": f"Title {video_id}",
        "description": "",
        "thumbnail_url": "",
        "channel_name": "Channel",
        "channel_id": "chan",
        "published_at": "2024-01-01T00:00:00Z",
        "view_count": "1500",
        "duration": "PT3M5S",
    }


@pytest.fixture
def guest_storage() -> LocalKeyValueStore:
    return LocalKeyValueStore(load_settings().local_storage_path)


@pytest.fixture
def search_requests(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    requested: list[str] = []

    def _fake_send(**kwargs: Any) -> tuple[int, dict[str, Any]]:
        url = str(kwargs["url"])
        requested.append(url)
        if "q=broken" in url:
            return 502, {"detail": "Failed to fetch from YouTube API"}
        return 200, {"videos": [_video_payload("vid_a"), _video_payload("vid_b")]}

    monkeypatch.setattr(api_client_module, "_send_json_request", _fake_send)
    return requested


def test_skip_unskip_and_list_in_guest_mode(guest_storage: LocalKeyValueStore) -> None:
    runner = CliRunner()

    first = runner.invoke(main, ["skip", "vid_1", "--title", "Some video"])
    again = runner.invoke(main, ["skip", "vid_1"])
    listed = runner.invoke(main, ["skips"])

    assert first.exit_code == 0
    assert "Skipped: vid_1" in first.output
    assert "Already skipped: vid_1" in again.output
    assert "SKIPPED VIDEOS (1)" in listed.output
    assert guest_storage.get_json_list(SKIPPED_VIDEOS_KEY) == ["vid_1"]

    removed = runner.invoke(main, ["unskip", "vid_1"])
    missing = runner.invoke(main, ["unskip", "vid_1"])

    assert "Removed from skip list: vid_1" in removed.output
    assert "Not on the skip list: vid_1" in missing.output
    assert guest_storage.get_json_list(SKIPPED_VIDEOS_KEY) == []


def test_search_prints_queue_and_records_guest_history(
    search_requests: list[str],
    guest_storage: LocalKeyValueStore,
) -> None:
    result = CliRunner().invoke(main, ["search", "jazz, lofi", "--language", "en"])

    assert result.exit_code == 0, result.output
    assert "vid_a" in result.output
    assert "vid_b" in result.output
    assert len(search_requests) == 2
    assert all("max_results=20" in url for url in search_requests)
    assert guest_storage.get_json_list(SEARCH_HISTORY_KEY) == ["jazz, lofi"]


def test_search_reports_upstream_error(search_requests: list[str]) -> None:
    result = CliRunner().invoke(main, ["search", "broken", "--language", "en"])

    assert result.exit_code == 0
    assert "Failed to fetch from YouTube API" in result.output


def test_search_blank_query_does_nothing(search_requests: list[str]) -> None:
    result = CliRunner().invoke(main, ["search", " , "])

    assert "Nothing to search for" in result.output
    assert search_requests == []


def test_interactive_search_skip_then_quit(
    search_requests: list[str],
    guest_storage: LocalKeyValueStore,
) -> None:
    result = CliRunner().invoke(
        main,
        ["search", "jazz", "--interactive", "--language", "en"],
        input="s\nq\n",
    )

    assert result.exit_code == 0, result.output
    assert "added to skip list" in result.output
    skipped = guest_storage.get_json_list(SKIPPED_VIDEOS_KEY)
    assert len(skipped) == 1
    assert skipped[0] in {"vid_a", "vid_b"}


def test_history_list_remove_and_clear(guest_storage: LocalKeyValueStore) -> None:
    guest_storage.set_json_list(SEARCH_HISTORY_KEY, ["cats", "dogs"])
    runner = CliRunner()

    listed = runner.invoke(main, ["history", "list"])
    assert "cats" in listed.output
    assert "this device" in listed.output

    runner.invoke(main, ["history", "remove", "cats"])
    assert guest_storage.get_json_list(SEARCH_HISTORY_KEY) == ["dogs"]

    cleared = runner.invoke(main, ["history", "clear", "--yes"])
    assert "Search history cleared" in cleared.output
    assert guest_storage.get_item(SEARCH_HISTORY_KEY) is None


def test_prefs_requires_token() -> None:
    result = CliRunner().invoke(main, ["prefs"])

    assert result.exit_code == 1
    assert "MYTUBE_API_TOKEN" in result.output
