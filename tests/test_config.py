from __future__ import annotations

from pathlib import Path

import pytest

from mytube.config import load_settings


def test_load_settings_defaults_live_under_data_dir(tmp_path: Path) -> None:
    settings = load_settings()
    data_dir = (tmp_path / "runtime-data").resolve()

    assert settings.data_dir == data_dir
    assert settings.db_path == data_dir / "state.db"
    assert settings.log_dir == data_dir / "logs"
    assert settings.local_storage_path == data_dir / "local-storage.json"
    assert settings.youtube_api_key is None
    assert settings.api_token is None
    assert settings.search_max_total_results == 50
    assert settings.search_max_results_per_term == 20
    assert settings.history_full_limit == 5
    assert settings.history_single_limit == 10
    assert settings.history_guest_limit == 10


def test_load_settings_parses_env_overrides(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("MYTUBE_DB_PATH", str(tmp_path / "elsewhere.db"))
    monkeypatch.setenv("MYTUBE_YOUTUBE_API_KEY", "  yt-key  ")
    monkeypatch.setenv("MYTUBE_API_TOKEN", "   ")
    monkeypatch.setenv("MYTUBE_API_BASE_URL", " http://mytube.local:9000/ ")
    monkeypatch.setenv("MYTUBE_TELEMETRY_ENABLED", "off")
    monkeypatch.setenv("MYTUBE_TELEMETRY_SINK", " LOG ")
    monkeypatch.setenv("MYTUBE_LOG_LEVEL", "DEBUG")

    settings = load_settings()

    assert settings.db_path == (tmp_path / "elsewhere.db").resolve()
    assert settings.local_storage_path == (
        tmp_path / "runtime-data" / "local-storage.json"
    ).resolve()
    assert settings.youtube_api_key == "yt-key"
    assert settings.api_token is None
    assert settings.api_base_url == "http://mytube.local:9000"
    assert settings.telemetry_enabled is False
    assert settings.telemetry_sink == "log"
    assert settings.log_level == "DEBUG"


def test_unparseable_boolean_keeps_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MYTUBE_TELEMETRY_ENABLED", "maybe")
    assert load_settings().telemetry_enabled is True


def test_load_settings_rejects_invalid_telemetry_sink(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MYTUBE_TELEMETRY_SINK", "stdout")

    with pytest.raises(ValueError, match="MYTUBE_TELEMETRY_SINK"):
        load_settings()


def test_load_settings_rejects_oversized_per_term_budget(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("MYTUBE_SEARCH_MAX_RESULTS_PER_TERM", "51")

    with pytest.raises(ValueError):
        load_settings()
