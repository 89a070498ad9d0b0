from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mytube.dependencies import get_api_key_repository, reset_cached_dependencies
from mytube.main import create_app
from mytube.repositories.database import Database

TEST_OWNER_ID = "user_test"


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MYTUBE_DATA_DIR", str(data_dir))
    monkeypatch.setenv("MYTUBE_TELEMETRY_SINK", "none")
    for name in ("MYTUBE_API_TOKEN", "MYTUBE_YOUTUBE_API_KEY", "MYTUBE_DB_PATH"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setenv("MYTUBE_YOUTUBE_API_KEY", "test-youtube-key")
    reset_cached_dependencies()

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()


@pytest.fixture
def auth_headers(client: TestClient) -> dict[str, str]:
    _ = client
    _, token = get_api_key_repository().create_key(TEST_OWNER_ID, "tests")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "repo-state.db")
    db.initialize()
    return db
