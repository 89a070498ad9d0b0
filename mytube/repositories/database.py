from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS api_keys (
    key_id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    label TEXT NOT NULL,
    secret_hash TEXT NOT NULL,
    created_at TEXT NOT NULL,
    revoked_at TEXT NULL,
    last_used_at TEXT NULL
);

CREATE INDEX IF NOT EXISTS idx_api_keys_owner ON api_keys(owner_id);

CREATE TABLE IF NOT EXISTS user_preferences (
    owner_id TEXT PRIMARY KEY,
    theme TEXT NOT NULL,
    language TEXT NOT NULL,
    autoplay INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS search_history (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    tier TEXT NOT NULL,
    query_text TEXT NOT NULL,
    normalized_query TEXT NOT NULL,
    terms_json TEXT NOT NULL,
    result_count INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    seq INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_search_history_owner_tier_recent
ON search_history(owner_id, tier, created_at DESC, seq DESC);

CREATE TABLE IF NOT EXISTS skipped_videos (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    video_id TEXT NOT NULL,
    video_title TEXT NULL,
    channel_name TEXT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (owner_id, video_id)
);
"""


class Database:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA_SQL)
            _ensure_search_history_unique_index(conn)


def _ensure_search_history_unique_index(conn: sqlite3.Connection) -> None:
    if "idx_search_history_owner_tier_text_unique" in _index_names(conn, "search_history"):
        return
    # Older databases may hold case-variant duplicates; keep the newest of each.
    conn.execute(
        """
        DELETE FROM search_history
        WHERE id NOT IN (
            SELECT id FROM (
                SELECT
                    id,
                    ROW_NUMBER() OVER (
                        PARTITION BY owner_id, tier, normalized_query
                        ORDER BY created_at DESC, seq DESC
                    ) AS position
                FROM search_history
            )
            WHERE position = 1
        )
        """
    )
    conn.execute(
        """
        CREATE UNIQUE INDEX idx_search_history_owner_tier_text_unique
        ON search_history(owner_id, tier, normalized_query)
        """
    )


def _index_names(conn: sqlite3.Connection, table_name: str) -> set[str]:
    rows = conn.execute(f"PRAGMA index_list({table_name})").fetchall()
    return {str(row["name"]) for row in rows}
