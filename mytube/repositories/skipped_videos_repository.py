from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from mytube.repositories.common import new_row_id, to_optional_str, utc_now_iso
from mytube.repositories.database import Database


@dataclass(frozen=True)
class SkippedVideo:
    owner_id: str
    video_id: str
    video_title: str | None
    channel_name: str | None
    created_at: str


class SkippedVideosRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def list_for_owner(self, owner_id: str) -> list[SkippedVideo]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT owner_id, video_id, video_title, channel_name, created_at
                FROM skipped_videos
                WHERE owner_id = ?
                ORDER BY created_at ASC
                """,
                (owner_id,),
            ).fetchall()
        return [_row_to_skipped_video(row) for row in rows]

    def add_if_absent(
        self,
        *,
        owner_id: str,
        video_id: str,
        video_title: str | None = None,
        channel_name: str | None = None,
    ) -> tuple[SkippedVideo, bool]:
        """Insert the skip record unless one exists; the flag reports whether a row was added."""
        normalized_video_id = video_id.strip()
        if not normalized_video_id:
            raise ValueError("video_id must not be empty")

        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO skipped_videos (
                    id, owner_id, video_id, video_title, channel_name, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(owner_id, video_id) DO NOTHING
                """,
                (
                    new_row_id("skip"),
                    owner_id,
                    normalized_video_id,
                    video_title or None,
                    channel_name or None,
                    utc_now_iso(),
                ),
            )
            row = _select_one(conn, owner_id=owner_id, video_id=normalized_video_id)

        assert row is not None
        return _row_to_skipped_video(row), cursor.rowcount > 0

    def remove(self, *, owner_id: str, video_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM skipped_videos WHERE owner_id = ? AND video_id = ?",
                (owner_id, video_id),
            )
        return cursor.rowcount > 0


def _select_one(conn: sqlite3.Connection, *, owner_id: str, video_id: str) -> sqlite3.Row | None:
    return conn.execute(
        """
        SELECT owner_id, video_id, video_title, channel_name, created_at
        FROM skipped_videos
        WHERE owner_id = ? AND video_id = ?
        LIMIT 1
        """,
        (owner_id, video_id),
    ).fetchone()


def _row_to_skipped_video(row: sqlite3.Row) -> SkippedVideo:
    return SkippedVideo(
        owner_id=str(row["owner_id"]),
        video_id=str(row["video_id"]),
        video_title=to_optional_str(row["video_title"]),
        channel_name=to_optional_str(row["channel_name"]),
        created_at=str(row["created_at"]),
    )
