from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from mytube.repositories.common import utc_now_iso
from mytube.repositories.database import Database

DEFAULT_THEME = "light"
DEFAULT_LANGUAGE = "he"
DEFAULT_AUTOPLAY = True


@dataclass(frozen=True)
class UserPreferences:
    theme: str = DEFAULT_THEME
    language: str = DEFAULT_LANGUAGE
    autoplay: bool = DEFAULT_AUTOPLAY
    created_at: str | None = None
    updated_at: str | None = None


class PreferencesRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def get(self, owner_id: str) -> UserPreferences:
        with self._db.connection() as conn:
            row = _select(conn, owner_id)
        if row is None:
            return UserPreferences()
        return _row_to_preferences(row)

    def upsert(
        self,
        owner_id: str,
        *,
        theme: str | None = None,
        language: str | None = None,
        autoplay: bool | None = None,
    ) -> UserPreferences:
        now_iso = utc_now_iso()
        with self._db.connection() as conn:
            existing = _select(conn, owner_id)
            if existing is not None:
                current = _row_to_preferences(existing)
                conn.execute(
                    """
                    UPDATE user_preferences
                    SET theme = ?, language = ?, autoplay = ?, updated_at = ?
                    WHERE owner_id = ?
                    """,
                    (
                        theme if theme is not None else current.theme,
                        language if language is not None else current.language,
                        int(autoplay if autoplay is not None else current.autoplay),
                        now_iso,
                        owner_id,
                    ),
                )
            else:
                conn.execute(
                    """
                    INSERT INTO user_preferences (
                        owner_id, theme, language, autoplay, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        owner_id,
                        theme or DEFAULT_THEME,
                        language or DEFAULT_LANGUAGE,
                        int(autoplay if autoplay is not None else DEFAULT_AUTOPLAY),
                        now_iso,
                        now_iso,
                    ),
                )
            row = _select(conn, owner_id)

        assert row is not None
        return _row_to_preferences(row)


def _select(conn: sqlite3.Connection, owner_id: str) -> sqlite3.Row | None:
    return conn.execute(
        """
        SELECT theme, language, autoplay, created_at, updated_at
        FROM user_preferences
        WHERE owner_id = ?
        """,
        (owner_id,),
    ).fetchone()


def _row_to_preferences(row: sqlite3.Row) -> UserPreferences:
    return UserPreferences(
        theme=str(row["theme"]),
        language=str(row["language"]),
        autoplay=bool(row["autoplay"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )
