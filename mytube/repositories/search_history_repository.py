from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from enum import StrEnum
from typing import cast

from mytube.repositories.common import new_row_id, utc_now_iso
from mytube.repositories.database import Database


class HistoryTier(StrEnum):
    FULL = "full"
    SINGLE = "single"


@dataclass(frozen=True)
class SearchHistoryEntry:
    id: str
    owner_id: str
    tier: HistoryTier
    query_text: str
    terms: tuple[str, ...]
    result_count: int
    created_at: str


class SearchHistoryRepository:
    """Two-tier search history keyed by owner.

    Uniqueness is defined on the lower-cased query text within one tier, so a
    repeated search touches the existing row instead of adding a new one.
    Reads over-fetch a window ordered by recency and collapse duplicates in
    Python, keeping the newest occurrence of each text.
    """

    def __init__(self, db: Database, *, fetch_window: int = 50) -> None:
        self._db = db
        self._fetch_window = max(1, fetch_window)

    def record_search(
        self,
        *,
        owner_id: str,
        query_text: str,
        terms: list[str] | None = None,
        result_count: int | None = None,
    ) -> SearchHistoryEntry:
        normalized_terms = _normalize_terms(terms or [])
        with self._db.connection() as conn:
            entry = _touch_or_insert(
                conn,
                owner_id=owner_id,
                tier=HistoryTier.FULL,
                query_text=query_text,
                terms=normalized_terms,
                result_count=result_count or 0,
            )
            if len(normalized_terms) > 1:
                for term in normalized_terms:
                    _touch_or_insert(
                        conn,
                        owner_id=owner_id,
                        tier=HistoryTier.SINGLE,
                        query_text=term,
                        terms=[term],
                        result_count=0,
                    )
        return entry

    def touch_or_insert(
        self,
        *,
        owner_id: str,
        tier: HistoryTier,
        query_text: str,
        terms: list[str] | None = None,
        result_count: int = 0,
    ) -> SearchHistoryEntry:
        with self._db.connection() as conn:
            return _touch_or_insert(
                conn,
                owner_id=owner_id,
                tier=tier,
                query_text=query_text,
                terms=_normalize_terms(terms or []),
                result_count=result_count,
            )

    def list_recent_queries(self, *, owner_id: str, tier: HistoryTier, limit: int) -> list[str]:
        entries = self.list_recent(owner_id=owner_id, tier=tier, limit=limit)
        return [entry.query_text for entry in entries]

    def list_recent(
        self,
        *,
        owner_id: str,
        tier: HistoryTier,
        limit: int,
    ) -> list[SearchHistoryEntry]:
        clamped_limit = max(1, limit)
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT id, owner_id, tier, query_text, terms_json, result_count, created_at
                FROM search_history
                WHERE owner_id = ? AND tier = ?
                ORDER BY created_at DESC, seq DESC
                LIMIT ?
                """,
                (owner_id, tier.value, max(clamped_limit, self._fetch_window)),
            ).fetchall()

        seen: set[str] = set()
        entries: list[SearchHistoryEntry] = []
        for row in rows:
            normalized = str(row["query_text"]).lower()
            if normalized in seen:
                continue
            seen.add(normalized)
            entries.append(_row_to_entry(row))
            if len(entries) >= clamped_limit:
                break
        return entries

    def delete_query(self, *, owner_id: str, query_text: str, tier: HistoryTier) -> int:
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                DELETE FROM search_history
                WHERE owner_id = ? AND tier = ? AND query_text = ?
                """,
                (owner_id, tier.value, query_text),
            )
        return cursor.rowcount

    def clear(self, *, owner_id: str, tier: HistoryTier | None = None) -> int:
        query = "DELETE FROM search_history WHERE owner_id = ?"
        params: tuple[object, ...] = (owner_id,)
        if tier is not None:
            query += " AND tier = ?"
            params = (owner_id, tier.value)

        with self._db.connection() as conn:
            cursor = conn.execute(query, params)
        return cursor.rowcount

    def count(self, *, owner_id: str, tier: HistoryTier) -> int:
        with self._db.connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM search_history WHERE owner_id = ? AND tier = ?",
                (owner_id, tier.value),
            ).fetchone()
        return int(row["total"]) if row is not None else 0


def _touch_or_insert(
    conn: sqlite3.Connection,
    *,
    owner_id: str,
    tier: HistoryTier,
    query_text: str,
    terms: list[str],
    result_count: int,
) -> SearchHistoryEntry:
    # A touch adopts the newest casing so exact-match deletes see what clients show.
    normalized_query = query_text.lower()
    conn.execute(
        """
        INSERT INTO search_history (
            id, owner_id, tier, query_text, normalized_query,
            terms_json, result_count, created_at, seq
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(owner_id, tier, normalized_query) DO UPDATE SET
            query_text = excluded.query_text,
            created_at = excluded.created_at,
            seq = excluded.seq
        """,
        (
            new_row_id("hist"),
            owner_id,
            tier.value,
            query_text,
            normalized_query,
            json.dumps(terms, ensure_ascii=False),
            max(0, result_count),
            utc_now_iso(),
            _next_seq(conn),
        ),
    )

    row = conn.execute(
        """
        SELECT id, owner_id, tier, query_text, terms_json, result_count, created_at
        FROM search_history
        WHERE owner_id = ? AND tier = ? AND normalized_query = ?
        """,
        (owner_id, tier.value, normalized_query),
    ).fetchone()
    return _row_to_entry(row)


def _next_seq(conn: sqlite3.Connection) -> int:
    row = conn.execute(
        "SELECT COALESCE(MAX(seq), 0) + 1 AS next_seq FROM search_history"
    ).fetchone()
    return int(row["next_seq"])


def _row_to_entry(row: sqlite3.Row) -> SearchHistoryEntry:
    return SearchHistoryEntry(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        tier=HistoryTier(str(row["tier"])),
        query_text=str(row["query_text"]),
        terms=_decode_terms(row["terms_json"]),
        result_count=int(row["result_count"]),
        created_at=str(row["created_at"]),
    )


def _normalize_terms(values: list[str]) -> list[str]:
    terms: list[str] = []
    for value in values:
        stripped = value.strip()
        if stripped:
            terms.append(stripped)
    return terms


def _decode_terms(raw_value: object) -> tuple[str, ...]:
    if not isinstance(raw_value, str):
        return ()
    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError:
        return ()
    if not isinstance(parsed, list):
        return ()
    return tuple(item for item in cast(list[object], parsed) if isinstance(item, str))
