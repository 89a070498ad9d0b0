from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass

from mytube.repositories.common import to_optional_str, utc_now_iso
from mytube.repositories.database import Database


@dataclass(frozen=True)
class ApiKeyRecord:
    key_id: str
    owner_id: str
    label: str
    created_at: str
    revoked_at: str | None
    last_used_at: str | None


class ApiKeyRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_key(self, owner_id: str, label: str = "default") -> tuple[ApiKeyRecord, str]:
        normalized_owner_id = owner_id.strip()
        if not normalized_owner_id:
            raise ValueError("owner_id must not be empty")
        normalized_label = label.strip() or "default"

        key_id = f"key_{secrets.token_urlsafe(9)}"
        secret = secrets.token_urlsafe(24)
        now_iso = utc_now_iso()
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO api_keys (
                    key_id, owner_id, label, secret_hash, created_at, revoked_at, last_used_at
                )
                VALUES (?, ?, ?, ?, ?, NULL, NULL)
                """,
                (key_id, normalized_owner_id, normalized_label, _hash_secret(secret), now_iso),
            )
        return (
            ApiKeyRecord(
                key_id=key_id,
                owner_id=normalized_owner_id,
                label=normalized_label,
                created_at=now_iso,
                revoked_at=None,
                last_used_at=None,
            ),
            f"{key_id}.{secret}",
        )

    def resolve_owner(self, token: str) -> str | None:
        """Return the owner behind an active `<key_id>.<secret>` token, or None."""
        key_id, separator, secret = token.strip().partition(".")
        if not separator or not key_id or not secret:
            return None

        with self._db.connection() as conn:
            row = conn.execute(
                """
                SELECT owner_id, secret_hash
                FROM api_keys
                WHERE key_id = ? AND revoked_at IS NULL
                """,
                (key_id,),
            ).fetchone()
            if row is None:
                return None
            if not secrets.compare_digest(str(row["secret_hash"]), _hash_secret(secret)):
                return None
            conn.execute(
                "UPDATE api_keys SET last_used_at = ? WHERE key_id = ?",
                (utc_now_iso(), key_id),
            )
        return str(row["owner_id"])

    def revoke_key(self, key_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE api_keys
                SET revoked_at = ?
                WHERE key_id = ? AND revoked_at IS NULL
                """,
                (utc_now_iso(), key_id.strip()),
            )
        return cursor.rowcount > 0

    def list_keys(self, *, include_revoked: bool) -> list[ApiKeyRecord]:
        query = """
            SELECT key_id, owner_id, label, created_at, revoked_at, last_used_at
            FROM api_keys
        """
        if not include_revoked:
            query += " WHERE revoked_at IS NULL"
        query += " ORDER BY created_at DESC"

        with self._db.connection() as conn:
            rows = conn.execute(query).fetchall()

        return [
            ApiKeyRecord(
                key_id=str(row["key_id"]),
                owner_id=str(row["owner_id"]),
                label=str(row["label"]),
                created_at=str(row["created_at"]),
                revoked_at=to_optional_str(row["revoked_at"]),
                last_used_at=to_optional_str(row["last_used_at"]),
            )
            for row in rows
        ]


def _hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()
