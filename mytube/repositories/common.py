from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def new_row_id(prefix: str) -> str:
    """Opaque primary key such as `hist_<hex>` or `skip_<hex>`."""
    return f"{prefix}_{uuid4().hex}"


def to_optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)
