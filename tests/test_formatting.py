from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from mytube.formatting import format_count, format_duration, format_relative_time


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, "0"), ("", "0"), ("abc", "0"), ("999", "999"), ("1234", "1.2K"), ("2500000", "2.5M")],
)
def test_format_count(raw: str | None, expected: str) -> None:
    assert format_count(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("PT1H2M3S", "1:02:03"), ("PT4M2S", "4:02"), ("PT45S", "0:45"), (None, ""), ("P1D", "")],
)
def test_format_duration(raw: str | None, expected: str) -> None:
    assert format_duration(raw) == expected


def test_format_relative_time_buckets() -> None:
    now = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    def ago(delta: timedelta) -> str:
        return format_relative_time((now - delta).isoformat().replace("+00:00", "Z"), now=now)

    assert ago(timedelta(seconds=10)) == "less than a minute ago"
    assert ago(timedelta(minutes=5)) == "5 minutes ago"
    assert ago(timedelta(hours=3)) == "3 hours ago"
    assert ago(timedelta(days=2)) == "2 days ago"
    assert ago(timedelta(days=15)) == "2 weeks ago"
    assert ago(timedelta(days=90)) == "3 months ago"
    assert ago(timedelta(days=800)) == "2 years ago"
    assert format_relative_time("not a date", now=now) == ""
