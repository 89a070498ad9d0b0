from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mytube.telemetry import TelemetryClient, build_telemetry_client, search_fingerprint


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))


def test_telemetry_client_redacts_search_text_and_credentials() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    client.emit(
        "youtube.search.error",
        request_id="req_123",
        query="late night jazz",
        video_title="Private mix",
        api_token="key_a.secret",
        status_code=403,
        detail="quota   exceeded\nfor today",
        payload={"nested": True},
    )

    assert len(sink.events) == 1
    event_name, attributes = sink.events[0]
    assert event_name == "youtube.search.error"
    assert attributes["request_id"] == "req_123"
    assert attributes["status_code"] == 403
    assert attributes["query"] == "[redacted]"
    assert attributes["video_title"] == "[redacted]"
    assert attributes["api_token"] == "[redacted]"
    assert attributes["detail"] == "quota exceeded for today"
    assert attributes["payload"] == "dict"


def test_long_strings_are_truncated() -> None:
    sink = _CaptureSink()
    TelemetryClient(enabled=True, sink=sink).emit("http.request.error", error="x" * 400)

    _, attributes = sink.events[0]
    assert attributes["error"] == "x" * 160 + "..."


def test_disabled_telemetry_client_does_not_emit() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=False, sink=sink)

    client.emit("http.request.start", request_id="req_1")
    assert sink.events == []


def test_build_telemetry_client_none_sink_is_disabled() -> None:
    assert build_telemetry_client(enabled=True, sink="none").enabled is False
    assert build_telemetry_client(enabled=False, sink="log").enabled is False
    assert build_telemetry_client(enabled=True, sink="log").enabled is True


def test_span_emits_finish_with_outcome_and_error_on_exception() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    with client.span("youtube.search", terms=["a", "b"]) as outcome:
        outcome["result_count"] = 7

    try:
        with client.span("youtube.search"):
            raise RuntimeError("upstream down")
    except RuntimeError:
        pass

    (finish_name, finish), (error_name, error) = sink.events
    assert finish_name == "youtube.search.finish"
    assert finish["result_count"] == 7
    assert finish["terms"] == 2
    assert isinstance(finish["duration_ms"], int)
    assert error_name == "youtube.search.error"
    assert error["error_type"] == "RuntimeError"


def test_search_fingerprint_ignores_case_and_spacing() -> None:
    assert search_fingerprint("Jazz,  Lofi") == search_fingerprint(" jazz, lofi ")
    assert search_fingerprint("jazz") != search_fingerprint("lofi")
    assert len(search_fingerprint("jazz")) == 12
