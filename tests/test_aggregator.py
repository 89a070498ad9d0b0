from __future__ import annotations

import asyncio
import random
from collections import Counter

import pytest

from mytube.client.aggregator import (
    SearchAggregator,
    SearchProviderError,
    SearchSession,
    dedupe_by_id,
    fisher_yates_shuffle,
    parse_terms,
    per_term_budget,
)
from mytube.client.background import BackgroundWriter
from mytube.client.backends import HistorySnapshot, SkipListEntry
from mytube.client.history_store import HistoryStore
from mytube.client.skip_list_store import SkipListStore
from mytube.models.video import Video
from mytube.repositories.search_history_repository import HistoryTier


def _video(video_id: str, *, title: str | None = None) -> Video:
    return Video(
        id=video_id,
        title=title or f"Video {video_id}",
        description="",
        thumbnail_url="",
        channel_name=f"Channel {video_id}",
        channel_id="chan",
        published_at="2024-01-01T00:00:00Z",
    )


class _FakeProvider:
    def __init__(self, results: dict[str, list[Video] | Exception]) -> None:
        self.results = results
        self.calls: list[tuple[str, int, bool]] = []
        self.gates: dict[str, asyncio.Event] = {}

    async def search(self, term: str, max_results: int, prefer_new: bool) -> list[Video]:
        self.calls.append((term, max_results, prefer_new))
        gate = self.gates.get(term)
        if gate is not None:
            await gate.wait()
        result = self.results[term]
        if isinstance(result, Exception):
            raise result
        return list(result)


class _RecordingHistoryBackend:
    def __init__(self) -> None:
        self.records: list[tuple[str, list[str], int | None]] = []

    @property
    def has_single_tier(self) -> bool:
        return True

    async def load(self) -> HistorySnapshot:
        return HistorySnapshot()

    async def record(self, query_text: str, terms: list[str], result_count: int | None) -> None:
        self.records.append((query_text, terms, result_count))

    async def remove(self, query_text: str, tier: HistoryTier) -> None:
        _ = (query_text, tier)

    async def clear(self) -> None:
        return None


class _RecordingSkipBackend:
    def __init__(self, initial: list[str] | None = None) -> None:
        self.initial = initial or []
        self.added: list[tuple[str, str | None, str | None]] = []

    async def load(self) -> list[SkipListEntry]:
        return [SkipListEntry(video_id=video_id) for video_id in self.initial]

    async def add(self, video_id: str, video_title: str | None, channel_name: str | None) -> bool:
        self.added.append((video_id, video_title, channel_name))
        return True

    async def remove(self, video_id: str) -> None:
        _ = video_id


class _Harness:
    def __init__(
        self,
        provider: _FakeProvider,
        *,
        skipped: list[str] | None = None,
        seed: int = 7,
        language: str | None = "en",
    ) -> None:
        self.writer = BackgroundWriter()
        self.history_backend = _RecordingHistoryBackend()
        self.skip_backend = _RecordingSkipBackend(skipped)
        self.history = HistoryStore(self.history_backend, writer=self.writer)
        self.skip_list = SkipListStore(self.skip_backend, writer=self.writer)
        self.aggregator = SearchAggregator(
            provider,
            history=self.history,
            skip_list=self.skip_list,
            rng=random.Random(seed),
            language=language,
        )

    async def load(self) -> None:
        await self.skip_list.load()


def _run_search(harness: _Harness, query: str, **kwargs: bool) -> SearchSession:
    async def _run() -> SearchSession:
        await harness.load()
        session = await harness.aggregator.search(query, **kwargs)
        await harness.writer.drain()
        return session

    return asyncio.run(_run())


def test_parse_terms_trims_and_drops_empty() -> None:
    assert parse_terms(" jazz ,, lofi beats ,") == ["jazz", "lofi beats"]
    assert parse_terms("   ") == []
    assert parse_terms(" , ,") == []
    assert parse_terms("single") == ["single"]


@pytest.mark.parametrize(("term_count", "expected"), [(1, 20), (2, 20), (3, 16), (10, 5), (50, 1)])
def test_per_term_budget(term_count: int, expected: int) -> None:
    assert per_term_budget(term_count) == expected


def test_per_term_budget_rejects_zero_terms() -> None:
    with pytest.raises(ValueError):
        per_term_budget(0)


def test_dedupe_keeps_first_occurrence_and_is_idempotent() -> None:
    videos = [_video("1"), _video("2", title="first two"), _video("2", title="second two")]

    deduped = dedupe_by_id(videos)

    assert [video.id for video in deduped] == ["1", "2"]
    assert deduped[1].title == "first two"
    assert dedupe_by_id(deduped) == deduped


@pytest.mark.parametrize("size", [0, 1, 2, 9, 40])
def test_shuffle_is_a_permutation(size: int) -> None:
    items = [f"id{index % 5}" for index in range(size)]
    shuffled = fisher_yates_shuffle(items, random.Random(size))
    assert Counter(shuffled) == Counter(items)
    assert items == [f"id{index % 5}" for index in range(size)]


def test_shuffle_reaches_every_permutation_of_three() -> None:
    rng = random.Random(1)
    seen = {tuple(fisher_yates_shuffle(["a", "b", "c"], rng)) for _ in range(300)}
    assert len(seen) == 6


def test_search_merges_dedupes_and_records_history() -> None:
    provider = _FakeProvider(
        {
            "a": [_video("1"), _video("2", title="from a")],
            "b": [_video("2", title="from b"), _video("3")],
        }
    )
    harness = _Harness(provider)

    session = _run_search(harness, "a, b", prefer_new=True)

    assert {video.id for video in session.queue} == {"1", "2", "3"}
    assert next(video for video in session.queue if video.id == "2").title == "from a"
    assert session.current == session.queue[0]
    assert session.cursor == 0
    assert session.terms == ["a", "b"]
    assert session.error is None
    assert session.is_loading is False
    assert provider.calls == [("a", 20, True), ("b", 20, True)]
    assert harness.history_backend.records == [("a, b", ["a", "b"], 3)]
    assert harness.history.full_history == ["a, b"]
    assert harness.history.single_history == ["b", "a"]


def test_search_filters_skipped_videos() -> None:
    provider = _FakeProvider({"jazz": [_video("1"), _video("2"), _video("3")]})
    harness = _Harness(provider, skipped=["2"])

    session = _run_search(harness, "jazz")

    assert {video.id for video in session.queue} == {"1", "3"}
    assert harness.history_backend.records == [("jazz", ["jazz"], 2)]


def test_blank_query_is_a_no_op() -> None:
    provider = _FakeProvider({})
    harness = _Harness(provider)

    session = _run_search(harness, "  , ")

    assert session == SearchSession()
    assert provider.calls == []
    assert harness.history_backend.records == []


def test_provider_failure_clears_queue_and_sets_error() -> None:
    provider = _FakeProvider(
        {
            "ok": [_video("1")],
            "bad": SearchProviderError("quota exceeded"),
            "fine": [_video("2")],
        }
    )
    harness = _Harness(provider)
    harness.aggregator.session.queue = [_video("old")]
    harness.aggregator.session.current = _video("old")

    session = _run_search(harness, "ok, bad, fine")

    assert session.queue == []
    assert session.current is None
    assert session.error == "quota exceeded"
    assert session.is_loading is False
    assert harness.history_backend.records == []


def test_unexpected_provider_failure_uses_localized_default() -> None:
    provider = _FakeProvider({"x": RuntimeError("boom")})
    harness = _Harness(provider, language="he")

    session = _run_search(harness, "x")

    assert session.error == "שגיאה בחיפוש סרטונים"


def test_stale_search_results_are_discarded() -> None:
    provider = _FakeProvider({"slow": [_video("s1")], "fast": [_video("f1")]})
    provider.gates["slow"] = asyncio.Event()
    harness = _Harness(provider)

    async def _run() -> SearchSession:
        slow_task = asyncio.create_task(harness.aggregator.search("slow"))
        await asyncio.sleep(0)
        await harness.aggregator.search("fast")
        provider.gates["slow"].set()
        await slow_task
        await harness.writer.drain()
        return harness.aggregator.session

    session = asyncio.run(_run())

    assert [video.id for video in session.queue] == ["f1"]
    assert session.generation == 2
    assert session.terms == ["fast"]
    assert harness.history_backend.records == [("fast", ["fast"], 1)]


def test_navigation_has_no_wraparound() -> None:
    provider = _FakeProvider({"q": [_video("1"), _video("2"), _video("3")]})
    harness = _Harness(provider)
    session = _run_search(harness, "q")
    order = [video.id for video in session.queue]

    assert harness.aggregator.previous() == session.queue[0]
    assert harness.aggregator.next() is not None
    assert session.cursor == 1
    harness.aggregator.next()
    assert harness.aggregator.next() == session.queue[2]
    assert session.cursor == 2

    assert harness.aggregator.select(order[0]) == session.queue[0]
    assert harness.aggregator.select("missing") is None
    assert session.cursor == 0


def test_reshuffle_keeps_selection_and_membership() -> None:
    videos = [_video(str(index)) for index in range(10)]
    provider = _FakeProvider({"q": videos})
    harness = _Harness(provider)
    session = _run_search(harness, "q")
    harness.aggregator.select(session.queue[4].id)
    selected = session.current

    harness.aggregator.reshuffle()

    assert session.current == selected
    assert {video.id for video in session.queue} == {video.id for video in videos}
    assert session.cursor is not None
    assert session.queue[session.cursor] == selected


def test_always_skip_reanchors_on_same_index() -> None:
    provider = _FakeProvider({"q": [_video("1"), _video("2"), _video("3")]})
    harness = _Harness(provider)

    async def _run() -> None:
        await harness.aggregator.search("q")
        session = harness.aggregator.session
        harness.aggregator.select(session.queue[1].id)
        expected_next = session.queue[2]

        skipped = harness.aggregator.always_skip()

        assert skipped is not None
        assert skipped.id not in {video.id for video in session.queue}
        assert session.current == expected_next
        assert session.cursor == 1
        assert harness.skip_list.is_skipped(skipped.id)
        assert session.notice == f'"{skipped.title}" added to skip list'
        await harness.writer.drain()
        assert harness.skip_backend.added == [(skipped.id, skipped.title, skipped.channel_name)]

    asyncio.run(_run())


def test_always_skip_last_element_selects_new_last() -> None:
    provider = _FakeProvider({"q": [_video("1"), _video("2")]})
    harness = _Harness(provider)
    session = _run_search(harness, "q")
    harness.aggregator.select(session.queue[1].id)
    remaining = session.queue[0]

    async def _skip() -> None:
        harness.aggregator.always_skip()
        await harness.writer.drain()

    asyncio.run(_skip())

    assert session.current == remaining


def test_always_skip_single_item_queue_clears_selection() -> None:
    provider = _FakeProvider({"q": [_video("x")]})
    harness = _Harness(provider)
    session = _run_search(harness, "q")

    async def _skip() -> None:
        harness.aggregator.always_skip()
        await harness.writer.drain()

    asyncio.run(_skip())

    assert session.queue == []
    assert session.current is None
    assert session.cursor is None
    assert harness.aggregator.always_skip() is None


def test_skipped_video_is_excluded_from_next_search() -> None:
    provider = _FakeProvider({"q": [_video("1"), _video("2")]})
    harness = _Harness(provider)

    async def _run() -> SearchSession:
        await harness.aggregator.search("q")
        harness.aggregator.select("1")
        harness.aggregator.always_skip()
        await harness.aggregator.search("q")
        await harness.writer.drain()
        return harness.aggregator.session

    session = asyncio.run(_run())

    assert [video.id for video in session.queue] == ["2"]
