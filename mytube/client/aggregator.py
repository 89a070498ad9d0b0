from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

from mytube.client.api_client import ApiRequestError, MyTubeApiClient
from mytube.client.history_store import HistoryStore
from mytube.client.messages import message
from mytube.client.skip_list_store import SkipListStore
from mytube.models.video import Video

LOGGER = logging.getLogger("mytube.client.aggregator")

DEFAULT_MAX_TOTAL_RESULTS = 50
DEFAULT_MAX_RESULTS_PER_TERM = 20

T = TypeVar("T")


class SearchProviderError(Exception):
    pass


class SearchProvider(Protocol):
    async def search(self, term: str, max_results: int, prefer_new: bool) -> list[Video]: ...


class ApiSearchProvider:
    """Runs term lookups through the MyTube API's YouTube proxy."""

    def __init__(self, api_client: MyTubeApiClient, *, language: str | None = None) -> None:
        self._api_client = api_client
        self._language = language

    async def search(self, term: str, max_results: int, prefer_new: bool) -> list[Video]:
        try:
            return await self._api_client.search_videos(
                term,
                max_results=max(1, max_results),
                prefer_new=prefer_new,
            )
        except ApiRequestError as exc:
            if exc.status_code is None:
                raise SearchProviderError(
                    message("fetch_failed", self._language, term=term)
                ) from exc
            raise SearchProviderError(str(exc)) from exc


def _empty_videos() -> list[Video]:
    return []


def _empty_terms() -> list[str]:
    return []


@dataclass
class SearchSession:
    terms: list[str] = field(default_factory=_empty_terms)
    queue: list[Video] = field(default_factory=_empty_videos)
    current: Video | None = None
    is_loading: bool = False
    error: str | None = None
    notice: str | None = None
    generation: int = 0

    @property
    def cursor(self) -> int | None:
        if self.current is None:
            return None
        for index, video in enumerate(self.queue):
            if video.id == self.current.id:
                return index
        return None


def parse_terms(query_text: str) -> list[str]:
    return [term.strip() for term in query_text.split(",") if term.strip()]


def per_term_budget(
    term_count: int,
    *,
    max_total_results: int = DEFAULT_MAX_TOTAL_RESULTS,
    max_results_per_term: int = DEFAULT_MAX_RESULTS_PER_TERM,
) -> int:
    if term_count < 1:
        raise ValueError("term_count must be at least 1")
    return min(max_total_results // term_count, max_results_per_term)


def dedupe_by_id(videos: Iterable[Video]) -> list[Video]:
    seen: set[str] = set()
    unique: list[Video] = []
    for video in videos:
        if video.id in seen:
            continue
        seen.add(video.id)
        unique.append(video)
    return unique


def fisher_yates_shuffle(items: Sequence[T], rng: random.Random) -> list[T]:
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


class SearchAggregator:
    """Turns a comma-separated query into a shuffled playback queue.

    Each search bumps the session generation; results from a search that is
    no longer the latest are dropped without touching the session or the
    history.
    """

    def __init__(
        self,
        provider: SearchProvider,
        *,
        history: HistoryStore,
        skip_list: SkipListStore,
        rng: random.Random | None = None,
        language: str | None = None,
        max_total_results: int = DEFAULT_MAX_TOTAL_RESULTS,
        max_results_per_term: int = DEFAULT_MAX_RESULTS_PER_TERM,
    ) -> None:
        self._provider = provider
        self._history = history
        self._skip_list = skip_list
        self._rng = rng or random.Random()
        self._language = language
        self._max_total_results = max_total_results
        self._max_results_per_term = max_results_per_term
        self._session = SearchSession()

    @property
    def session(self) -> SearchSession:
        return self._session

    async def search(self, query_text: str, *, prefer_new: bool = False) -> SearchSession:
        terms = parse_terms(query_text)
        if not terms:
            return self._session

        session = self._session
        session.generation += 1
        generation = session.generation
        session.terms = terms
        session.is_loading = True
        session.error = None

        budget = per_term_budget(
            len(terms),
            max_total_results=self._max_total_results,
            max_results_per_term=self._max_results_per_term,
        )
        LOGGER.info(
            "search started generation=%s terms=%s budget=%s prefer_new=%s",
            generation,
            len(terms),
            budget,
            prefer_new,
        )

        try:
            per_term_results = await self._fetch_all(terms, budget, prefer_new)
        except SearchProviderError as exc:
            self._fail(generation, str(exc) or message("search_failed", self._language))
            return session
        except Exception as exc:
            LOGGER.warning(
                "search provider raised unexpected error error_type=%s error=%s",
                type(exc).__name__,
                exc,
            )
            self._fail(generation, message("search_failed", self._language))
            return session

        if generation != session.generation:
            LOGGER.info("stale search results discarded generation=%s", generation)
            return session

        merged = dedupe_by_id(video for results in per_term_results for video in results)
        filtered = self._skip_list.filter(merged)
        queue = fisher_yates_shuffle(filtered, self._rng)

        session.queue = queue
        session.current = queue[0] if queue else None
        session.is_loading = False
        LOGGER.info(
            "search finished generation=%s merged=%s queued=%s",
            generation,
            len(merged),
            len(queue),
        )

        self._history.record(query_text.strip(), terms, len(queue))
        return session

    def select(self, video_id: str) -> Video | None:
        for video in self._session.queue:
            if video.id == video_id:
                self._session.current = video
                return video
        return None

    def previous(self) -> Video | None:
        cursor = self._session.cursor
        if cursor is not None and cursor > 0:
            self._session.current = self._session.queue[cursor - 1]
        return self._session.current

    def next(self) -> Video | None:
        cursor = self._session.cursor
        if cursor is not None and cursor + 1 < len(self._session.queue):
            self._session.current = self._session.queue[cursor + 1]
        return self._session.current

    def reshuffle(self) -> None:
        self._session.queue = fisher_yates_shuffle(self._session.queue, self._rng)

    def always_skip(self) -> Video | None:
        """Skip the current video for good and re-anchor the selection."""
        session = self._session
        skipped = session.current
        if skipped is None:
            return None
        cursor = session.cursor

        self._skip_list.add(skipped.id, skipped.title, skipped.channel_name)
        queue = [video for video in session.queue if video.id != skipped.id]
        session.queue = queue
        if not queue:
            session.current = None
        elif cursor is not None and cursor < len(queue):
            session.current = queue[cursor]
        else:
            session.current = queue[-1]

        session.notice = message("skip_added", self._language, title=skipped.title)
        return skipped

    def dismiss_messages(self) -> None:
        self._session.error = None
        self._session.notice = None

    async def _fetch_all(
        self,
        terms: list[str],
        budget: int,
        prefer_new: bool,
    ) -> list[list[Video]]:
        results = await asyncio.gather(
            *(self._provider.search(term, budget, prefer_new) for term in terms),
            return_exceptions=True,
        )
        per_term_results: list[list[Video]] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            per_term_results.append(result)
        return per_term_results

    def _fail(self, generation: int, error_message: str) -> None:
        session = self._session
        if generation != session.generation:
            LOGGER.info("stale search failure discarded generation=%s", generation)
            return
        LOGGER.warning("search failed generation=%s error=%s", generation, error_message)
        session.queue = []
        session.current = None
        session.is_loading = False
        session.error = error_message
