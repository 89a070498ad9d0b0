from __future__ import annotations

import logging

from mytube.client.background import BackgroundWriter
from mytube.client.backends import HistoryBackend, HistorySnapshot, move_to_front
from mytube.repositories.search_history_repository import HistoryTier

LOGGER = logging.getLogger("mytube.client.history")


class HistoryStore:
    """Search history as the user sees it, plus the backend that persists it.

    UI state changes synchronously; backend writes are fired through the
    background writer and never awaited by callers. Loading from the
    primary backend falls back to `fallback` on any error.
    """

    def __init__(
        self,
        backend: HistoryBackend,
        *,
        writer: BackgroundWriter,
        fallback: HistoryBackend | None = None,
        full_limit: int = 5,
        single_limit: int = 10,
    ) -> None:
        self._backend = backend
        self._writer = writer
        self._fallback = fallback
        self._full_limit = max(1, full_limit)
        self._single_limit = max(1, single_limit)
        self._full_history: list[str] = []
        self._single_history: list[str] = []
        self._is_loading = False

    @property
    def backend(self) -> HistoryBackend:
        return self._backend

    @property
    def full_history(self) -> list[str]:
        return list(self._full_history)

    @property
    def single_history(self) -> list[str]:
        return list(self._single_history)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    async def load(self) -> HistorySnapshot:
        self._is_loading = True
        try:
            snapshot = await self._load_with_fallback()
        finally:
            self._is_loading = False
        self._full_history = snapshot.full_history[: self._full_limit]
        self._single_history = snapshot.single_history[: self._single_limit]
        return HistorySnapshot(
            full_history=self.full_history,
            single_history=self.single_history,
        )

    def record(
        self,
        query_text: str,
        terms: list[str] | None = None,
        result_count: int | None = None,
        *,
        ui_only: bool = False,
    ) -> None:
        normalized_query = query_text.strip()
        if not normalized_query:
            return
        normalized_terms = [term for term in (terms or []) if term]

        self._full_history = move_to_front(
            self._full_history,
            normalized_query,
            limit=self._full_limit,
        )
        if len(normalized_terms) > 1 and self._backend.has_single_tier:
            for term in normalized_terms:
                self._single_history = move_to_front(
                    self._single_history,
                    term,
                    limit=self._single_limit,
                )

        if ui_only:
            return

        backend = self._backend
        self._writer.fire(
            "history.record",
            lambda: backend.record(normalized_query, normalized_terms, result_count),
        )

    def remove(self, query_text: str, tier: HistoryTier = HistoryTier.FULL) -> None:
        if tier is HistoryTier.FULL:
            self._full_history = [item for item in self._full_history if item != query_text]
        else:
            self._single_history = [item for item in self._single_history if item != query_text]

        backend = self._backend
        self._writer.fire("history.remove", lambda: backend.remove(query_text, tier))

    def clear(self) -> None:
        self._full_history = []
        self._single_history = []

        backend = self._backend
        self._writer.fire("history.clear", backend.clear)

    async def _load_with_fallback(self) -> HistorySnapshot:
        try:
            return await self._backend.load()
        except Exception as exc:
            LOGGER.warning(
                "history load failed error_type=%s error=%s",
                type(exc).__name__,
                exc,
            )
        if self._fallback is None:
            return HistorySnapshot()
        try:
            return await self._fallback.load()
        except Exception as exc:
            LOGGER.warning("history fallback load failed error=%s", exc)
            return HistorySnapshot()
