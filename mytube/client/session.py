from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

from mytube.client.aggregator import ApiSearchProvider, SearchAggregator, SearchProvider
from mytube.client.api_client import MyTubeApiClient
from mytube.client.background import BackgroundWriter
from mytube.client.backends import (
    LocalHistoryBackend,
    LocalSkipListBackend,
    RemoteHistoryBackend,
    RemoteSkipListBackend,
)
from mytube.client.history_store import HistoryStore
from mytube.client.local_storage import LocalKeyValueStore
from mytube.client.skip_list_store import SkipListStore
from mytube.config import AppSettings

LOGGER = logging.getLogger("mytube.client.session")


@dataclass(frozen=True)
class ClientSession:
    api_client: MyTubeApiClient
    writer: BackgroundWriter
    history: HistoryStore
    skip_list: SkipListStore
    aggregator: SearchAggregator
    authenticated: bool

    async def load(self) -> None:
        await asyncio.gather(self.history.load(), self.skip_list.load())

    async def close(self) -> None:
        await self.writer.drain()


def open_session(
    settings: AppSettings,
    *,
    token: str | None = None,
    provider: SearchProvider | None = None,
    rng: random.Random | None = None,
    language: str | None = None,
) -> ClientSession:
    """Wire the stores and aggregator for one identity.

    A bearer token selects the remote backends, with guest local storage as
    the load fallback. Without one every store persists locally.
    """
    effective_token = token if token is not None else settings.api_token
    api_client = MyTubeApiClient(
        settings.api_base_url,
        token=effective_token,
        timeout_seconds=settings.api_http_timeout_seconds,
    )
    storage = LocalKeyValueStore(settings.local_storage_path)
    local_history = LocalHistoryBackend(storage, limit=settings.history_guest_limit)
    local_skip_list = LocalSkipListBackend(storage)
    writer = BackgroundWriter()

    if api_client.authenticated:
        history = HistoryStore(
            RemoteHistoryBackend(api_client),
            writer=writer,
            fallback=local_history,
            full_limit=settings.history_full_limit,
            single_limit=settings.history_single_limit,
        )
        skip_list = SkipListStore(
            RemoteSkipListBackend(api_client),
            writer=writer,
            fallback=local_skip_list,
        )
    else:
        history = HistoryStore(
            local_history,
            writer=writer,
            full_limit=settings.history_guest_limit,
            single_limit=settings.history_single_limit,
        )
        skip_list = SkipListStore(local_skip_list, writer=writer)

    LOGGER.info("client session opened authenticated=%s", api_client.authenticated)
    aggregator = SearchAggregator(
        provider or ApiSearchProvider(api_client, language=language),
        history=history,
        skip_list=skip_list,
        rng=rng,
        language=language,
        max_total_results=settings.search_max_total_results,
        max_results_per_term=settings.search_max_results_per_term,
    )
    return ClientSession(
        api_client=api_client,
        writer=writer,
        history=history,
        skip_list=skip_list,
        aggregator=aggregator,
        authenticated=api_client.authenticated,
    )
