from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from itertools import count
from typing import Protocol

LOGGER = logging.getLogger("mytube.client.player")

WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"


class PlayerState(IntEnum):
    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


class _Navigator(Protocol):
    def next(self) -> object: ...


@dataclass(frozen=True)
class PlayerHandle:
    player_id: int
    video_id: str

    @property
    def watch_url(self) -> str:
        return WATCH_URL_TEMPLATE.format(video_id=self.video_id)


class PlayerController:
    """Owns at most one live player and relays its state changes.

    `opener` is called with the watch URL whenever a player is created, which
    lets the CLI hand playback to a browser.
    """

    def __init__(
        self,
        on_state_change: Callable[[PlayerState], None] | None = None,
        *,
        opener: Callable[[str], object] | None = None,
    ) -> None:
        self._on_state_change = on_state_change
        self._opener = opener
        self._ids = count(1)
        self._handle: PlayerHandle | None = None
        self._state: PlayerState | None = None

    @property
    def handle(self) -> PlayerHandle | None:
        return self._handle

    @property
    def state(self) -> PlayerState | None:
        return self._state

    def create(self, video_id: str) -> PlayerHandle:
        if self._handle is not None:
            self.destroy()
        handle = PlayerHandle(player_id=next(self._ids), video_id=video_id)
        self._handle = handle
        LOGGER.debug("player created player_id=%s video_id=%s", handle.player_id, video_id)
        if self._opener is not None:
            self._opener(handle.watch_url)
        self.handle_state(PlayerState.UNSTARTED)
        return handle

    def destroy(self) -> None:
        if self._handle is None:
            return
        LOGGER.debug("player destroyed player_id=%s", self._handle.player_id)
        self._handle = None
        self._state = None

    def handle_state(self, state: PlayerState) -> None:
        if self._handle is None:
            return
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)


def autoplay_advance(aggregator: _Navigator, autoplay: bool) -> Callable[[PlayerState], None]:
    def _on_state_change(state: PlayerState) -> None:
        if autoplay and state == PlayerState.ENDED:
            aggregator.next()

    return _on_state_change
