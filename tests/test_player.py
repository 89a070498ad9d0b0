from __future__ import annotations

from mytube.client.player import PlayerController, PlayerState, autoplay_advance


class _CountingNavigator:
    def __init__(self) -> None:
        self.advanced = 0

    def next(self) -> object:
        self.advanced += 1
        return None


def test_create_replaces_existing_player_and_opens_watch_url() -> None:
    opened: list[str] = []
    states: list[PlayerState] = []
    controller = PlayerController(states.append, opener=opened.append)

    first = controller.create("abc")
    second = controller.create("def")

    assert first.player_id != second.player_id
    assert controller.handle == second
    assert opened == [
        "https://www.youtube.com/watch?v=abc",
        "https://www.youtube.com/watch?v=def",
    ]
    assert states == [PlayerState.UNSTARTED, PlayerState.UNSTARTED]
    assert controller.state is PlayerState.UNSTARTED


def test_state_changes_after_destroy_are_ignored() -> None:
    states: list[PlayerState] = []
    controller = PlayerController(states.append)
    controller.create("abc")
    controller.handle_state(PlayerState.PLAYING)

    controller.destroy()
    controller.handle_state(PlayerState.ENDED)
    controller.destroy()

    assert states == [PlayerState.UNSTARTED, PlayerState.PLAYING]
    assert controller.handle is None
    assert controller.state is None


def test_autoplay_advances_only_on_ended() -> None:
    navigator = _CountingNavigator()
    controller = PlayerController(autoplay_advance(navigator, autoplay=True))
    controller.create("abc")

    for state in (PlayerState.PLAYING, PlayerState.PAUSED, PlayerState.BUFFERING):
        controller.handle_state(state)
    assert navigator.advanced == 0

    controller.handle_state(PlayerState.ENDED)
    assert navigator.advanced == 1


def test_autoplay_disabled_never_advances() -> None:
    navigator = _CountingNavigator()
    controller = PlayerController(autoplay_advance(navigator, autoplay=False))
    controller.create("abc")

    controller.handle_state(PlayerState.ENDED)

    assert navigator.advanced == 0
