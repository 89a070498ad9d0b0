from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

LOGGER = logging.getLogger("mytube.client.background")


class BackgroundWriter:
    """Runs fire-and-forget persistence writes and logs their failures.

    Callers never await the writes they fire; `drain()` waits for everything
    still outstanding.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def fire(self, label: str, operation: Callable[[], Awaitable[object]]) -> None:
        task = asyncio.get_running_loop().create_task(self._run(label, operation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _run(self, label: str, operation: Callable[[], Awaitable[object]]) -> None:
        try:
            await operation()
        except Exception as exc:
            LOGGER.warning(
                "background write failed operation=%s error_type=%s error=%s",
                label,
                type(exc).__name__,
                exc,
            )
