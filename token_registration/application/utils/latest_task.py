from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any


class LatestTask:
    """
    Holds at most one running task; starting a new one cancels the previous.

    Each task is handed the generation it was started under. A finishing
    coroutine checks `is_current(generation)` before touching shared state, so
    late results of a superseded task are dropped even if they arrive after
    cancellation was requested.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[Any] | None = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> asyncio.Task[Any] | None:
        return self._task

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def replace(self, factory: Callable[[int], Coroutine[Any, Any, Any]]) -> asyncio.Task[Any]:
        self.cancel()
        self._task = asyncio.create_task(factory(self._generation))
        return self._task

    def cancel(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
