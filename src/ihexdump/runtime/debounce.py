"""Single-slot delayed task used to coalesce document change events."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

LOGGER = logging.getLogger(__name__)

SleepCallable = Callable[[float], Awaitable[object]]


class PendingUpdate:
    """Hold at most one scheduled callback and fire it after ``delay`` seconds.

    Scheduling again while a callback is still waiting replaces it; the
    replaced callback never runs. Once a callback has started it runs to
    completion.
    """

    def __init__(self, delay: float, *, sleep: SleepCallable | None = None) -> None:
        if delay < 0:
            raise ValueError("debounce delay must not be negative")
        self.delay = float(delay)
        self._sleep_fn: SleepCallable = sleep or asyncio.sleep
        self._task: asyncio.Task[None] | None = None
        self.superseded = 0
        self.fired = 0

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, callback: Callable[[], None]) -> None:
        loop = asyncio.get_running_loop()
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            self.superseded += 1
            LOGGER.debug("pending update superseded (%d so far)", self.superseded)
        self._task = loop.create_task(self._fire_later(callback))

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def wait(self) -> None:
        """Wait until no callback is scheduled, following replacements."""

        while self._task is not None:
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            if self._task is task:
                break

    async def _fire_later(self, callback: Callable[[], None]) -> None:
        await self._sleep_fn(self.delay)
        if self._task is asyncio.current_task():
            self._task = None
        self.fired += 1
        try:
            callback()
        except Exception:
            LOGGER.exception("pending update callback failed")


__all__ = ["PendingUpdate", "SleepCallable"]
