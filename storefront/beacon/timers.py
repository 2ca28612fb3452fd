from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional

log = logging.getLogger("storefront.beacon")


class PeriodicTask:
    """Cancellable fixed-interval task, first run one interval after start.

    start() replaces a running task; cancel() on a stopped task does
    nothing.
    """
    __slots__ = ("interval_s", "_fn", "_name", "_task")

    def __init__(self, interval_s: float, fn: Callable[[], Awaitable[None]],
                 name: str = "periodic"):
        self.interval_s = interval_s
        self._fn = fn
        self._name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._loop(), name=self._name)

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def stop(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            try:
                await self._fn()
            except Exception:
                log.exception("beacon.timer.tick_failed name=%s", self._name)
