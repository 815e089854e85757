"""Cancellable delayed callbacks.

``AsyncioScheduler`` runs on the host's event loop. ``ManualScheduler`` keeps
its own clock and only fires tasks when ``advance()`` is called, which suits
synchronous hosts and tests.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Optional, Protocol

from kube_context.utils.logger import get_logger

logger = get_logger(__name__)


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Optional[ScheduledTask]: ...


class AsyncioScheduler:
    """Schedules on the given loop, or on the loop running at call time.

    With no loop at all the callback is not scheduled and None is returned.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> Optional[asyncio.TimerHandle]:
        loop = self._loop or _running_loop()
        if loop is None or loop.is_closed():
            logger.warning("No event loop, callback not scheduled", extra={"action": "schedule_skipped"})
            return None
        return loop.call_later(delay, callback)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class ManualTask:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    def __init__(self) -> None:
        self.now = 0.0
        self._seq = itertools.count()
        self._queue: list[tuple[float, int, ManualTask]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(self.now + delay, callback)
        heapq.heappush(self._queue, (task.due, next(self._seq), task))
        return task

    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run every task that became due. Returns the number run."""
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self.now = due
            if task.cancelled():
                continue
            task.callback()
            ran += 1
        self.now = target
        return ran
