"""
Cooperative timer service
All keep-alive timing (move jitter, permission polling, session duration) goes through here,
so a single asyncio loop drives everything and tests can swap in a manual clock.
"""

import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Set

from keepalive_backend.core.logger import get_logger

logger = get_logger(__name__)

TimerCallback = Callable[[], Any]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


class TimerHandle(ABC):
    """Handle to a pending timer"""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the timer; no-op if it already fired"""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class TimerService(ABC):
    """Timer abstraction used by the scheduler, permission monitor and session controller"""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @abstractmethod
    def now(self) -> int:
        """Current time in epoch milliseconds"""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        """Run callback once after delay_ms

        If the callback returns an awaitable it is run as a task on the loop.
        """

    def spawn(self, awaitable: Awaitable[Any], name: Optional[str] = None) -> asyncio.Task:
        """Run a coroutine in the background, keeping a reference until it finishes"""
        task = asyncio.ensure_future(awaitable)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task {task.get_name()} failed: {exc}", exc_info=exc
            )

    def _dispatch(self, callback: TimerCallback) -> None:
        """Invoke a timer callback, scheduling its result if it is a coroutine"""
        try:
            result = callback()
        except Exception as e:
            logger.error(f"Timer callback failed: {e}", exc_info=True)
            return
        if inspect.isawaitable(result):
            self.spawn(result)

    async def shutdown(self) -> None:
        """Cancel and wait for any background task still running"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioTimerService(TimerService):
    """Timer service on top of the running asyncio event loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__()
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> int:
        return now_ms()

    def call_later(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        handle = self.loop.call_later(
            max(0, delay_ms) / 1000.0, self._dispatch, callback
        )
        return _AsyncioTimerHandle(handle)

    def call_soon_threadsafe(self, callback: TimerCallback) -> None:
        """Hand a callback from a foreign thread (e.g. OS power notifications) to the loop"""
        self.loop.call_soon_threadsafe(self._dispatch, callback)
