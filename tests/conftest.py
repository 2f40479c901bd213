"""Pytest configuration.

Points the configuration directory at a throwaway location before any
``keepalive_backend`` module is imported: the logger and config loader
create their files on first use.
"""

import asyncio
import heapq
import itertools
import os
import tempfile

os.environ["KEEPALIVE_HOME"] = tempfile.mkdtemp(prefix="keepalive-test-")

import pytest  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

from keepalive_backend.config.loader import ConfigLoader  # noqa: E402
from keepalive_backend.core.errors import BackendError  # noqa: E402
from keepalive_backend.core.events import EventBus  # noqa: E402
from keepalive_backend.core.scheduler import KeepAliveScheduler  # noqa: E402
from keepalive_backend.core.session import SessionController  # noqa: E402
from keepalive_backend.core.store import ConfigStore  # noqa: E402
from keepalive_backend.core.timers import TimerHandle, TimerService  # noqa: E402
from keepalive_backend.input_control.base import BaseMouseBackend  # noqa: E402
from keepalive_backend.input_control.factory import BackendFactory  # noqa: E402
from keepalive_backend.models import MousePosition  # noqa: E402
from keepalive_backend.system.permissions import PermissionMonitor  # noqa: E402

START_MS = 1_700_000_000_000
MINUTE_MS = 60_000


class FakeTimerHandle(TimerHandle):
    def __init__(self, due: int):
        self.due = due
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class FakeTimerService(TimerService):
    """Manual clock: timers only fire inside advance()"""

    def __init__(self, start: int = START_MS):
        super().__init__()
        self._now = start
        self._queue = []
        self._seq = itertools.count()

    def now(self) -> int:
        return self._now

    def call_later(self, delay_ms, callback):
        handle = FakeTimerHandle(self._now + max(0, delay_ms))
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle, callback))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def jump(self, ms: int) -> None:
        """Move the clock without firing timers (time spent suspended)"""
        self._now += ms

    async def advance(self, ms: int) -> None:
        """Move the clock, firing every due timer in order and awaiting its work"""
        target = self._now + ms
        await self.settle()
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, due)
            self._dispatch(callback)
            await self.settle()
        self._now = target

    async def settle(self) -> None:
        """Wait until no spawned background task is left"""
        await asyncio.sleep(0)
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        await asyncio.sleep(0)


class FakeBackend(BaseMouseBackend):
    """In-memory cursor with failure injection"""

    platform_name = "fake"
    implementation = "memory"

    def __init__(self, x: int = 100, y: int = 200):
        super().__init__(command_timeout=1.0)
        self.position = MousePosition(x=x, y=y)
        self.writes = []
        self.fail_get = False
        self.fail_set = False
        self.key_presses = 0
        self.on_get = None

    async def get_position(self) -> MousePosition:
        if self.on_get:
            self.on_get()
        if self.fail_get:
            raise BackendError("get_position", RuntimeError("injected"))
        return self.position

    async def set_position(self, x: int, y: int) -> None:
        if self.fail_set:
            await self._try_fallback()
            raise BackendError("set_position", RuntimeError("injected"))
        self.writes.append((x, y))
        self.position = MousePosition(x=x, y=y)

    def _read_position(self):
        return self.position.x, self.position.y

    def _write_position(self, x: int, y: int) -> None:
        self.position = MousePosition(x=x, y=y)

    async def fallback_key_press(self) -> None:
        self.key_presses += 1


class FakeTrust:
    """Stands in for AXIsProcessTrustedWithOptions"""

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.calls = []

    def __call__(self, prompt: bool) -> bool:
        self.calls.append(prompt)
        return self.granted


@pytest.fixture
def timers():
    return FakeTimerService()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def config_loader(tmp_path):
    loader = ConfigLoader(str(tmp_path / "config.toml"))
    loader.load()
    return loader


@pytest.fixture
def store(config_loader, timers):
    return ConfigStore(config_loader, clock=timers.now)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def received(events):
    """Every (event_name, payload) emitted on the bus"""
    records = []
    events.subscribe(lambda name, payload: records.append((name, payload)))
    return records


@pytest.fixture
def trust():
    return FakeTrust(granted=True)


@pytest.fixture
def guidance():
    return AsyncMock(return_value=False)


@pytest.fixture
def macos_info():
    return BackendFactory.get_platform_info("darwin")


@pytest.fixture
def permissions(macos_info, timers, trust, guidance):
    return PermissionMonitor(
        macos_info, timers, trust_query=trust, guidance_prompt=guidance
    )


@pytest.fixture
def scheduler(backend, timers):
    return KeepAliveScheduler(backend, timers)


@pytest.fixture
def session(scheduler, permissions, store, events, timers):
    return SessionController(scheduler, permissions, store, events, timers)
