import asyncio
import sys
import time

import pytest

from keepalive_backend.core.commands import CommandFailed, run_command
from keepalive_backend.core.errors import BackendError, UnsupportedPlatformError
from keepalive_backend.input_control import BackendFactory, BaseMouseBackend
from keepalive_backend.input_control.factory import NoOpPowerStateMonitor
from keepalive_backend.input_control.platforms import (
    LinuxMouseBackend,
    LinuxPowerStateMonitor,
    MacOSMouseBackend,
    WindowsMouseBackend,
)
from keepalive_backend.models import MousePosition, Platform


class ScriptedBackend(BaseMouseBackend):
    """Backend whose native calls are plain Python functions"""

    platform_name = "scripted"

    def __init__(self, command_timeout: float = 0.5):
        super().__init__(command_timeout)
        self.position = (10, 20)
        self.read_error = None
        self.write_error = None
        self.write_delay = 0.0
        self.fallback_error = None
        self.key_presses = 0

    def _read_position(self):
        if self.read_error:
            raise self.read_error
        return self.position

    def _write_position(self, x, y):
        if self.write_delay:
            time.sleep(self.write_delay)
        if self.write_error:
            raise self.write_error
        self.position = (x, y)

    async def fallback_key_press(self):
        if self.fallback_error:
            raise self.fallback_error
        self.key_presses += 1


class TestMouseBackend:
    """Shared backend behaviour: timeouts, errors and the key press fallback"""

    async def test_get_and_set_position(self):
        backend = ScriptedBackend()

        await backend.set_position(11, 21)

        assert await backend.get_position() == MousePosition(x=11, y=21)
        assert backend.key_presses == 0

    async def test_read_failure_raises_backend_error(self):
        backend = ScriptedBackend()
        backend.read_error = OSError("no display")

        with pytest.raises(BackendError) as exc_info:
            await backend.get_position()

        assert exc_info.value.op == "get_position"
        assert isinstance(exc_info.value.cause, OSError)

    async def test_write_failure_tries_fallback_then_raises(self):
        backend = ScriptedBackend()
        backend.write_error = RuntimeError("event post failed")

        with pytest.raises(BackendError):
            await backend.set_position(1, 1)

        assert backend.key_presses == 1
        stats = backend.get_stats()
        assert stats["failures"] == 1
        assert stats["fallbacks"] == 1

    async def test_fallback_failure_keeps_original_error(self):
        backend = ScriptedBackend()
        backend.write_error = RuntimeError("event post failed")
        backend.fallback_error = OSError("osascript missing")

        with pytest.raises(BackendError) as exc_info:
            await backend.set_position(1, 1)

        assert exc_info.value.op == "set_position"

    async def test_write_timeout(self):
        backend = ScriptedBackend(command_timeout=0.05)
        backend.write_delay = 0.3

        with pytest.raises(BackendError) as exc_info:
            await backend.set_position(1, 1)

        assert isinstance(exc_info.value.cause, TimeoutError)
        # Let the worker thread finish before the loop closes
        await asyncio.sleep(0.3)


class TestBackendFactory:
    """Platform selection"""

    @pytest.mark.parametrize(
        "platform, expected",
        [
            ("darwin", Platform.DARWIN),
            ("win32", Platform.WIN32),
            ("linux", Platform.LINUX),
            ("linux2", Platform.LINUX),
            ("sunos5", None),
        ],
    )
    def test_resolve_platform(self, platform, expected):
        assert BackendFactory.resolve_platform(platform) is expected

    def test_platform_info(self):
        macos = BackendFactory.get_platform_info("darwin")
        windows = BackendFactory.get_platform_info("win32")

        assert macos.needs_permission is True
        assert macos.permission_name == "Accessibility"
        assert windows.needs_permission is False
        assert windows.model_dump() == {
            "platform": "win32",
            "needsPermission": False,
            "permissionName": "",
        }

    def test_unknown_platform_info_needs_no_permission(self):
        info = BackendFactory.get_platform_info("sunos5")

        assert info.needs_permission is False

    @pytest.mark.parametrize(
        "platform, backend_type",
        [
            ("darwin", MacOSMouseBackend),
            ("win32", WindowsMouseBackend),
            ("linux", LinuxMouseBackend),
        ],
    )
    def test_create_backend(self, platform, backend_type):
        backend = BackendFactory.create_backend(2.5, platform=platform)

        assert isinstance(backend, backend_type)
        assert backend.command_timeout == 2.5

    def test_create_backend_unsupported(self):
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            BackendFactory.create_backend(platform="sunos5")

        assert exc_info.value.platform == "sunos5"

    def test_power_state_monitor(self):
        assert isinstance(
            BackendFactory.create_power_state_monitor(platform="linux"),
            LinuxPowerStateMonitor,
        )
        monitor = BackendFactory.create_power_state_monitor(platform="sunos5")
        assert isinstance(monitor, NoOpPowerStateMonitor)

        monitor.start()
        assert monitor.is_running


class TestPowerStateCallbacks:
    """Sleep/wake notification fan-out"""

    def test_callback_failure_is_contained(self):
        calls = []

        def on_resume():
            calls.append("resume")
            raise RuntimeError("callback broke")

        monitor = NoOpPowerStateMonitor(on_sleep=lambda: calls.append("sleep"), on_resume=on_resume)

        monitor._notify_sleep()
        monitor._notify_resume()

        assert calls == ["sleep", "resume"]


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell utilities")
class TestRunCommand:
    """Bounded helper processes"""

    async def test_returns_stdout(self):
        assert await run_command(["sh", "-c", "echo hello"], timeout=5) == "hello"

    async def test_non_zero_exit(self):
        with pytest.raises(CommandFailed) as exc_info:
            await run_command(["sh", "-c", "echo boom >&2; exit 3"], timeout=5)

        assert exc_info.value.reason == "boom"
        assert not exc_info.value.timed_out

    async def test_timeout_kills_process(self):
        with pytest.raises(CommandFailed) as exc_info:
            await run_command(["sleep", "5"], timeout=0.1)

        assert exc_info.value.timed_out

    async def test_missing_executable(self):
        with pytest.raises(CommandFailed):
            await run_command(["keepalive-no-such-binary"], timeout=1)
