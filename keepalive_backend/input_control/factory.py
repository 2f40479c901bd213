"""
Input control platform factory
Creates the mouse backend and power state monitor for the running platform

Design Pattern: Factory Pattern
- Callers only need to know the interface, without caring about specific implementation
- The platform is resolved once at startup; shared logic never branches on it
"""

import sys
from typing import Callable, Optional

from keepalive_backend.core.errors import UnsupportedPlatformError
from keepalive_backend.core.logger import get_logger
from keepalive_backend.models import Platform, PlatformInfo

from .base import DEFAULT_COMMAND_TIMEOUT, BaseEventListener, BaseMouseBackend
from .platforms import (
    LinuxMouseBackend,
    LinuxPowerStateMonitor,
    MacOSMouseBackend,
    MacOSPowerStateMonitor,
    WindowsMouseBackend,
    WindowsPowerStateMonitor,
)

logger = get_logger(__name__)

_PLATFORM_INFO = {
    Platform.DARWIN: PlatformInfo(
        platform=Platform.DARWIN,
        needs_permission=True,
        permission_name="Accessibility",
    ),
    Platform.WIN32: PlatformInfo(
        platform=Platform.WIN32, needs_permission=False, permission_name=""
    ),
    Platform.LINUX: PlatformInfo(
        platform=Platform.LINUX, needs_permission=False, permission_name=""
    ),
}


class NoOpPowerStateMonitor(BaseEventListener):
    """No-op power state monitor for platforms without sleep/wake notifications"""

    def start(self):
        """No-op start"""
        self.is_running = True

    def stop(self):
        """No-op stop"""
        self.is_running = False


class BackendFactory:
    """Input backend factory class"""

    @staticmethod
    def get_platform() -> str:
        """Get current platform identifier

        Returns:
            str: 'darwin' (macOS), 'win32' (Windows), 'linux' (Linux)
        """
        return sys.platform

    @staticmethod
    def resolve_platform(platform: Optional[str] = None) -> Optional[Platform]:
        """Map a sys.platform value to a supported Platform, None if unsupported"""
        platform = platform or BackendFactory.get_platform()
        if platform == "darwin":
            return Platform.DARWIN
        if platform == "win32":
            return Platform.WIN32
        if platform.startswith("linux"):
            return Platform.LINUX
        return None

    @staticmethod
    def create_backend(
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        platform: Optional[str] = None,
    ) -> BaseMouseBackend:
        """Create mouse backend

        Automatically selects appropriate implementation based on current platform:
        - macOS: Quartz CGEvent (PyObjC)
        - Windows: pynput
        - Linux: pynput (X11)

        Raises:
            UnsupportedPlatformError: no backend exists for this platform (fatal at startup)
        """
        resolved = BackendFactory.resolve_platform(platform)

        if resolved is Platform.DARWIN:
            logger.info("Creating macOS mouse backend (Quartz)")
            return MacOSMouseBackend(command_timeout)

        elif resolved is Platform.WIN32:
            logger.info("Creating Windows mouse backend (pynput)")
            return WindowsMouseBackend(command_timeout)

        elif resolved is Platform.LINUX:
            logger.info("Creating Linux mouse backend (pynput)")
            return LinuxMouseBackend(command_timeout)

        name = platform or BackendFactory.get_platform()
        logger.error(f"Unsupported platform: {name}, no mouse backend available")
        raise UnsupportedPlatformError(name)

    @staticmethod
    def get_platform_info(platform: Optional[str] = None) -> PlatformInfo:
        """Get static capability metadata (no I/O)

        Unknown platforms get the Linux profile, which needs no permission.
        """
        resolved = BackendFactory.resolve_platform(platform) or Platform.LINUX
        return _PLATFORM_INFO[resolved]

    @staticmethod
    def create_power_state_monitor(
        on_sleep: Optional[Callable[[], None]] = None,
        on_resume: Optional[Callable[[], None]] = None,
        platform: Optional[str] = None,
    ) -> BaseEventListener:
        """Create a system sleep/wake monitor suitable for current platform"""
        resolved = BackendFactory.resolve_platform(platform)

        if resolved is Platform.DARWIN:
            return MacOSPowerStateMonitor(on_sleep, on_resume)
        elif resolved is Platform.WIN32:
            return WindowsPowerStateMonitor(on_sleep, on_resume)
        elif resolved is Platform.LINUX:
            return LinuxPowerStateMonitor(on_sleep, on_resume)

        logger.warning(
            f"Unsupported platform: {platform or BackendFactory.get_platform()}, "
            "power state monitor unavailable"
        )
        return NoOpPowerStateMonitor(on_sleep, on_resume)


# Convenience functions
def create_backend(command_timeout: float = DEFAULT_COMMAND_TIMEOUT) -> BaseMouseBackend:
    """Create mouse backend (convenience function)"""
    return BackendFactory.create_backend(command_timeout)


def get_platform_info() -> PlatformInfo:
    """Get platform info (convenience function)"""
    return BackendFactory.get_platform_info()
