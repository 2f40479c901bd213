"""
macOS power state monitor implementation
"""

from importlib import import_module
from typing import Callable, Optional

from keepalive_backend.core.logger import get_logger
from keepalive_backend.input_control.base import BaseEventListener

logger = get_logger(__name__)


class MacOSPowerStateMonitor(BaseEventListener):
    """macOS system sleep/wake monitor (NSWorkspace notifications)

    Notifications are delivered on the thread running the main NSRunLoop.
    """

    def __init__(
        self,
        on_sleep: Optional[Callable[[], None]] = None,
        on_resume: Optional[Callable[[], None]] = None,
    ):
        super().__init__(on_sleep, on_resume)

    def start(self) -> None:
        """Start listening"""
        if self.is_running:
            return

        try:
            appkit = import_module("AppKit")
            NSWorkspace = getattr(appkit, "NSWorkspace")

            self.is_running = True

            nc = NSWorkspace.sharedWorkspace().notificationCenter()

            nc.addObserver_selector_name_object_(
                self, "systemWillSleep:", "NSWorkspaceWillSleepNotification", None
            )
            nc.addObserver_selector_name_object_(
                self, "systemDidWake:", "NSWorkspaceDidWakeNotification", None
            )

            logger.info("macOS power state monitor started")

        except Exception as e:
            logger.error(f"Failed to start macOS power state monitor: {e}")
            self.is_running = False

    def systemWillSleep_(self, notification) -> None:
        """System sleep callback"""
        logger.info("System sleep detected")
        self._notify_sleep()

    def systemDidWake_(self, notification) -> None:
        """System wake callback"""
        logger.info("System wake detected")
        self._notify_resume()

    def stop(self) -> None:
        """Stop listening"""
        if not self.is_running:
            return

        try:
            appkit = import_module("AppKit")
            NSWorkspace = getattr(appkit, "NSWorkspace")
            self.is_running = False

            nc = NSWorkspace.sharedWorkspace().notificationCenter()
            nc.removeObserver_(self)

            logger.info("macOS power state monitor stopped")

        except Exception as e:
            logger.error(f"Failed to stop macOS power state monitor: {e}")
