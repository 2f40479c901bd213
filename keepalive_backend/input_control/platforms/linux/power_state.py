"""
Linux power state monitor implementation
"""

import threading
from importlib import import_module
from typing import Callable, Optional

from keepalive_backend.core.logger import get_logger
from keepalive_backend.input_control.base import BaseEventListener

logger = get_logger(__name__)


class LinuxPowerStateMonitor(BaseEventListener):
    """Linux system sleep/wake monitor (logind PrepareForSleep over D-Bus)"""

    def __init__(
        self,
        on_sleep: Optional[Callable[[], None]] = None,
        on_resume: Optional[Callable[[], None]] = None,
    ):
        super().__init__(on_sleep, on_resume)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start listening"""
        if self.is_running:
            return

        try:
            import_module("dbus")
            dbus_glib = import_module("dbus.mainloop.glib")
            DBusGMainLoop = getattr(dbus_glib, "DBusGMainLoop")

            DBusGMainLoop(set_as_default=True)

            self.is_running = True

            self._thread = threading.Thread(target=self._dbus_loop, daemon=True)
            self._thread.start()

            logger.info("Linux power state monitor started")

        except ModuleNotFoundError as exc:
            logger.warning(
                "Cannot import dbus dependencies (%s), power state monitor unavailable",
                exc,
            )
            self.is_running = False
        except Exception as e:
            logger.error(f"Failed to start Linux power state monitor: {e}")
            self.is_running = False

    def _dbus_loop(self) -> None:
        """DBus main loop"""
        try:
            dbus = import_module("dbus")
            gi_repository = import_module("gi.repository")
            GLib = getattr(gi_repository, "GLib")

            bus = dbus.SystemBus()
            bus.add_signal_receiver(
                self._handle_prepare_for_sleep,
                "PrepareForSleep",
                "org.freedesktop.login1.Manager",
                "org.freedesktop.login1",
            )

            loop = GLib.MainLoop()
            stop_wait = threading.Event()
            while self.is_running:
                loop.get_context().iteration(False)
                stop_wait.wait(0.1)

        except ModuleNotFoundError as exc:
            logger.warning(
                "Missing dbus/gi dependencies for power state monitor: %s", exc
            )
        except Exception as e:
            logger.error(f"Linux DBus loop exception: {e}")

    def _handle_prepare_for_sleep(self, sleep: bool) -> None:
        """Handle system sleep/wake signal"""
        if sleep:
            logger.info("System about to sleep detected")
            self._notify_sleep()
        else:
            logger.info("System wake detected")
            self._notify_resume()

    def stop(self) -> None:
        """Stop listening"""
        if not self.is_running:
            return

        self.is_running = False

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

        logger.info("Linux power state monitor stopped")
