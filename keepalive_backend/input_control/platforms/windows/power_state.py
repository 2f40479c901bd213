"""
Windows power state monitor implementation
"""

import threading
from typing import Callable, Optional

from keepalive_backend.core.logger import get_logger
from keepalive_backend.input_control.base import BaseEventListener

logger = get_logger(__name__)


class WindowsPowerStateMonitor(BaseEventListener):
    """Windows system suspend/resume monitor (WM_POWERBROADCAST)"""

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
            import win32api  # type: ignore  # noqa: F401
            import win32con  # type: ignore  # noqa: F401
            import win32gui  # type: ignore  # noqa: F401

            self.is_running = True

            # Power broadcasts are delivered to a hidden window pumped in a background thread
            self._thread = threading.Thread(target=self._message_loop, daemon=True)
            self._thread.start()

            logger.info("Windows power state monitor started")

        except ImportError:
            logger.error("Cannot import pywin32, power state monitor unavailable")
            self.is_running = False

        except Exception as e:
            logger.error(f"Failed to start Windows power state monitor: {e}")
            self.is_running = False

    def _message_loop(self) -> None:
        """Windows message loop"""
        try:
            import win32api  # type: ignore
            import win32gui  # type: ignore

            wc = win32gui.WNDCLASS()
            wc.lpfnWndProc = self._wnd_proc
            wc.lpszClassName = "KeepAlivePowerStateMonitor"
            wc.hInstance = win32api.GetModuleHandle(None)

            class_atom = win32gui.RegisterClass(wc)
            hwnd = win32gui.CreateWindow(
                class_atom,
                "Keep-Alive Power State Monitor",
                0,
                0,
                0,
                0,
                0,
                0,
                0,
                wc.hInstance,
                None,
            )

            stop_wait = threading.Event()
            while self.is_running:
                win32gui.PumpWaitingMessages()
                stop_wait.wait(0.1)

            win32gui.DestroyWindow(hwnd)
            win32gui.UnregisterClass(class_atom, wc.hInstance)

        except Exception as e:
            logger.error(f"Windows message loop exception: {e}")

    def _wnd_proc(self, hwnd, msg, wparam, lparam):
        """Windows window message handling"""
        import win32con  # type: ignore

        if msg == win32con.WM_POWERBROADCAST:
            if wparam == win32con.PBT_APMSUSPEND:
                logger.info("System suspend detected")
                self._notify_sleep()
            elif wparam == win32con.PBT_APMRESUMEAUTOMATIC:
                logger.info("System resume detected")
                self._notify_resume()

        return 0

    def stop(self) -> None:
        """Stop listening"""
        if not self.is_running:
            return

        self.is_running = False

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

        logger.info("Windows power state monitor stopped")
