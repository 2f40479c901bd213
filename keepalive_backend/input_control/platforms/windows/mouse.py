"""
Windows mouse backend
Using pynput controllers to read and move the cursor

TODO: Consider SendInput through pywin32 so the event is flagged as injected input
"""

from importlib import import_module
from typing import Any, Optional, Tuple

from keepalive_backend.core.logger import get_logger
from keepalive_backend.input_control.base import BaseMouseBackend

logger = get_logger(__name__)


class WindowsMouseBackend(BaseMouseBackend):
    """Windows mouse backend (using pynput)"""

    platform_name = "Windows"
    implementation = "pynput"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._mouse: Optional[Any] = None
        self._keyboard: Optional[Any] = None

    def _mouse_controller(self) -> Any:
        if self._mouse is None:
            self._mouse = import_module("pynput.mouse").Controller()
        return self._mouse

    def _keyboard_controller(self) -> Any:
        if self._keyboard is None:
            self._keyboard = import_module("pynput.keyboard").Controller()
        return self._keyboard

    def _read_position(self) -> Tuple[int, int]:
        x, y = self._mouse_controller().position
        return int(x), int(y)

    def _write_position(self, x: int, y: int) -> None:
        self._mouse_controller().position = (x, y)
        logger.debug(f"Windows cursor moved to ({x}, {y})")

    def _tap_shift(self) -> None:
        keyboard = import_module("pynput.keyboard")
        controller = self._keyboard_controller()
        controller.press(keyboard.Key.shift)
        controller.release(keyboard.Key.shift)

    async def fallback_key_press(self) -> None:
        await self._call("fallback_key_press", self._tap_shift)
