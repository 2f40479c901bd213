"""
Linux mouse backend
Using pynput (X11) to read and move the cursor, xdotool for the fallback key tap
"""

from importlib import import_module
from typing import Any, Optional, Tuple

from keepalive_backend.core.logger import get_logger
from keepalive_backend.input_control.base import BaseMouseBackend

logger = get_logger(__name__)


class LinuxMouseBackend(BaseMouseBackend):
    """Linux mouse backend (using pynput)"""

    platform_name = "Linux"
    implementation = "pynput"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._mouse: Optional[Any] = None

    def _mouse_controller(self) -> Any:
        # pynput connects to the X display on import, so defer until first use
        if self._mouse is None:
            self._mouse = import_module("pynput.mouse").Controller()
        return self._mouse

    def _read_position(self) -> Tuple[int, int]:
        x, y = self._mouse_controller().position
        return int(x), int(y)

    def _write_position(self, x: int, y: int) -> None:
        self._mouse_controller().position = (x, y)
        logger.debug(f"Linux cursor moved to ({x}, {y})")

    async def fallback_key_press(self) -> None:
        await self._run_command("fallback_key_press", ["xdotool", "key", "shift"])
