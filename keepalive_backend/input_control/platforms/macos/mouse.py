"""
macOS mouse backend
Uses Quartz (PyObjC) CoreGraphics events to read and move the cursor,
with an AppleScript Shift key tap as fallback
"""

from importlib import import_module
from typing import Any, Tuple

from keepalive_backend.core.logger import get_logger
from keepalive_backend.input_control.base import BaseMouseBackend

logger = get_logger(__name__)

SHIFT_TAP_SCRIPT = """
tell application "System Events"
  key down shift
  key up shift
end tell
"""


def _load_quartz() -> Any:
    """Import Quartz lazily so the module can be imported off macOS."""
    return import_module("Quartz")


class MacOSMouseBackend(BaseMouseBackend):
    """macOS mouse backend (Quartz CGEvent)"""

    platform_name = "macOS"
    implementation = "Quartz"

    def _read_position(self) -> Tuple[int, int]:
        quartz = _load_quartz()
        # CGEvent locations use the global display space (origin at top-left of main display)
        location = quartz.CGEventGetLocation(quartz.CGEventCreate(None))
        return int(location.x), int(location.y)

    def _write_position(self, x: int, y: int) -> None:
        quartz = _load_quartz()
        event = quartz.CGEventCreateMouseEvent(
            None, quartz.kCGEventMouseMoved, (x, y), quartz.kCGMouseButtonLeft
        )
        if event is None:
            raise RuntimeError("CGEventCreateMouseEvent returned no event")
        quartz.CGEventPost(quartz.kCGHIDEventTap, event)
        logger.debug(f"macOS cursor moved to ({x}, {y})")

    async def fallback_key_press(self) -> None:
        await self._run_command("fallback_key_press", ["osascript", "-e", SHIFT_TAP_SCRIPT])
