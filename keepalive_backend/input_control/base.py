"""
Input control base abstract classes
Define the mouse backend contract and the system event listener interface
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from keepalive_backend.core.commands import CommandFailed, run_command
from keepalive_backend.core.errors import BackendError
from keepalive_backend.core.logger import get_logger
from keepalive_backend.models import MousePosition

logger = get_logger(__name__)

DEFAULT_COMMAND_TIMEOUT = 5.0


class BaseMonitor(ABC):
    """
    Base monitor abstract class - minimal interface for long-running listeners
    """

    def __init__(self):
        self.is_running = False

    @abstractmethod
    def start(self):
        """Start monitoring"""
        pass

    @abstractmethod
    def stop(self):
        """Stop monitoring"""
        pass


class BaseEventListener(BaseMonitor):
    """
    Base event listener abstract class

    For monitors that react to system state changes (system sleep/wake).
    """

    def __init__(
        self,
        on_sleep: Optional[Callable[[], None]] = None,
        on_resume: Optional[Callable[[], None]] = None,
    ):
        super().__init__()
        self.on_sleep = on_sleep
        self.on_resume = on_resume

    def _notify_sleep(self) -> None:
        if self.on_sleep:
            try:
                self.on_sleep()
            except Exception as e:
                logger.error(f"Failed to execute system sleep callback: {e}")

    def _notify_resume(self) -> None:
        if self.on_resume:
            try:
                self.on_resume()
            except Exception as e:
                logger.error(f"Failed to execute system resume callback: {e}")


class BaseMouseBackend(ABC):
    """
    Mouse backend base class

    Reads and places the cursor through the OS native APIs. Every call is bounded
    by command_timeout; a timeout is reported like any other failure (BackendError).
    """

    platform_name: str = "unknown"
    implementation: str = "unknown"

    def __init__(self, command_timeout: float = DEFAULT_COMMAND_TIMEOUT):
        self.command_timeout = command_timeout
        self._failures = 0
        self._fallbacks = 0

    async def get_position(self) -> MousePosition:
        """Read the current cursor position

        Raises:
            BackendError: the OS call failed or timed out
        """
        x, y = await self._call("get_position", self._read_position)
        return MousePosition(x=int(x), y=int(y))

    async def set_position(self, x: int, y: int) -> None:
        """Place the cursor at (x, y)

        On failure a harmless modifier key tap is attempted so presence is still
        signalled, then the original failure is raised.

        Raises:
            BackendError: the primary movement failed
        """
        try:
            await self._call("set_position", self._write_position, int(x), int(y))
        except BackendError as e:
            logger.warning(f"[{self.platform_name}] {e}, trying key press fallback")
            await self._try_fallback()
            raise

    async def _try_fallback(self) -> None:
        """Run the fallback key tap, logging (never raising) its failure"""
        self._fallbacks += 1
        try:
            await asyncio.wait_for(self.fallback_key_press(), self.command_timeout)
            logger.info(f"[{self.platform_name}] Fallback key press sent")
        except asyncio.TimeoutError:
            logger.error(f"[{self.platform_name}] Fallback key press timed out")
        except Exception as e:
            logger.error(f"[{self.platform_name}] Fallback key press failed: {e}")

    @abstractmethod
    def _read_position(self) -> Tuple[int, int]:
        """Blocking native cursor read (runs in a worker thread)"""
        pass

    @abstractmethod
    def _write_position(self, x: int, y: int) -> None:
        """Blocking native cursor write (runs in a worker thread)"""
        pass

    @abstractmethod
    async def fallback_key_press(self) -> None:
        """Press and release a modifier key with no side effects"""
        pass

    async def _call(self, op: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking native call in a worker thread under the timeout"""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args), self.command_timeout
            )
        except BackendError:
            self._failures += 1
            raise
        except asyncio.TimeoutError as e:
            self._failures += 1
            raise BackendError(op, TimeoutError(f"timed out after {self.command_timeout}s")) from e
        except Exception as e:
            self._failures += 1
            raise BackendError(op, e) from e

    async def _run_command(self, op: str, argv: List[str]) -> str:
        """Run an external OS utility; non-zero exit or timeout raises BackendError"""
        try:
            return await run_command(argv, self.command_timeout)
        except CommandFailed as e:
            self._failures += 1
            raise BackendError(op, e) from e

    def get_stats(self) -> Dict[str, Any]:
        """Get backend statistics"""
        return {
            "platform": self.platform_name,
            "implementation": self.implementation,
            "command_timeout": self.command_timeout,
            "failures": self._failures,
            "fallbacks": self._fallbacks,
        }
