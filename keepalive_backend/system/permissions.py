"""
Input-control permission checking and monitoring
Only macOS gates synthetic input behind a user grant (Accessibility); other platforms always pass
"""

from importlib import import_module
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from keepalive_backend.core.commands import CommandFailed, run_command
from keepalive_backend.core.logger import get_logger
from keepalive_backend.core.timers import TimerHandle, TimerService
from keepalive_backend.models import PermissionStatus, PlatformInfo

logger = get_logger(__name__)

ACCESSIBILITY_SETTINGS_URL = (
    "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility"
)

DEFAULT_POLL_INTERVAL_MS = 2000
# The guidance dialog gives up on its own after this many seconds
GUIDANCE_DIALOG_TIMEOUT = 120
OPEN_SETTINGS_BUTTON = "Open System Settings"
LATER_BUTTON = "Later"

TrustQuery = Callable[[bool], bool]
GuidancePrompt = Callable[[PlatformInfo], Awaitable[bool]]
PermissionChangeCallback = Callable[[bool], None]


def _load_accessibility_api() -> Tuple[
    Optional[Callable[[Dict[str, Any]], Any]], Optional[Any]
]:
    """Safely load ApplicationServices accessibility helpers."""
    try:
        module = import_module("ApplicationServices")
        checker = getattr(module, "AXIsProcessTrustedWithOptions", None)
        prompt_key = getattr(module, "kAXTrustedCheckOptionPrompt", None)
        if callable(checker) and prompt_key is not None:
            return checker, prompt_key
    except Exception as exc:
        logger.debug(f"Failed to import ApplicationServices helpers: {exc}")
    return None, None


def query_accessibility_trust(prompt: bool) -> bool:
    """Ask macOS whether this process may post input events

    Args:
        prompt: True surfaces the system consent prompt as a side effect
    """
    ax_checker, prompt_key = _load_accessibility_api()
    if not ax_checker or prompt_key is None:
        logger.warning(
            "PyObjC ApplicationServices not available, cannot check accessibility permission"
        )
        return False
    return bool(ax_checker({prompt_key: prompt}))


async def show_guidance_dialog(platform_info: PlatformInfo) -> bool:
    """Show the macOS guidance dialog; True if the user chose to open settings"""
    permission = platform_info.permission_name or "Accessibility"
    message = (
        f"Keep-alive needs the {permission} permission to control the mouse. "
        f"Enable it in System Settings > Privacy & Security > {permission}."
    )
    script = (
        f'display dialog "{message}" with title "{permission} permission required" '
        f'buttons {{"{LATER_BUTTON}", "{OPEN_SETTINGS_BUTTON}"}} '
        f'default button "{OPEN_SETTINGS_BUTTON}" cancel button "{LATER_BUTTON}" '
        f"with icon caution giving up after {GUIDANCE_DIALOG_TIMEOUT}"
    )
    try:
        output = await run_command(
            ["osascript", "-e", script], timeout=GUIDANCE_DIALOG_TIMEOUT + 5
        )
    except CommandFailed as e:
        # "Later" is the cancel button, so dismissing also lands here
        logger.info(f"Permission guidance dismissed: {e.reason}")
        return False
    return f"button returned:{OPEN_SETTINGS_BUTTON}" in output


class PermissionMonitor:
    """Tracks the input-control permission and notifies on transitions

    States: unknown -> granted/denied; both granted -> denied and denied -> granted
    are detected by polling while watching.
    """

    def __init__(
        self,
        platform_info: PlatformInfo,
        timers: TimerService,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        trust_query: TrustQuery = query_accessibility_trust,
        guidance_prompt: GuidancePrompt = show_guidance_dialog,
        command_timeout: float = 5.0,
    ):
        self.platform_info = platform_info
        self.poll_interval_ms = poll_interval_ms
        self.command_timeout = command_timeout
        self._timers = timers
        self._trust_query = trust_query
        self._guidance_prompt = guidance_prompt

        self._status = PermissionStatus.UNKNOWN
        # Value the watcher last reported (or its baseline)
        self._last_known: Optional[bool] = None
        self._poll_handle: Optional[TimerHandle] = None
        self._on_change: Optional[PermissionChangeCallback] = None

    @property
    def needs_permission(self) -> bool:
        return self.platform_info.needs_permission

    @property
    def status(self) -> PermissionStatus:
        return self._status

    @property
    def is_watching(self) -> bool:
        return self._poll_handle is not None

    def set_on_permission_change(self, callback: Optional[PermissionChangeCallback]) -> None:
        """Register the transition callback (replaces any previous one)"""
        self._on_change = callback

    def check_status(self) -> bool:
        """Query the permission without prompting"""
        return self._query(prompt=False)

    def request_status(self) -> bool:
        """Query the permission, surfacing the OS consent prompt where supported"""
        return self._query(prompt=True)

    def _query(self, prompt: bool) -> bool:
        if not self.needs_permission:
            self._status = PermissionStatus.GRANTED
            return True

        try:
            granted = self._trust_query(prompt)
        except Exception as e:
            logger.error(f"Failed to check {self.platform_info.permission_name} permission: {e}")
            # Keep the previous answer so a flaky query does not look like a revoke
            if self._status is PermissionStatus.UNKNOWN:
                return False
            return self._status is PermissionStatus.GRANTED

        self._status = PermissionStatus.from_bool(granted)
        return granted

    async def prompt_user_guidance(self) -> bool:
        """Offer to open the permission settings; returns whether they were opened"""
        if not self.needs_permission:
            return True

        try:
            open_settings = await self._guidance_prompt(self.platform_info)
        except Exception as e:
            logger.error(f"Permission guidance prompt failed: {e}")
            return False

        if open_settings:
            await self.open_platform_settings()
            return True
        return False

    async def open_platform_settings(self) -> None:
        """Open the OS permission settings page (best effort, never raises)"""
        if not self.needs_permission:
            logger.warning(
                f"{self.platform_info.platform} does not support automatic opening of system settings"
            )
            return

        try:
            await run_command(["open", ACCESSIBILITY_SETTINGS_URL], self.command_timeout)
            logger.info("Opened accessibility settings")
        except CommandFailed as e:
            logger.error(f"Failed to open system settings: {e}")

    def start_watching(self) -> None:
        """Poll the permission every poll_interval_ms until stop_watching()"""
        if not self.needs_permission or self.is_watching:
            return

        if self._last_known is None:
            self._last_known = self.check_status()
        self._schedule_poll()
        logger.debug(f"Permission watching started (every {self.poll_interval_ms}ms)")

    def stop_watching(self) -> None:
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None
            logger.debug("Permission watching stopped")

    def _schedule_poll(self) -> None:
        self._poll_handle = self._timers.call_later(self.poll_interval_ms, self._poll)

    def _poll(self) -> None:
        if self._poll_handle is None:
            return

        granted = self.check_status()
        if granted != self._last_known:
            self._last_known = granted
            logger.info(
                f"{self.platform_info.permission_name} permission "
                f"{'granted' if granted else 'revoked'}"
            )
            if self._on_change:
                try:
                    self._on_change(granted)
                except Exception as e:
                    logger.error(f"Permission change callback failed: {e}", exc_info=True)

        # The callback may have stopped watching
        if self._poll_handle is not None:
            self._schedule_poll()

    async def init(self) -> bool:
        """Initial check; guides the user and starts watching when denied

        Returns the status without waiting for the guidance dialog; a later grant
        arrives through the change callback.
        """
        granted = self.check_status()
        self._last_known = granted

        if not self.needs_permission:
            return True

        if not granted:
            # The dialog blocks until answered, startup must not wait on it
            self._timers.spawn(self.prompt_user_guidance(), name="permission-guidance")
            self.start_watching()

        return granted
