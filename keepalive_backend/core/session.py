"""
Session controller
Starts/stops keep-alive sessions, gates them on permission, enforces the optional
duration budget and reconciles state after system sleep
"""

import math
from typing import TYPE_CHECKING, Any, Dict, Optional

from keepalive_backend.core.events import EventBus
from keepalive_backend.core.logger import get_logger
from keepalive_backend.core.scheduler import KeepAliveScheduler
from keepalive_backend.core.store import ConfigStoreProtocol
from keepalive_backend.core.timers import TimerHandle, TimerService
from keepalive_backend.models import AppConfig, SchedulerState, SessionState

if TYPE_CHECKING:
    from keepalive_backend.system.permissions import PermissionMonitor

logger = get_logger(__name__)

MS_PER_MINUTE = 60_000


class SessionController:
    """Session controller

    Owns the merged SessionState. Scheduler and permission monitor report to it
    through callbacks; it never reaches into their state.
    """

    def __init__(
        self,
        scheduler: KeepAliveScheduler,
        permissions: "PermissionMonitor",
        store: ConfigStoreProtocol,
        events: EventBus,
        timers: TimerService,
    ):
        self.scheduler = scheduler
        self.permissions = permissions
        self.store = store
        self.events = events
        self._timers = timers

        self._is_active = False
        self._has_permission = False
        self._end_at = 0
        self._next_move_at = 0
        self._last_move_at: Optional[int] = None
        self._duration_timer: Optional[TimerHandle] = None

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def has_permission(self) -> bool:
        return self._has_permission

    async def initialize(self) -> bool:
        """Wire callbacks, run the initial permission check and start watching it"""
        self.scheduler.set_on_state_change(self._on_scheduler_state)
        self.permissions.set_on_permission_change(self.handle_permission_change)

        granted = await self.permissions.init()
        self._has_permission = granted
        # Revocation must be noticed even if the first check passed
        self.permissions.start_watching()
        self._publish_state()

        logger.info(f"Session controller initialized (permission={granted})")
        return granted

    def start_session(self) -> bool:
        """Start a keep-alive session; returns False when blocked on permission"""
        if not self._has_permission:
            logger.warning("Cannot start keep-alive without input permission")
            self._timers.spawn(
                self.permissions.prompt_user_guidance(), name="permission-guidance"
            )
            return False

        duration_minutes = self.store.get("duration_minutes")
        now = self._timers.now()

        self._cancel_duration_timer()
        if duration_minutes > 0:
            budget_ms = duration_minutes * MS_PER_MINUTE
            self._end_at = now + budget_ms
            self._duration_timer = self._timers.call_later(budget_ms, self._on_duration_expired)
        else:
            self._end_at = 0

        self._is_active = True
        self.scheduler.start()
        self._persist({"enabled": True})
        self._publish_state()

        logger.info(
            f"Keep-alive session started "
            f"({'unbounded' if self._end_at == 0 else f'{duration_minutes} minutes'})"
        )
        return True

    def stop_session(self, persist: bool = True) -> None:
        """Stop the session

        Args:
            persist: write enabled=False; the permission-revoke path keeps the flag
                so a later re-grant resumes the session
        """
        self._cancel_duration_timer()
        self._is_active = False
        self._end_at = 0
        self.scheduler.stop()
        self._next_move_at = 0
        if persist:
            self._persist({"enabled": False})
        self._publish_state()
        logger.info("Keep-alive session stopped")

    def toggle_session(self) -> bool:
        """Stop if active, else start; returns the resulting active flag"""
        if self._is_active:
            self.stop_session()
        else:
            self.start_session()
        return self._is_active

    def update_config(self, partial: Dict[str, Any]) -> AppConfig:
        """Persist a partial config; a new duration restarts an active session"""
        previous = self.store.get_config()
        config = self.store.set_config(partial)
        self.events.emit_config_changed(config)

        if self._is_active and config.duration_minutes != previous.duration_minutes:
            logger.info("Duration changed while active, restarting session")
            self.stop_session()
            self.start_session()
            config = self.store.get_config()
        return config

    def handle_system_resume(self) -> None:
        """Reconcile the session after the machine wakes up"""
        if not (self.store.get("enabled") and self._has_permission and self._is_active):
            return

        now = self._timers.now()
        if self._end_at != 0 and self._end_at <= now:
            logger.info("Session budget elapsed during sleep, stopping")
            self.stop_session()
            return

        logger.info("System resumed, resuming keep-alive session")
        if self._end_at != 0:
            # Suspended time may not count against the loop's monotonic timers
            self._cancel_duration_timer()
            self._duration_timer = self._timers.call_later(
                self._end_at - now, self._on_duration_expired
            )

        if self.scheduler.is_running:
            self.scheduler.reschedule_if_overdue()
        else:
            self.scheduler.start()
        self._publish_state()

    def handle_system_sleep(self) -> None:
        logger.info(f"System going to sleep (session active={self._is_active})")

    def handle_permission_change(self, granted: bool) -> None:
        """Permission monitor callback"""
        if granted:
            self._has_permission = True
            self._publish_state()
            if self.store.get("enabled") and not self._is_active:
                logger.info("Permission granted and keep-alive enabled, resuming session")
                self.start_session()
            return

        if self._is_active:
            logger.warning("Permission revoked while active, stopping session")
            self.stop_session(persist=False)
        self._has_permission = False
        self._publish_state()

    def get_state(self) -> SessionState:
        """Snapshot with countdown and remaining time derived from now"""
        now = self._timers.now()
        remaining = 0
        if self._is_active and self._end_at > 0:
            remaining = math.ceil(max(0, self._end_at - now) / 1000)

        return SessionState(
            is_active=self._is_active,
            has_permission=self._has_permission,
            end_at=self._end_at,
            remaining_seconds=remaining,
            next_move_at=self._next_move_at,
            countdown=self.scheduler.get_countdown_seconds(),
            last_move_at=self._last_move_at,
        )

    def shutdown(self) -> None:
        """Stop timers without touching the persisted config"""
        self._cancel_duration_timer()
        self.scheduler.stop()
        self.permissions.stop_watching()
        self.scheduler.set_on_state_change(None)
        self.permissions.set_on_permission_change(None)

    def _on_scheduler_state(self, state: SchedulerState) -> None:
        self._next_move_at = state.next_move_at
        self._last_move_at = state.last_move_at
        self._publish_state()

    def _on_duration_expired(self) -> None:
        self._duration_timer = None
        logger.info("Keep-alive duration reached, stopping session")
        self.stop_session()

    def _cancel_duration_timer(self) -> None:
        if self._duration_timer is not None:
            self._duration_timer.cancel()
            self._duration_timer = None

    def _persist(self, partial: Dict[str, Any]) -> None:
        config = self.store.set_config(partial)
        self.events.emit_config_changed(config)

    def _publish_state(self) -> None:
        self.events.emit_state_changed(self.get_state())
