"""Backend runtime control utility

Builds every keep-alive component once per process and wires them together.
Startup, stop and status query logic are shared between the CLI, FastAPI and PyTauri.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

from keepalive_backend.config.loader import ConfigLoader, get_config
from keepalive_backend.core.events import EventBus
from keepalive_backend.core.logger import get_logger
from keepalive_backend.core.scheduler import (
    MAX_INTERVAL_MS,
    MIN_INTERVAL_MS,
    MOVE_OFFSET_PX,
    KeepAliveScheduler,
)
from keepalive_backend.core.session import SessionController
from keepalive_backend.core.store import ConfigStore
from keepalive_backend.core.timers import AsyncioTimerService, TimerService
from keepalive_backend.input_control import BackendFactory, BaseEventListener, BaseMouseBackend
from keepalive_backend.input_control.base import DEFAULT_COMMAND_TIMEOUT
from keepalive_backend.models import PlatformInfo
from keepalive_backend.system.permissions import (
    DEFAULT_POLL_INTERVAL_MS,
    PermissionMonitor,
)

logger = get_logger(__name__)


@dataclass
class KeepAliveRuntime:
    """All long-lived keep-alive services of this process"""

    config_loader: ConfigLoader
    timers: TimerService
    events: EventBus
    store: ConfigStore
    platform_info: PlatformInfo
    backend: BaseMouseBackend
    permissions: PermissionMonitor
    scheduler: KeepAliveScheduler
    session: SessionController
    power_monitor: Optional[BaseEventListener] = None

    def get_stats(self) -> Dict[str, Any]:
        state = self.session.get_state()
        return {
            "platform": self.platform_info.model_dump(),
            "session": state.model_dump(),
            "permission_status": self.permissions.status.value,
            "permission_watching": self.permissions.is_watching,
            "scheduler": dict(self.scheduler.stats),
            "backend": self.backend.get_stats(),
            "power_monitor_running": bool(
                self.power_monitor and self.power_monitor.is_running
            ),
        }


def build_runtime(
    config_loader: ConfigLoader,
    timers: Optional[TimerService] = None,
    backend: Optional[BaseMouseBackend] = None,
    platform_info: Optional[PlatformInfo] = None,
    permissions: Optional[PermissionMonitor] = None,
) -> KeepAliveRuntime:
    """Construct and wire the services (no I/O besides reading config)

    Raises:
        UnsupportedPlatformError: when no backend is given and none exists for this OS
    """
    timers = timers or AsyncioTimerService()
    command_timeout = float(config_loader.get("backend.command_timeout", DEFAULT_COMMAND_TIMEOUT))

    platform_info = platform_info or BackendFactory.get_platform_info()
    backend = backend or BackendFactory.create_backend(command_timeout)

    events = EventBus()
    store = ConfigStore(config_loader, clock=timers.now)

    permissions = permissions or PermissionMonitor(
        platform_info,
        timers,
        poll_interval_ms=int(
            config_loader.get("permission.poll_interval_ms", DEFAULT_POLL_INTERVAL_MS)
        ),
        command_timeout=command_timeout,
    )

    scheduler = KeepAliveScheduler(
        backend,
        timers,
        min_interval_ms=int(config_loader.get("scheduler.min_interval_ms", MIN_INTERVAL_MS)),
        max_interval_ms=int(config_loader.get("scheduler.max_interval_ms", MAX_INTERVAL_MS)),
        move_offset_px=int(config_loader.get("scheduler.move_offset_px", MOVE_OFFSET_PX)),
    )

    session = SessionController(scheduler, permissions, store, events, timers)

    return KeepAliveRuntime(
        config_loader=config_loader,
        timers=timers,
        events=events,
        store=store,
        platform_info=platform_info,
        backend=backend,
        permissions=permissions,
        scheduler=scheduler,
        session=session,
    )


# Process-wide runtime, set by start_runtime()
_runtime: Optional[KeepAliveRuntime] = None


def get_runtime() -> KeepAliveRuntime:
    """Get the running keep-alive runtime

    Raises:
        RuntimeError: start_runtime() has not completed
    """
    if _runtime is None:
        raise RuntimeError("Keep-alive runtime is not started")
    return _runtime


def _start_power_monitor(runtime: KeepAliveRuntime) -> None:
    timers = runtime.timers
    if not isinstance(timers, AsyncioTimerService):
        return

    # Power notifications arrive on OS threads; hop onto the event loop.
    # Bind it here, the listener threads have no running loop to look up.
    loop = timers.loop
    logger.debug(f"Power notifications bound to event loop {id(loop):#x}")
    monitor = BackendFactory.create_power_state_monitor(
        on_sleep=lambda: timers.call_soon_threadsafe(runtime.session.handle_system_sleep),
        on_resume=lambda: timers.call_soon_threadsafe(runtime.session.handle_system_resume),
    )
    monitor.start()
    runtime.power_monitor = monitor


async def start_runtime(
    config_file: Optional[str] = None,
    runtime: Optional[KeepAliveRuntime] = None,
) -> KeepAliveRuntime:
    """Start the keep-alive services; returns the existing runtime if already running."""
    global _runtime

    if _runtime is not None:
        logger.info("Keep-alive runtime is already running")
        return _runtime

    if runtime is None:
        config_loader = get_config(config_file)
        logger.info(f"✓ Configuration file: {config_loader.config_file}")
        runtime = build_runtime(config_loader)

    logger.info(
        f"Starting keep-alive runtime on {runtime.platform_info.platform} "
        f"(needs permission: {runtime.platform_info.needs_permission})"
    )

    _runtime = runtime
    try:
        await runtime.session.initialize()
        _start_power_monitor(runtime)
    except Exception as exc:
        logger.error(f"Keep-alive runtime failed to start: {exc}", exc_info=True)
        _runtime = None
        runtime.session.shutdown()
        raise

    logger.info("Keep-alive runtime started")
    return runtime


async def stop_runtime(*, quiet: bool = False) -> None:
    """Stop the keep-alive services; no-op if not running.

    The persisted `enabled` flag is left untouched.

    Args:
        quiet: suppress info logs to avoid shutdown noise in the terminal
    """
    global _runtime

    runtime = _runtime
    if runtime is None:
        if not quiet:
            logger.info("Keep-alive runtime is not running")
        return

    if not quiet:
        logger.info("Stopping keep-alive runtime...")

    runtime.session.shutdown()
    if runtime.power_monitor is not None:
        runtime.power_monitor.stop()

    try:
        await asyncio.wait_for(runtime.timers.shutdown(), timeout=5.0)
    except asyncio.TimeoutError:
        if not quiet:
            logger.warning("Timed out waiting for background tasks, forcing stop")

    _runtime = None
    if not quiet:
        logger.info("Keep-alive runtime stopped")


async def get_runtime_stats() -> dict:
    """Get statistics of the running keep-alive runtime."""
    return get_runtime().get_stats()
