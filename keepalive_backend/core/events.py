"""
Event sending manager
Pushes config/state changes from the backend to the frontend (PyTauri Emitter)
and to in-process subscribers
"""

from typing import Any, Callable, Dict, List

from pydantic import RootModel

try:
    from pytauri import AppHandle, Emitter
except ImportError:  # pragma: no cover - May not be available in non-Tauri environments (CLI, tests)
    AppHandle = Any  # type: ignore[assignment,misc]
    Emitter = None  # type: ignore[assignment]

from keepalive_backend.core._event_state import event_state
from keepalive_backend.core.logger import get_logger
from keepalive_backend.models import AppConfig, SessionState

logger = get_logger(__name__)

CONFIG_CHANGED = "config-changed"
STATE_CHANGED = "state-changed"

EventListener = Callable[[str, Dict[str, Any]], None]


class _RawEventPayload(RootModel[Dict[str, Any]]):
    """Wraps event payload for JSON serialization through PyTauri."""


def register_emit_handler(app_handle: AppHandle):
    """Register Tauri AppHandle for sending events through PyTauri Emitter."""
    if Emitter is None:
        logger.warning(
            "PyTauri not installed, frontend event notification unavailable"
        )
        return

    event_state.app_handle = app_handle
    logger.info("Registered Tauri AppHandle for event sending")


def _emit_to_frontend(event_name: str, payload: Dict[str, Any]) -> bool:
    """Send events to frontend through PyTauri."""
    if Emitter is None or event_state.app_handle is None:
        logger.debug(f"[events] No frontend registered, skipping: {event_name}")
        return False

    try:
        Emitter.emit(event_state.app_handle, event_name, _RawEventPayload(payload))
        return True
    except Exception:
        logger.error(f"❌ [events] Event sending failed: {event_name}", exc_info=True)
        return False


class EventBus:
    """Push channel for the two broadcast events

    Events are delivered synchronously, in the order they are emitted.
    """

    def __init__(self):
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Add a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event_name, payload)
            except Exception:
                logger.error(
                    f"[events] Listener failed for {event_name}", exc_info=True
                )
        _emit_to_frontend(event_name, payload)

    def emit_config_changed(self, config: AppConfig) -> None:
        """Send "config changed" event carrying the full configuration"""
        self.emit(CONFIG_CHANGED, config.model_dump())

    def emit_state_changed(self, state: SessionState) -> None:
        """Send "state changed" event carrying the full session state"""
        logger.debug(
            f"[events] state-changed: active={state.is_active}, "
            f"permission={state.has_permission}, next_move_at={state.next_move_at}"
        )
        self.emit(STATE_CHANGED, state.model_dump())
