"""
Keep-alive session control handlers
"""

from datetime import datetime
from typing import Any, Dict

from keepalive_backend.core.errors import ConfigError
from keepalive_backend.core.logger import get_logger
from keepalive_backend.system.runtime import get_runtime

from . import api_handler

logger = get_logger(__name__)


def _state_payload() -> Dict[str, Any]:
    return get_runtime().session.get_state().model_dump()


@api_handler(method="GET", path="/state", tags=["control"])
async def get_state() -> Dict[str, Any]:
    """Get the current session state with fresh countdown values"""
    try:
        data = _state_payload()
    except RuntimeError as e:
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    return {"success": True, "data": data, "timestamp": datetime.now().isoformat()}


@api_handler(path="/keep-alive/start", tags=["control"])
async def start_keep_alive() -> Dict[str, Any]:
    """Start a keep-alive session

    Without the input permission nothing starts and the guidance flow is shown.
    """
    try:
        runtime = get_runtime()
        if runtime.session.is_active:
            return {
                "success": True,
                "message": "Keep-alive is already active",
                "data": _state_payload(),
                "timestamp": datetime.now().isoformat(),
            }

        started = runtime.session.start_session()
    except (ConfigError, RuntimeError) as e:
        logger.error(f"Failed to start keep-alive: {e}")
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    if not started:
        permission = runtime.platform_info.permission_name or "Input"
        return {
            "success": False,
            "message": f"{permission} permission required",
            "data": _state_payload(),
            "timestamp": datetime.now().isoformat(),
        }

    return {
        "success": True,
        "message": "Keep-alive started",
        "data": _state_payload(),
        "timestamp": datetime.now().isoformat(),
    }


@api_handler(path="/keep-alive/stop", tags=["control"])
async def stop_keep_alive() -> Dict[str, Any]:
    """Stop the keep-alive session (idempotent)"""
    try:
        get_runtime().session.stop_session()
    except (ConfigError, RuntimeError) as e:
        logger.error(f"Failed to stop keep-alive: {e}")
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    return {
        "success": True,
        "message": "Keep-alive stopped",
        "data": _state_payload(),
        "timestamp": datetime.now().isoformat(),
    }


@api_handler(path="/keep-alive/toggle", tags=["control"])
async def toggle_keep_alive() -> Dict[str, Any]:
    try:
        is_active = get_runtime().session.toggle_session()
    except (ConfigError, RuntimeError) as e:
        logger.error(f"Failed to toggle keep-alive: {e}")
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    return {
        "success": True,
        "message": "Keep-alive started" if is_active else "Keep-alive stopped",
        "data": _state_payload(),
        "timestamp": datetime.now().isoformat(),
    }
