"""
Keep-alive configuration handlers
"""

from datetime import datetime
from typing import Any, Dict

from keepalive_backend.core.errors import ConfigError
from keepalive_backend.core.logger import get_logger
from keepalive_backend.input_control import BackendFactory
from keepalive_backend.models import DURATION_OPTIONS, SetConfigRequest
from keepalive_backend.system.runtime import get_runtime

from . import api_handler

logger = get_logger(__name__)


@api_handler(method="GET", path="/config", tags=["config"])
async def get_config() -> Dict[str, Any]:
    """Get the persisted keep-alive configuration

    @returns Full AppConfig (enabled, durationMinutes, lastModified)
    """
    try:
        config = get_runtime().store.get_config()
    except (ConfigError, RuntimeError) as e:
        logger.error(f"Failed to read configuration: {e}")
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    return {
        "success": True,
        "data": config.model_dump(),
        "timestamp": datetime.now().isoformat(),
    }


@api_handler(body=SetConfigRequest, method="POST", path="/config", tags=["config"])
async def set_config(body: SetConfigRequest) -> Dict[str, Any]:
    """Merge a partial configuration and broadcast config-changed

    Changing the duration of an active session restarts it with the new budget.

    @param body - Fields to update; omitted fields keep their value
    @returns Updated AppConfig
    """
    partial = body.to_partial()
    if not partial:
        return {
            "success": False,
            "message": "No configuration fields provided",
            "timestamp": datetime.now().isoformat(),
        }

    try:
        config = get_runtime().session.update_config(partial)
    except (ConfigError, RuntimeError) as e:
        logger.error(f"Failed to update configuration: {e}")
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    logger.info(f"Configuration updated: {partial}")
    return {
        "success": True,
        "message": "Configuration updated",
        "data": config.model_dump(),
        "timestamp": datetime.now().isoformat(),
    }


@api_handler(method="GET", path="/platform", tags=["config"])
async def get_platform_info() -> Dict[str, Any]:
    """Describe the running platform and whether it needs an input permission"""
    try:
        info = get_runtime().platform_info
    except RuntimeError:
        info = BackendFactory.get_platform_info()

    data = info.model_dump()
    data["durationOptions"] = list(DURATION_OPTIONS)
    return {
        "success": True,
        "data": data,
        "timestamp": datetime.now().isoformat(),
    }
