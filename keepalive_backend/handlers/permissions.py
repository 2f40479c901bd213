"""
Input-control permission API handlers
"""

from datetime import datetime
from typing import Any, Dict

from keepalive_backend.core.logger import get_logger
from keepalive_backend.models import PermissionCheckResponse
from keepalive_backend.system.permissions import PermissionMonitor
from keepalive_backend.system.runtime import get_runtime

from . import api_handler

logger = get_logger(__name__)


def _build_response(monitor: PermissionMonitor, granted: bool) -> Dict[str, Any]:
    info = monitor.platform_info
    return PermissionCheckResponse(
        granted=granted,
        status=monitor.status,
        platform=info.platform,
        needs_permission=info.needs_permission,
        permission_name=info.permission_name or "",
    ).model_dump()


@api_handler(method="GET", path="/permissions/check", tags=["permissions"])
async def check_permission() -> Dict[str, Any]:
    """
    Check the input-control permission without prompting

    Returns:
        Permission status for the running platform
    """
    try:
        monitor = get_runtime().permissions
        granted = monitor.check_status()
    except RuntimeError as e:
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    logger.debug(f"Permission check completed: granted={granted}")
    return {
        "success": True,
        "data": _build_response(monitor, granted),
        "timestamp": datetime.now().isoformat(),
    }


@api_handler(path="/permissions/request", tags=["permissions"])
async def request_permission() -> Dict[str, Any]:
    """
    Request the input-control permission (shows the macOS consent prompt)

    A grant given afterwards in System Settings is picked up by the permission watcher.
    """
    try:
        monitor = get_runtime().permissions
        granted = monitor.request_status()
    except RuntimeError as e:
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    if granted:
        message = "Permission granted"
    else:
        message = "Please grant the permission in System Settings"

    return {
        "success": True,
        "message": message,
        "data": _build_response(monitor, granted),
        "timestamp": datetime.now().isoformat(),
    }


@api_handler(path="/permissions/open-settings", tags=["permissions"])
async def open_permission_settings() -> Dict[str, Any]:
    """Open the system settings page for the input-control permission"""
    try:
        monitor = get_runtime().permissions
    except RuntimeError as e:
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }

    if not monitor.needs_permission:
        return {
            "success": False,
            "message": "This platform does not require an input-control permission",
            "timestamp": datetime.now().isoformat(),
        }

    await monitor.open_platform_settings()
    return {
        "success": True,
        "message": f"Opened {monitor.platform_info.permission_name} permission settings page",
        "timestamp": datetime.now().isoformat(),
    }
