"""
System module command handlers
"""

from datetime import datetime
from typing import Any, Dict

from keepalive_backend import __version__
from keepalive_backend.system.runtime import get_runtime_stats

from . import api_handler


@api_handler(method="GET", tags=["system"])
async def get_system_stats() -> Dict[str, Any]:
    """Get overall runtime status

    @returns Platform, session, permission, scheduler and backend statistics
    """
    try:
        stats = await get_runtime_stats()
    except RuntimeError as e:
        return {
            "success": False,
            "message": str(e),
            "timestamp": datetime.now().isoformat(),
        }
    return {"success": True, "data": stats, "timestamp": datetime.now().isoformat()}


@api_handler(method="GET", tags=["system"])
async def get_app_version() -> Dict[str, Any]:
    """Get the backend version"""
    return {
        "success": True,
        "data": {"version": __version__},
        "timestamp": datetime.now().isoformat(),
    }
