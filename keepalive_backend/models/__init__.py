"""
Models for PyTauri command communication
"""

from .base import BaseModel
from .keepalive import (
    DEFAULT_MOUSE_POSITION,
    DURATION_OPTIONS,
    AppConfig,
    MousePosition,
    Platform,
    PlatformInfo,
    SchedulerState,
    SessionState,
)
from .permissions import PermissionCheckResponse, PermissionStatus
from .requests import SetConfigRequest

__all__ = [
    # Base
    "BaseModel",
    # Keep-alive
    "AppConfig",
    "MousePosition",
    "Platform",
    "PlatformInfo",
    "SchedulerState",
    "SessionState",
    "DEFAULT_MOUSE_POSITION",
    "DURATION_OPTIONS",
    # Permissions
    "PermissionStatus",
    "PermissionCheckResponse",
    # Requests
    "SetConfigRequest",
]
