"""
Permission-related Pydantic models
"""

from enum import Enum

from pydantic import ConfigDict

from .base import BaseModel


class PermissionStatus(str, Enum):
    """Input-control permission status"""

    UNKNOWN = "unknown"  # Not queried yet
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def from_bool(cls, granted: bool) -> "PermissionStatus":
        return cls.GRANTED if granted else cls.DENIED


class PermissionCheckResponse(BaseModel):
    """Permission check response"""

    # Merge parent config with use_enum_values=True to serialize enums as strings
    model_config = ConfigDict(**BaseModel.model_config, use_enum_values=True)

    granted: bool
    status: PermissionStatus
    platform: str
    needs_permission: bool
    permission_name: str
