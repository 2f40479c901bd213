"""
Keep-alive domain models
All timestamps are integer milliseconds since the Unix epoch
"""

from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field

from .base import BaseModel


class Platform(str, Enum):
    """Platforms with an input backend"""

    DARWIN = "darwin"
    WIN32 = "win32"
    LINUX = "linux"


class MousePosition(BaseModel):
    """Cursor position in screen pixels"""

    model_config = ConfigDict(**BaseModel.model_config, frozen=True)

    x: int
    y: int


# Used when the backend cannot read the cursor
DEFAULT_MOUSE_POSITION = MousePosition(x=500, y=500)


class PlatformInfo(BaseModel):
    """Static capability metadata of the running platform"""

    model_config = ConfigDict(
        **BaseModel.model_config, frozen=True, use_enum_values=True
    )

    platform: Platform
    needs_permission: bool
    permission_name: str  # Display name of the OS permission, empty if none


class SchedulerState(BaseModel):
    """Snapshot pushed by the keep-alive scheduler"""

    is_running: bool = False
    next_move_at: int = 0  # 0 when nothing is scheduled
    last_move_at: Optional[int] = None
    countdown: int = 0  # Seconds until next_move_at, derived at snapshot time


class SessionState(BaseModel):
    """Merged runtime state broadcast to the presentation layer"""

    is_active: bool = False
    has_permission: bool = False
    end_at: int = 0  # 0 means unbounded
    remaining_seconds: int = 0
    next_move_at: int = 0
    countdown: int = 0
    last_move_at: Optional[int] = None


class AppConfig(BaseModel):
    """Persisted user configuration"""

    enabled: bool = False
    duration_minutes: int = Field(default=60, ge=0)  # 0 means unbounded
    last_modified: int = 0


# Duration presets offered by the UI, in minutes (0 = unbounded)
DURATION_OPTIONS = (30, 60, 120, 240, 480, 0)
