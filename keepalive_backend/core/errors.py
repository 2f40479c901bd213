"""
Keep-alive error types
"""

from typing import Optional


class KeepAliveError(Exception):
    """Base class for keep-alive backend errors"""


class BackendError(KeepAliveError):
    """A native mouse/keyboard call could not be completed

    Never fatal: reads fall back to a default position, writes try a fallback action.
    """

    def __init__(self, op: str, cause: Optional[BaseException] = None):
        self.op = op
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Input backend operation '{op}' failed{detail}")


class UnsupportedPlatformError(KeepAliveError):
    """No input backend exists for the running platform (startup only)"""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform}")


class ConfigError(KeepAliveError):
    """Invalid or unreadable persisted configuration"""
