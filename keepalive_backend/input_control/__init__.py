"""
Input control module

Uses factory pattern to select the mouse backend and power state monitor for the running platform

Main components:
- BackendFactory: creates platform-specific implementations
- BaseMouseBackend: cursor read/write contract
- Platform-specific implementations: macOS, Windows, Linux
"""

from .base import BaseEventListener, BaseMonitor, BaseMouseBackend
from .factory import BackendFactory, create_backend, get_platform_info

__all__ = [
    "BackendFactory",
    "create_backend",
    "get_platform_info",
    "BaseMonitor",
    "BaseEventListener",
    "BaseMouseBackend",
]
