"""
Windows platform-specific implementation
Uses pynput for the cursor, WM_POWERBROADCAST for sleep/wake
"""

from .mouse import WindowsMouseBackend
from .power_state import WindowsPowerStateMonitor

__all__ = ["WindowsMouseBackend", "WindowsPowerStateMonitor"]
