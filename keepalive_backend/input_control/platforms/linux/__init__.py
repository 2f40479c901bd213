"""
Linux platform-specific implementation
Uses pynput (X11) for the cursor, logind D-Bus signals for sleep/wake
"""

from .mouse import LinuxMouseBackend
from .power_state import LinuxPowerStateMonitor

__all__ = ["LinuxMouseBackend", "LinuxPowerStateMonitor"]
