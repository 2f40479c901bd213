"""
macOS platform-specific implementation
Uses Quartz CGEvent for the cursor, NSWorkspace notifications for sleep/wake
"""

from .mouse import MacOSMouseBackend
from .power_state import MacOSPowerStateMonitor

__all__ = ["MacOSMouseBackend", "MacOSPowerStateMonitor"]
