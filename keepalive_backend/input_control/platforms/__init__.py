"""
Platform-specific implementation package
Provides mouse backends and power state monitors per operating system
"""

from .linux import LinuxMouseBackend, LinuxPowerStateMonitor
from .macos import MacOSMouseBackend, MacOSPowerStateMonitor
from .windows import WindowsMouseBackend, WindowsPowerStateMonitor

__all__ = [
    "MacOSMouseBackend",
    "MacOSPowerStateMonitor",
    "WindowsMouseBackend",
    "WindowsPowerStateMonitor",
    "LinuxMouseBackend",
    "LinuxPowerStateMonitor",
]
