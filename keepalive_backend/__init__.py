"""
Keep-alive backend
Periodically nudges the mouse cursor so the machine does not go idle
"""

__version__ = "1.0.0"
