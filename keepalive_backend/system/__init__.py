"""System layer utility module."""

from .runtime import get_runtime, get_runtime_stats, start_runtime, stop_runtime

__all__ = [
    "start_runtime",
    "stop_runtime",
    "get_runtime",
    "get_runtime_stats",
]
