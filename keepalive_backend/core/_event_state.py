"""
Shared event emission state, so every import path uses the same registered app handle.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class EventState:
    app_handle: Optional[Any] = None


event_state = EventState()
