"""
Request models for keep-alive commands
"""

from typing import Any, Dict, Optional

from pydantic import Field

from .base import BaseModel


class SetConfigRequest(BaseModel):
    """Partial configuration update

    Only fields that are set are merged into the stored configuration.
    """

    enabled: Optional[bool] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)

    def to_partial(self) -> Dict[str, Any]:
        """Fields explicitly provided by the caller, snake_case keys"""
        return self.model_dump(by_alias=False, exclude_none=True)
