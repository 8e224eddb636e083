"""Per-request options and connection state."""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


class ConnectionState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class QueryOptions(BaseModel):
    """Options applying to a single query."""

    timeout: Optional[float] = Field(None, description="Response deadline in seconds (client default if None)")
    volatile: Dict[str, Any] = Field(default_factory=dict, description="Volatile metadata merged into the request")
    queuable: bool = Field(True, description="Kept for API compatibility, requests are never queued")

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("timeout must be a positive number of seconds")
        return value
