"""Response model for Kuzzle API calls."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error structure returned by the backend."""

    status: Optional[int] = Field(None, description="HTTP-like status code")
    message: str = Field("Unknown error", description="Human-readable error message")
    stack: Optional[str] = Field(None, description="Backend stack trace (debug mode only)")
    id: Optional[str] = Field(None, description="Backend error identifier")


class KuzzleResponse(BaseModel):
    """Kuzzle standard response, shared by every API route."""

    request_id: str = Field(..., alias="requestId", description="Request ID that this response corresponds to")
    status: int = Field(200, description="HTTP-like status code")
    error: Optional[ErrorDetail] = Field(None, description="Error object (null if successful)")
    result: Optional[Any] = Field(None, description="Result object (null if error occurred)")
    controller: Optional[str] = None
    action: Optional[str] = None
    index: Optional[str] = None
    collection: Optional[str] = None
    volatile: Optional[Dict[str, Any]] = None
    room: Optional[str] = Field(None, description="Realtime room identifier")
    channel: Optional[str] = None

    class Config:
        """Pydantic configuration."""
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "requestId": "0b0a3c5d-3a4e-4f57-9d8c-7d6f5d0e7b21",
                "status": 200,
                "error": None,
                "controller": "server",
                "action": "now",
                "result": {"now": 1700000000000},
            }
        }

    @property
    def success(self) -> bool:
        return self.error is None and self.status < 400
