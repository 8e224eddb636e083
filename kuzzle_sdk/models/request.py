"""Request model for Kuzzle API calls."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class KuzzleRequest(BaseModel):
    """
    A Kuzzle API request.

    Requests are immutable: the dispatcher sends a copy carrying the
    assigned ``request_id`` and leaves the caller's instance untouched.
    """

    controller: str = Field(..., min_length=1, description="Kuzzle controller name")
    action: str = Field(..., min_length=1, description="Action to invoke on the controller")
    index: Optional[str] = Field(None, description="Target index")
    collection: Optional[str] = Field(None, description="Target collection")
    id: Optional[str] = Field(None, description="Target document identifier")
    body: Dict[str, Any] = Field(default_factory=dict, description="Request body payload")
    query_strings: Dict[str, Any] = Field(default_factory=dict, description="Additional request parameters")
    volatile: Dict[str, Any] = Field(default_factory=dict, description="Volatile metadata echoed by the backend")
    jwt: Optional[str] = Field(None, description="Authentication token")
    request_id: Optional[str] = Field(None, min_length=1, description="Correlation identifier")

    class Config:
        """Pydantic configuration."""
        frozen = True
        json_schema_extra = {
            "example": {
                "controller": "document",
                "action": "get",
                "index": "nyc-open-data",
                "collection": "yellow-taxi",
                "id": "some-id",
            }
        }

    @property
    def route(self) -> str:
        """``controller:action`` pair, used in logs."""
        return f"{self.controller}:{self.action}"

    def with_index(self, index: str) -> "KuzzleRequest":
        return self.model_copy(update={"index": index})

    def with_collection(self, collection: str) -> "KuzzleRequest":
        return self.model_copy(update={"collection": collection})

    def add_to_body(self, key: str, value: Any) -> "KuzzleRequest":
        """Return a copy with ``key`` set in the body."""
        return self.model_copy(update={"body": {**self.body, key: value}})

    def add_to_query_strings(self, key: str, value: Any) -> "KuzzleRequest":
        """Return a copy with ``key`` set in the query strings."""
        return self.model_copy(update={"query_strings": {**self.query_strings, key: value}})
