"""Kuzzle SDK: talk to a Kuzzle server over WebSocket or HTTP."""

from .dispatcher import Dispatcher
from .errors import (
    KuzzleConnectionError,
    KuzzleError,
    KuzzleSdkError,
    ProtocolError,
    RequestTimeoutError,
    SdkError,
)
from .kuzzle import Kuzzle
from .models import ConnectionState, ErrorDetail, KuzzleRequest, KuzzleResponse, QueryOptions
from .transports import HttpTransport, Transport, WebSocketTransport
from .utils.config import Config

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConnectionState",
    "Dispatcher",
    "ErrorDetail",
    "HttpTransport",
    "Kuzzle",
    "KuzzleConnectionError",
    "KuzzleError",
    "KuzzleRequest",
    "KuzzleResponse",
    "KuzzleSdkError",
    "ProtocolError",
    "QueryOptions",
    "RequestTimeoutError",
    "SdkError",
    "Transport",
    "WebSocketTransport",
]
