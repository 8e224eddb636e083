from .options import ConnectionState, QueryOptions
from .request import KuzzleRequest
from .response import ErrorDetail, KuzzleResponse

__all__ = [
    "ConnectionState",
    "ErrorDetail",
    "KuzzleRequest",
    "KuzzleResponse",
    "QueryOptions",
]
