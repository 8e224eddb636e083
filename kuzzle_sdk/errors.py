"""Exceptions raised by the Kuzzle SDK."""

from typing import Any, Optional


# Backend status code -> error family, see https://docs-v2.kuzzle.io/api/1/errors
STATUS_DESCRIPTIONS = {
    206: "PartialError",
    400: "BadRequestError",
    401: "UnauthorizedError",
    403: "ForbiddenError",
    404: "NotFoundError",
    412: "PreconditionError",
    413: "SizeLimitError",
    500: "InternalError",
    503: "ServiceUnavailableError",
    504: "GatewayTimeoutError",
}


class KuzzleSdkError(Exception):
    """Base class for every error raised by this package."""
    pass


class KuzzleConnectionError(KuzzleSdkError, ConnectionError):
    """The transport is unavailable or the connection was lost."""
    pass


class RequestTimeoutError(KuzzleSdkError, TimeoutError):
    """No response was received before the request deadline."""

    def __init__(self, request_id: str, timeout: float):
        super().__init__(f"Request {request_id} timed out after {timeout}s")
        self.request_id = request_id
        self.timeout = timeout


class ProtocolError(KuzzleSdkError):
    """Malformed or unmatched frame."""
    pass


class SdkError(KuzzleSdkError):
    """
    Misuse of the SDK: bad arguments, unknown route, duplicate request id...

    Args:
        cause: Name of the function, method or component that raised the error
        message: Human-readable error message
    """

    def __init__(self, cause: str, message: str):
        super().__init__(f"[{cause}] {message}")
        self.cause = cause
        self.message = message


class KuzzleError(KuzzleSdkError):
    """
    Error payload returned by the Kuzzle backend.

    The originating response, when there is one, is kept in ``response``.
    """

    def __init__(
        self,
        status: Optional[int],
        message: str,
        stack: Optional[str] = None,
        id: Optional[str] = None,
        response: Optional[Any] = None,
    ):
        self.status = status
        self.message = message
        self.stack = stack
        self.id = id
        self.response = response
        super().__init__(str(self))

    @property
    def description(self) -> str:
        """Error family matching the status code."""
        if self.status is None:
            return "UnidentifiedError"
        return STATUS_DESCRIPTIONS.get(self.status, "CustomError")

    @classmethod
    def from_response(cls, response: Any) -> "KuzzleError":
        """Build the exception from a failed ``KuzzleResponse``."""
        error = response.error
        if error is None:
            return cls(response.status, "Request failed without error details", response=response)
        return cls(
            status=error.status if error.status is not None else response.status,
            message=error.message,
            stack=error.stack,
            id=error.id,
            response=response,
        )

    def __str__(self) -> str:
        status = self.status if self.status is not None else "?"
        # The stack already embeds the message
        if self.stack:
            return f"[{status}] {self.stack}"
        return f"[{status}] {self.description} : {self.message}"
