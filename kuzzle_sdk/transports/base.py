"""Transport interface.

This is the (small) contract that transport implementations follow. The
dispatcher owns a single transport and binds its two callbacks; transports
know nothing about requests, correlation ids or the connection state machine.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..errors import KuzzleConnectionError


ReceiveCallback = Callable[[bytes], None]
CloseCallback = Callable[[], None]


class Transport(ABC):
    """Minimal contract for a wire-level transport."""

    def __init__(self) -> None:
        self._on_receive: Optional[ReceiveCallback] = None
        self._on_close: Optional[CloseCallback] = None

    def bind(self, on_receive: ReceiveCallback, on_close: CloseCallback) -> None:
        """Register the frame and connection-lost callbacks."""
        self._on_receive = on_receive
        self._on_close = on_close

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish the underlying connection.

        Raises:
            KuzzleConnectionError: If the server cannot be reached
        """

    @abstractmethod
    async def send(self, data: bytes) -> None:
        """
        Transmit one serialized frame.

        Raises:
            KuzzleConnectionError: If the frame cannot be written
        """

    @abstractmethod
    async def close(self) -> None:
        """Tear down the connection. Does not trigger ``on_close``."""

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently connected."""
        return False

    def _ensure_open(self) -> None:
        if not self.is_open:
            raise KuzzleConnectionError(f"{type(self).__name__} is not connected")

    def _deliver(self, data: bytes) -> None:
        if self._on_receive is not None:
            self._on_receive(data)

    def _closed(self) -> None:
        if self._on_close is not None:
            self._on_close()
