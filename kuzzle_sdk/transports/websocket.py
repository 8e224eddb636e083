"""Persistent WebSocket transport."""

import asyncio
from contextlib import suppress
from typing import Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..errors import KuzzleConnectionError
from ..utils.logger import get_logger
from .base import Transport


logger = get_logger("transports.websocket")


class WebSocketTransport(Transport):
    """
    One WebSocket connection to the Kuzzle server.

    Every request is sent as a text frame. A background reader task hands
    each incoming frame to the bound ``on_receive`` callback and calls
    ``on_close`` once when the server side goes away.
    """

    def __init__(
        self,
        url: str,
        connection_timeout: float = 5.0,
        ping_interval: Optional[float] = 15.0,
        ping_timeout: Optional[float] = 45.0,
    ) -> None:
        super().__init__()
        self.url = url
        self.connection_timeout = connection_timeout
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self._websocket = None
        self._reader_task: Optional[asyncio.Task] = None
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._websocket is not None

    async def connect(self) -> None:
        if self.is_open:
            return

        logger.debug(f"Connecting to {self.url} (timeout: {self.connection_timeout}s)")
        try:
            websocket = await websockets.connect(
                self.url,
                open_timeout=self.connection_timeout,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise KuzzleConnectionError(f"Failed to connect to {self.url}: {e}") from e

        self._closing = False
        self._websocket = websocket
        self._reader_task = asyncio.create_task(self._read_loop(websocket))
        logger.info(f"Connected to {self.url}")

    async def send(self, data: bytes) -> None:
        self._ensure_open()
        try:
            await self._websocket.send(data.decode('utf-8'))
        except ConnectionClosed as e:
            raise KuzzleConnectionError(f"Connection to {self.url} closed during send: {e}") from e
        logger.debug(f"Sent {len(data)} bytes")

    async def close(self) -> None:
        self._closing = True
        websocket, self._websocket = self._websocket, None
        if websocket is not None:
            await websocket.close(code=1000)
            logger.info(f"Disconnected from {self.url}")

        task, self._reader_task = self._reader_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def _read_loop(self, websocket) -> None:
        try:
            async for raw in websocket:
                if isinstance(raw, str):
                    raw = raw.encode('utf-8')
                logger.debug(f"Received {len(raw)} bytes")
                try:
                    self._deliver(raw)
                except Exception:
                    logger.exception("Failed to process inbound frame")
        except ConnectionClosed as e:
            logger.warning(f"Connection to {self.url} lost: {e}")
        except Exception:
            logger.exception(f"Reader for {self.url} failed")
        finally:
            if self._websocket is websocket:
                self._websocket = None
            if not self._closing:
                self._closed()
