import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from kuzzle_sdk.dispatcher import Dispatcher
from kuzzle_sdk.errors import KuzzleConnectionError
from kuzzle_sdk.transports.base import Transport


class FakeTransport(Transport):
    """In-memory transport: records sent frames, replies on demand."""

    def __init__(self, refuse_connections: int = 0) -> None:
        super().__init__()
        self.sent: List[bytes] = []
        self.connected = False
        self.connect_calls = 0
        self.refuse_connections = refuse_connections

    @property
    def is_open(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.refuse_connections:
            self.refuse_connections -= 1
            raise KuzzleConnectionError("connection refused")
        self.connected = True

    async def send(self, data: bytes) -> None:
        self._ensure_open()
        self.sent.append(data)

    async def close(self) -> None:
        self.connected = False

    def frames(self) -> List[Dict[str, Any]]:
        return [json.loads(data) for data in self.sent]

    def reply(self, request_id: str, result: Any = None, status: int = 200,
              error: Optional[Dict[str, Any]] = None, **extra: Any) -> None:
        frame = {"requestId": request_id, "status": status, "error": error, "result": result}
        frame.update(extra)
        self._deliver(json.dumps(frame).encode('utf-8'))

    def receive_raw(self, data: bytes) -> None:
        self._deliver(data)

    def drop(self) -> None:
        """Simulate the server going away."""
        self.connected = False
        self._closed()


async def wait_for_frames(transport: FakeTransport, count: int) -> List[Dict[str, Any]]:
    """Yield to the loop until ``count`` frames were sent."""
    for _ in range(200):
        if len(transport.sent) >= count:
            return transport.frames()
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} frame(s), got {len(transport.sent)}")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def dispatcher(transport: FakeTransport) -> Dispatcher:
    return Dispatcher(transport, request_timeout=1.0, auto_reconnect=False)
