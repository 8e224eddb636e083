"""Request dispatch and response correlation over a single transport."""

import asyncio
import time
import uuid
from collections import defaultdict
from contextlib import suppress
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import (
    KuzzleConnectionError,
    KuzzleError,
    ProtocolError,
    RequestTimeoutError,
    SdkError,
)
from .models.options import ConnectionState
from .models.request import KuzzleRequest
from .models.response import KuzzleResponse
from .protocol import deserialize_response, peek_request_id, serialize_request
from .transports.base import Transport
from .utils.logger import get_logger


EVENTS = frozenset({
    "connected",
    "disconnected",
    "reconnecting",
    "reconnected",
    "unhandled_message",
})

Listener = Callable[..., Any]


class PendingRequest:
    """A sent request waiting for its response."""

    def __init__(self, request: KuzzleRequest, future: "asyncio.Future[KuzzleResponse]"):
        self.request = request
        self.future = future
        self.sent_at = time.monotonic()

    @property
    def id(self) -> str:
        return self.request.request_id

    def resolve(self, response: KuzzleResponse) -> None:
        if not self.future.done():
            self.future.set_result(response)

    def fail(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class Dispatcher:
    """
    Sends requests over a transport and routes responses back to their callers.

    All bookkeeping runs on the event loop the dispatcher is used from, so the
    pending table needs no lock. Only connect/close are serialized.
    """

    def __init__(
        self,
        transport: Transport,
        request_timeout: float = 30.0,
        auto_reconnect: bool = True,
        reconnection_delay: float = 1.0,
        max_reconnection_delay: float = 30.0,
        max_reconnect_attempts: Optional[int] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            transport: Transport to own; its callbacks are bound to this dispatcher
            request_timeout: Default response deadline in seconds
            auto_reconnect: Reconnect when the transport reports a lost connection
            reconnection_delay: First delay between reconnection attempts in seconds
            max_reconnection_delay: Upper bound of the reconnection backoff in seconds
            max_reconnect_attempts: Give up after this many attempts (None retries forever)
        """
        self.transport = transport
        self.request_timeout = request_timeout
        self.auto_reconnect = auto_reconnect
        self.reconnection_delay = reconnection_delay
        self.max_reconnection_delay = max_reconnection_delay
        self.max_reconnect_attempts = max_reconnect_attempts
        self.logger = get_logger("dispatcher")

        self._state = ConnectionState.DISCONNECTED
        self._pending: Dict[str, PendingRequest] = {}
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closing = False

        transport.bind(self.on_message, self.on_disconnect)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pending_count(self) -> int:
        """Number of requests waiting for a response."""
        return len(self._pending)

    # --- lifecycle ---

    async def connect(self) -> None:
        """
        Connect the transport.

        Raises:
            KuzzleConnectionError: If the transport cannot connect
        """
        async with self._lock:
            if self._state is ConnectionState.CONNECTED:
                self.logger.debug("Already connected")
                return

            await self._cancel_reconnect()
            self._closing = False
            self._set_state(ConnectionState.CONNECTING)
            try:
                await self.transport.connect()
            except KuzzleConnectionError:
                self._set_state(ConnectionState.DISCONNECTED)
                raise
            self._set_state(ConnectionState.CONNECTED)

        self._emit("connected")

    async def close(self) -> None:
        """Close the transport and fail every pending request."""
        async with self._lock:
            self._closing = True
            await self._cancel_reconnect()
            try:
                await self.transport.close()
            finally:
                self._fail_all("Client disconnected")
                previous = self._state
                self._set_state(ConnectionState.DISCONNECTED)

        if previous is not ConnectionState.DISCONNECTED:
            self._emit("disconnected")

    # --- requests ---

    async def send(self, request: KuzzleRequest, timeout: Optional[float] = None) -> KuzzleResponse:
        """
        Send a request and wait for its response.

        Args:
            request: Request to send; it is not modified
            timeout: Response deadline in seconds (defaults to request_timeout)

        Returns:
            Successful response

        Raises:
            KuzzleConnectionError: If not connected or the connection is lost
            RequestTimeoutError: If no response arrives in time
            ProtocolError: If the response is malformed
            KuzzleError: If the backend returned an error
            SdkError: If the request id is empty or already in flight, or the request cannot be encoded
        """
        if self._state is not ConnectionState.CONNECTED:
            raise KuzzleConnectionError(f"Cannot send {request.route}: client is {self._state.value}")

        timeout = self.request_timeout if timeout is None else timeout
        if timeout <= 0:
            raise SdkError("Dispatcher.send", "timeout must be positive")

        request = self._assign_id(request)
        frame = serialize_request(request)

        pending = PendingRequest(request, asyncio.get_running_loop().create_future())
        self._pending[pending.id] = pending
        self.logger.debug(f"Sending {request.route} (ID: {pending.id}, timeout: {timeout}s)")

        try:
            return await asyncio.wait_for(self._transmit(pending, frame), timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Request {pending.id} ({request.route}) timed out after {timeout}s")
            raise RequestTimeoutError(pending.id, timeout) from None
        finally:
            if self._pending.get(pending.id) is pending:
                del self._pending[pending.id]

    async def _transmit(self, pending: PendingRequest, frame: bytes) -> KuzzleResponse:
        await self.transport.send(frame)
        return await pending.future

    def _assign_id(self, request: KuzzleRequest) -> KuzzleRequest:
        if request.request_id is not None:
            if not request.request_id:
                raise SdkError("Dispatcher.send", "Request id must not be empty")
            if request.request_id in self._pending:
                raise SdkError("Dispatcher.send", f"Request id {request.request_id} is already in flight")
            return request

        request_id = str(uuid.uuid4())
        while request_id in self._pending:
            request_id = str(uuid.uuid4())
        return request.model_copy(update={"request_id": request_id})

    # --- transport callbacks ---

    def on_message(self, raw: Union[bytes, str]) -> None:
        """Correlate an incoming frame with its pending request."""
        try:
            response = deserialize_response(raw)
        except ProtocolError as e:
            request_id = peek_request_id(raw)
            pending = self._pending.pop(request_id, None) if request_id else None
            if pending is None:
                self.logger.warning(f"Dropping malformed frame: {e}")
                self._emit("unhandled_message", raw)
                return
            self.logger.error(f"Malformed response for request {request_id}: {e}")
            pending.fail(e)
            return

        pending = self._pending.pop(response.request_id, None)
        if pending is None:
            self.logger.warning(f"Dropping response for unknown request {response.request_id}")
            self._emit("unhandled_message", response)
            return

        elapsed = time.monotonic() - pending.sent_at
        if response.success:
            self.logger.debug(f"Request {response.request_id} succeeded in {elapsed:.3f}s")
            pending.resolve(response)
        else:
            error = KuzzleError.from_response(response)
            self.logger.debug(f"Request {response.request_id} failed in {elapsed:.3f}s: {error}")
            pending.fail(error)

    def on_disconnect(self) -> None:
        """Handle a connection lost by the transport."""
        previous = self._state
        count = self._fail_all("Connection lost")
        self.logger.warning(f"Connection lost, {count} pending request(s) failed")

        if self._closing or previous is ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.DISCONNECTED)
            return

        if self.auto_reconnect:
            self._set_state(ConnectionState.RECONNECTING)
            self._emit("disconnected")
            self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop())
            self._reconnect_task.add_done_callback(self._reconnect_done)
        else:
            self._set_state(ConnectionState.DISCONNECTED)
            self._emit("disconnected")

    # --- reconnection ---

    async def _reconnect_loop(self) -> None:
        delay = self.reconnection_delay
        attempt = 0

        while self._state is ConnectionState.RECONNECTING:
            attempt += 1
            if self.max_reconnect_attempts is not None and attempt > self.max_reconnect_attempts:
                self.logger.error(f"Giving up reconnection after {self.max_reconnect_attempts} attempt(s)")
                self._set_state(ConnectionState.DISCONNECTED)
                return

            self._emit("reconnecting", attempt)
            self.logger.info(f"Reconnecting in {delay}s (attempt {attempt})")
            await asyncio.sleep(delay)
            if self._state is not ConnectionState.RECONNECTING:
                return

            try:
                await self.transport.connect()
            except KuzzleConnectionError as e:
                self.logger.warning(f"Reconnect attempt {attempt} failed: {e}")
                delay = min(delay * 2, self.max_reconnection_delay)
                continue
            except Exception:
                self.logger.exception(f"Reconnect attempt {attempt} failed unexpectedly")
                delay = min(delay * 2, self.max_reconnection_delay)
                continue

            # Requests failed by the disconnection are not replayed
            self._set_state(ConnectionState.CONNECTED)
            self.logger.info(f"Reconnected after {attempt} attempt(s)")
            self._emit("reconnected")
            return

    def _reconnect_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Reconnection stopped: {error!r}")
            if self._state is ConnectionState.RECONNECTING:
                self._set_state(ConnectionState.DISCONNECTED)

    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    # --- helpers ---

    def _fail_all(self, message: str) -> int:
        pending, self._pending = self._pending, {}
        for entry in pending.values():
            entry.fail(KuzzleConnectionError(f"{message} (request {entry.id})"))
        return len(pending)

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            self.logger.debug(f"State: {self._state.value} -> {state.value}")
            self._state = state

    # --- listeners ---

    def on(self, event: str, listener: Listener) -> None:
        """
        Register a listener.

        Events: connected, disconnected, reconnecting (attempt number),
        reconnected, unhandled_message (response or raw frame).
        """
        if event not in EVENTS:
            raise SdkError("Dispatcher.on", f"Unknown event {event!r}")
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        with suppress(ValueError):
            self._listeners[event].remove(listener)

    def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(*args)
            except Exception:
                self.logger.exception(f"Listener for {event!r} failed")
