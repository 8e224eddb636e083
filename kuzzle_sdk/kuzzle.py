"""Kuzzle client: the object applications hold to talk to a Kuzzle server."""

from typing import Any, Optional

from .dispatcher import Dispatcher, Listener
from .models.options import ConnectionState, QueryOptions
from .models.request import KuzzleRequest
from .models.response import KuzzleResponse
from .transports import create_transport
from .transports.base import Transport
from .utils.config import Config
from .utils.logger import setup_logger


class Kuzzle:
    """
    Kuzzle SDK client.

    Owns one transport through its dispatcher and the authentication token
    attached to every query. Several clients can coexist; nothing is global.

    Example::

        async with Kuzzle(config=Config(host="localhost", port=7512)) as kuzzle:
            response = await kuzzle.query(KuzzleRequest(controller="server", action="now"))
            print(response.result)
    """

    def __init__(self, transport: Optional[Transport] = None, config: Optional[Config] = None):
        """
        Initialize the client.

        Args:
            transport: Transport to use (built from config.protocol if omitted)
            config: Client configuration (defaults if omitted)
        """
        self.config = config or Config()
        self.logger = setup_logger(level=self.config.log_level)
        self.dispatcher = Dispatcher(
            transport or create_transport(self.config),
            request_timeout=self.config.request_timeout,
            auto_reconnect=self.config.auto_reconnect,
            reconnection_delay=self.config.reconnection_delay,
            max_reconnection_delay=self.config.max_reconnection_delay,
            max_reconnect_attempts=self.config.max_reconnect_attempts,
        )
        self._jwt: Optional[str] = None

    @property
    def transport(self) -> Transport:
        return self.dispatcher.transport

    @property
    def state(self) -> ConnectionState:
        return self.dispatcher.state

    @property
    def jwt(self) -> Optional[str]:
        """Authentication token sent with every query."""
        return self._jwt

    @jwt.setter
    def jwt(self, value: Optional[str]) -> None:
        self._jwt = value or None

    async def connect(self) -> None:
        self.logger.info(f"Connecting to Kuzzle at {self.config.host}:{self.config.port} ({self.config.protocol})")
        await self.dispatcher.connect()

    async def disconnect(self) -> None:
        await self.dispatcher.close()

    async def query(self, request: KuzzleRequest, options: Optional[QueryOptions] = None) -> KuzzleResponse:
        """
        Execute a request.

        The client token is added unless the request carries its own, and
        ``options.volatile`` is merged under the request's volatile data.
        ``options.queuable`` is accepted and ignored: requests are never queued.

        Args:
            request: Request to execute
            options: Per-query options

        Returns:
            Successful response

        Raises:
            KuzzleError: If the backend returned an error
            KuzzleConnectionError, RequestTimeoutError, ProtocolError: See Dispatcher.send
        """
        options = options or QueryOptions()
        update: dict = {}
        if self._jwt and request.jwt is None:
            update["jwt"] = self._jwt
        if options.volatile:
            update["volatile"] = {**options.volatile, **request.volatile}
        if update:
            request = request.model_copy(update=update)
        return await self.dispatcher.send(request, timeout=options.timeout)

    def on(self, event: str, listener: Listener) -> None:
        self.dispatcher.on(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self.dispatcher.off(event, listener)

    async def __aenter__(self) -> "Kuzzle":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
