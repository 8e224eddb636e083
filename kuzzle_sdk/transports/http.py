"""HTTP transport backed by httpx."""

import json
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from urllib.parse import quote

import httpx

from ..errors import KuzzleConnectionError, SdkError
from ..protocol import decode_frame
from ..utils.logger import get_logger
from .base import Transport


logger = get_logger("transports.http")

DEFAULT_ROUTES_FILE = Path(__file__).parent / "http_routes.json"

# Frame keys that never end up in the query string
_FRAME_KEYS = ("requestId", "controller", "action", "index", "collection", "_id", "body", "volatile", "jwt")

_PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")

Routes = Dict[str, Dict[str, Dict[str, str]]]


def load_routes(source: Optional[Union[str, Path, Mapping[str, Any]]] = None) -> Routes:
    """
    Load the ``controller -> action -> {verb, url}`` route table.

    Args:
        source: Path to a JSON file, an already-loaded mapping, or None for the packaged table

    Returns:
        Route table

    Raises:
        SdkError: If the table cannot be read or is malformed
    """
    if isinstance(source, Mapping):
        routes = source
    else:
        path = Path(source) if source is not None else DEFAULT_ROUTES_FILE
        try:
            with open(path, 'r', encoding='utf-8') as f:
                routes = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SdkError("load_routes", f"Cannot read HTTP routes from {path}: {e}") from e

    for controller, actions in routes.items():
        if not isinstance(actions, Mapping):
            raise SdkError("load_routes", f"Routes of controller {controller!r} must be an object")
        for action, route in actions.items():
            if not isinstance(route, Mapping) or "verb" not in route or "url" not in route:
                raise SdkError("load_routes", f"Route {controller}:{action} needs a verb and an url")
    return {c: {a: dict(r) for a, r in actions.items()} for c, actions in routes.items()}


class HttpTransport(Transport):
    """
    Stateless request/response transport.

    Each frame is mapped to an HTTP call through the route table; the JSON
    body of the HTTP response is handed back through ``on_receive`` before
    ``send`` returns.
    """

    def __init__(
        self,
        base_url: str,
        routes: Optional[Union[str, Path, Mapping[str, Any]]] = None,
        connection_timeout: float = 5.0,
        client_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.routes = load_routes(routes)
        self.connection_timeout = connection_timeout
        self._client_transport = client_transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        if self._client is not None:
            return
        # The response deadline is enforced by the dispatcher
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(None, connect=self.connection_timeout),
            transport=self._client_transport,
        )
        logger.info(f"HTTP client ready for {self.base_url}")

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
            logger.info(f"HTTP client for {self.base_url} closed")

    def resolve(self, frame: Dict[str, Any]) -> Tuple[str, str, Dict[str, Any]]:
        """
        Map a request frame to ``(verb, path, query)``.

        Raises:
            SdkError: If no route matches or a path placeholder has no value
        """
        controller, action = frame.get("controller"), frame.get("action")
        route = self.routes.get(controller, {}).get(action)
        if route is None:
            raise SdkError("HttpTransport.send", f"No HTTP route for {controller}:{action}")

        query = {k: v for k, v in frame.items() if k not in _FRAME_KEYS}
        values = {
            "index": frame.get("index"),
            "collection": frame.get("collection"),
            "_id": frame.get("_id"),
        }
        used = set()

        def substitute(match: "re.Match[str]") -> str:
            name = match.group(1)
            value = values.get(name)
            if value is None:
                value = query.get(name)
            if value is None:
                raise SdkError("HttpTransport.send", f"Route {controller}:{action} needs a value for :{name}")
            used.add(name)
            return quote(str(value), safe="")

        path = _PLACEHOLDER.sub(substitute, route["url"])
        for name in used:
            query.pop(name, None)
        if values["_id"] is not None and "_id" not in used:
            query["_id"] = values["_id"]
        return route["verb"].upper(), path, query

    async def send(self, data: bytes) -> None:
        self._ensure_open()
        frame = decode_frame(data)
        request_id = frame.get("requestId")
        verb, path, query = self.resolve(frame)

        headers = {}
        if frame.get("jwt"):
            headers["Authorization"] = f"Bearer {frame['jwt']}"

        logger.debug(f"{verb} {path} (request {request_id})")
        try:
            response = await self._client.request(
                verb,
                path,
                params={k: _query_value(v) for k, v in query.items()},
                json=frame.get("body") or None,
                headers=headers,
            )
        except httpx.TransportError as e:
            raise KuzzleConnectionError(f"{verb} {self.base_url}{path} failed: {e}") from e

        self._deliver(json.dumps(_response_frame(response, request_id)).encode('utf-8'))


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _response_frame(response: httpx.Response, request_id: Optional[str]) -> Dict[str, Any]:
    """Standard response frame for an HTTP reply, tagged with ``request_id``."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        # Not a Kuzzle response (proxy error page...)
        payload = {"status": response.status_code, "result": None}
        if response.is_error:
            payload["error"] = {
                "status": response.status_code,
                "message": response.text[:200] or response.reason_phrase,
            }

    payload.setdefault("status", response.status_code)
    # The server generates its own ids over HTTP, the exchange itself is the correlation
    payload["requestId"] = request_id
    return payload
