from ..utils.config import Config
from .base import Transport
from .http import HttpTransport, load_routes
from .websocket import WebSocketTransport


def create_transport(config: Config) -> Transport:
    """Build the transport selected by ``config.protocol``."""
    if config.protocol == "http":
        return HttpTransport(
            config.base_url("http"),
            routes=config.http_routes,
            connection_timeout=config.connection_timeout,
        )
    return WebSocketTransport(config.base_url("ws"), connection_timeout=config.connection_timeout)


__all__ = [
    "HttpTransport",
    "Transport",
    "WebSocketTransport",
    "create_transport",
    "load_routes",
]
