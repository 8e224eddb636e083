"""Configuration management for the Kuzzle SDK."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .logger import get_logger


PROTOCOLS = ("websocket", "http")


class Config:
    """Connection and behavior options for a Kuzzle client."""
    
    def __init__(
        self,
        host: str = "localhost",
        port: int = 7512,
        ssl_connection: bool = False,
        protocol: str = "websocket",
        auto_reconnect: bool = True,
        reconnection_delay: float = 1.0,
        max_reconnection_delay: float = 30.0,
        max_reconnect_attempts: Optional[int] = None,
        request_timeout: float = 30.0,
        connection_timeout: float = 5.0,
        http_routes: Optional[str] = None,
        log_level: str = "INFO"
    ):
        """
        Initialize configuration.
        
        Args:
            host: Kuzzle server hostname or IP address
            port: Kuzzle server port number
            ssl_connection: Use TLS (https/wss) when True
            protocol: Transport to use, "websocket" or "http"
            auto_reconnect: Reconnect automatically when the connection is lost
            reconnection_delay: First delay between reconnection attempts in seconds
            max_reconnection_delay: Upper bound of the reconnection backoff in seconds
            max_reconnect_attempts: Give up after this many attempts (None retries forever)
            request_timeout: Default response deadline of a request in seconds
            connection_timeout: Connection timeout in seconds
            http_routes: Path to a JSON routes file for the HTTP transport (optional)
            log_level: Logging level
        """
        if protocol not in PROTOCOLS:
            raise ValueError(f"Unknown protocol {protocol!r}, expected one of {PROTOCOLS}")
        if request_timeout <= 0 or connection_timeout <= 0:
            raise ValueError("Timeouts must be positive")
        if reconnection_delay < 0 or max_reconnection_delay < reconnection_delay:
            raise ValueError("Invalid reconnection delays")
        
        self.host = host
        self.port = port
        self.ssl_connection = ssl_connection
        self.protocol = protocol
        self.auto_reconnect = auto_reconnect
        self.reconnection_delay = reconnection_delay
        self.max_reconnection_delay = max_reconnection_delay
        self.max_reconnect_attempts = max_reconnect_attempts
        self.request_timeout = request_timeout
        self.connection_timeout = connection_timeout
        self.http_routes = http_routes
        self.log_level = log_level
    
    def base_url(self, scheme: str = "http") -> str:
        """
        Build the server base URL.
        
        Args:
            scheme: "http" or "ws", upgraded to the TLS variant when ssl_connection is set
        
        Returns:
            URL such as ``ws://localhost:7512``
        """
        if self.ssl_connection:
            scheme = {"http": "https", "ws": "wss"}.get(scheme, scheme)
        return f"{scheme}://{self.host}:{self.port}"
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        defaults = cls()
        max_attempts = data.get("max_reconnect_attempts", defaults.max_reconnect_attempts)
        return cls(
            host=data.get("host", defaults.host),
            port=int(data.get("port", defaults.port)),
            ssl_connection=bool(data.get("ssl_connection", defaults.ssl_connection)),
            protocol=data.get("protocol", defaults.protocol),
            auto_reconnect=bool(data.get("auto_reconnect", defaults.auto_reconnect)),
            reconnection_delay=float(data.get("reconnection_delay", defaults.reconnection_delay)),
            max_reconnection_delay=float(data.get("max_reconnection_delay", defaults.max_reconnection_delay)),
            max_reconnect_attempts=int(max_attempts) if max_attempts is not None else None,
            request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
            connection_timeout=float(data.get("connection_timeout", defaults.connection_timeout)),
            http_routes=data.get("http_routes"),
            log_level=data.get("log_level", defaults.log_level)
        )
    
    @classmethod
    def from_file(cls, config_path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from a JSON file.
        
        Args:
            config_path: Path to config file (defaults to kuzzle.json in the working directory)
        
        Returns:
            Config instance, defaults when the file is missing or invalid
        """
        config_path = Path(config_path) if config_path is not None else Path.cwd() / "kuzzle.json"
        
        if not config_path.exists():
            return cls()
        
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return cls.from_dict(data)
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            get_logger().warning(f"Failed to load config from {config_path}: {e}. Using defaults.")
            return cls()
    
    @classmethod
    def from_env(cls, base: Optional["Config"] = None) -> "Config":
        """Apply KUZZLE_HOST, KUZZLE_PORT and KUZZLE_SSL overrides on top of ``base``."""
        data = (base or cls()).to_dict()
        if "KUZZLE_HOST" in os.environ:
            data["host"] = os.environ["KUZZLE_HOST"]
        if "KUZZLE_PORT" in os.environ:
            data["port"] = int(os.environ["KUZZLE_PORT"])
        if "KUZZLE_SSL" in os.environ:
            data["ssl_connection"] = os.environ["KUZZLE_SSL"].lower() in ("1", "true", "yes", "on")
        return cls.from_dict(data)
    
    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "ssl_connection": self.ssl_connection,
            "protocol": self.protocol,
            "auto_reconnect": self.auto_reconnect,
            "reconnection_delay": self.reconnection_delay,
            "max_reconnection_delay": self.max_reconnection_delay,
            "max_reconnect_attempts": self.max_reconnect_attempts,
            "request_timeout": self.request_timeout,
            "connection_timeout": self.connection_timeout,
            "http_routes": self.http_routes,
            "log_level": self.log_level
        }
    
    def save(self, config_path: Union[str, Path]) -> None:
        """
        Save configuration to a JSON file.
        
        Args:
            config_path: Destination path
        """
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)
