"""
Configuration models and data structures.

This module defines the configuration models used throughout the client,
providing type safety and validation for configuration values.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from ...utils.formatting import validate_username


@dataclass
class ServerConfig:
    """Chat server endpoint."""
    host: str = "127.0.0.1"
    port: int = 8000
    path: str = "/socket.io/"
    scheme: str = "ws"
    connect_timeout: float = 10.0


@dataclass
class ClientConfig:
    """Client identity and input handling."""
    username: str = "PyClient"
    greeting: str = "Hello from Python client!"
    error_history_size: int = 10
    max_message_length: int = 2000
    exit_on_connect_failure: bool = False


@dataclass
class HeartbeatConfig:
    """Application-level heartbeat settings."""
    enabled: bool = True
    interval: float = 20.0
    stale_threshold: float = 120.0


@dataclass
class ReconnectConfig:
    """Session establishment retry settings."""
    max_attempts: int = 3
    retry_delay: float = 2.0
    confirm_timeout: float = 3.0


@dataclass
class StatsConfig:
    """Periodic statistics logging."""
    enabled: bool = True
    interval: float = 60.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )
    log_directory: str = "logs"
    log_file: str = "chat_client.log"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    console_level: str = "WARNING"
    file_enabled: bool = True


VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    name: str = "ChatLink"
    version: str = "0.1.0"
    debug: bool = False

    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    heartbeat: HeartbeatConfig = field(default_factory=HeartbeatConfig)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_server()
        self._validate_client()
        self._validate_intervals()
        self._validate_logging()

    def _validate_server(self) -> None:
        if not (1 <= self.server.port <= 65535):
            raise ValueError(f"Server port must be between 1 and 65535, got {self.server.port}")
        if self.server.scheme not in ("ws", "wss"):
            raise ValueError(f"Server scheme must be 'ws' or 'wss', got {self.server.scheme!r}")
        if not self.server.host:
            raise ValueError("Server host must not be empty")

    def _validate_client(self) -> None:
        problem = validate_username(self.client.username)
        if problem:
            raise ValueError(f"Invalid username {self.client.username!r}: {problem}")
        if self.client.error_history_size < 1:
            raise ValueError(
                f"Error history size must be at least 1, got {self.client.error_history_size}")
        if self.client.max_message_length < 1:
            raise ValueError(
                f"Max message length must be at least 1, got {self.client.max_message_length}")

    def _validate_intervals(self) -> None:
        """Validate interval and timeout values."""
        values = [
            ("Connect timeout", self.server.connect_timeout),
            ("Heartbeat interval", self.heartbeat.interval),
            ("Heartbeat stale threshold", self.heartbeat.stale_threshold),
            ("Reconnect confirm timeout", self.reconnect.confirm_timeout),
            ("Stats interval", self.stats.interval),
        ]

        for name, value in values:
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.reconnect.max_attempts < 1:
            raise ValueError(
                f"Reconnect max attempts must be at least 1, got {self.reconnect.max_attempts}")
        if self.reconnect.retry_delay < 0:
            raise ValueError(
                f"Reconnect retry delay must not be negative, got {self.reconnect.retry_delay}")

    def _validate_logging(self) -> None:
        for name, level in (("Log level", self.logging.level),
                            ("Console log level", self.logging.console_level)):
            if level.upper() not in VALID_LOG_LEVELS:
                raise ValueError(f"{name} must be one of {', '.join(VALID_LOG_LEVELS)}, got {level!r}")

    @property
    def server_url(self) -> str:
        path = self.server.path if self.server.path.startswith("/") else f"/{self.server.path}"
        return f"{self.server.scheme}://{self.server.host}:{self.server.port}{path}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'ChatLink'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            server=ServerConfig(**data.get('server', {})),
            client=ClientConfig(**data.get('client', {})),
            heartbeat=HeartbeatConfig(**data.get('heartbeat', {})),
            reconnect=ReconnectConfig(**data.get('reconnect', {})),
            stats=StatsConfig(**data.get('stats', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            config_file_path=data.get('config_file_path'),
        )
