"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the socket transport can be tuned with, in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE SETTINGS COME FROM                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. command line        python -m minihttp --port 3000             │
    │   2. environment         HTTP_PORT=3000 python -m minihttp          │
    │   3. defaults            the field values below                     │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

The in-memory transport ignores all of this: only SocketServerCreator
takes a ServerConfig.

=============================================================================
"""

from dataclasses import dataclass, replace
from typing import Mapping, Optional
import logging
import os


LOG_FORMATS = ("common", "json")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false, yes/no), got {value!r}")


@dataclass
class ServerConfig:
    """
    Configuration for the socket transport.

    NETWORK
        host, port, backlog, buffer_size, timeout
    HTTP
        keep_alive, keep_alive_timeout, max_request_size
    WORKERS
        min_workers, max_workers, queue_size
    LOGGING
        log_level, log_format, access_log
    RESPONSES
        server_name, gzip

    port=0 asks the OS for a free port; the bound port is reported by
    SocketHTTPServer.port once the server is started.
    """

    # Network
    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # HTTP
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    # Worker pool
    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 1000

    # Logging
    log_level: str = "INFO"
    log_format: str = "common"
    access_log: bool = True

    # Responses
    server_name: str = "minihttp/1.0"
    gzip: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build a configuration from environment variables.

            HTTP_HOST        bind address          (127.0.0.1)
            HTTP_PORT        port, 0 = any free    (8080)
            HTTP_WORKERS     max worker threads    (16)
            HTTP_TIMEOUT     socket timeout, s     (30)
            HTTP_LOG_LEVEL   DEBUG/INFO/...        (INFO)
            HTTP_LOG_FORMAT  common/json           (common)
            HTTP_ACCESS_LOG  access log on/off     (on)
            HTTP_GZIP        gzip responses        (off)

        Args:
            env: mapping to read instead of os.environ (handy in tests).
        """
        env = os.environ if env is None else env
        defaults = cls()
        max_workers = int(env.get("HTTP_WORKERS", defaults.max_workers))
        return cls(
            host=env.get("HTTP_HOST", defaults.host),
            port=int(env.get("HTTP_PORT", defaults.port)),
            max_workers=max_workers,
            min_workers=min(defaults.min_workers, max_workers),
            timeout=float(env.get("HTTP_TIMEOUT", defaults.timeout)),
            log_level=env.get("HTTP_LOG_LEVEL", defaults.log_level).upper(),
            log_format=env.get("HTTP_LOG_FORMAT", defaults.log_format).lower(),
            access_log=_env_bool(env, "HTTP_ACCESS_LOG", defaults.access_log),
            gzip=_env_bool(env, "HTTP_GZIP", defaults.gzip),
        )

    def with_overrides(self, **changes) -> "ServerConfig":
        """Copy with some fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def validate(self) -> None:
        """
        Fail fast on impossible settings.

        Raises:
            ValueError: describing the first bad field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")
        if self.max_request_size < 1:
            raise ValueError("max_request_size must be >= 1")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
