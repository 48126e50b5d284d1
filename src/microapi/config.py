"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables of the transport and the request builder in one dataclass.

    ┌─────────────────┬──────────────────────────────────────────────────┐
    │ NETWORK         │ host, port, backlog, buffer_size, timeout        │
    │ HTTP            │ keep_alive, keep_alive_timeout, max_request_size │
    │ THREADING       │ min_workers, max_workers                         │
    │ LOGGING         │ log_level                                        │
    │ IDENTITY        │ server_name                                      │
    │ REQUESTS        │ unknown_method_policy                            │
    └─────────────────┴──────────────────────────────────────────────────┘

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    MICROAPI_HOST (or HOST)      bind address
    MICROAPI_PORT (or PORT)      listen port
    MICROAPI_WORKERS             max worker threads
    MICROAPI_TIMEOUT             socket timeout in seconds
    MICROAPI_LOG_LEVEL           DEBUG / INFO / WARNING / ERROR
    MICROAPI_UNKNOWN_METHOD      fallback_to_get / reject

    MICROAPI_PORT=3000 MICROAPI_LOG_LEVEL=DEBUG python -m microapi

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .http.request_builder import UnknownMethodPolicy


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the server.

    Development:
        ServerConfig(port=8080, log_level="DEBUG")

    Production:
        ServerConfig(host="0.0.0.0", port=80, max_workers=32,
                     unknown_method_policy=UnknownMethodPolicy.REJECT)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "localhost"
    port: int = 8000

    backlog: int = 256
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes per socket read, and the size of body chunks fed to the builder."""

    timeout: Optional[float] = 30.0
    """Socket timeout for reading a request in seconds. None blocks forever."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest accepted head + body; bigger requests get 413."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "microapi/1.0"

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST BUILDING
    # ─────────────────────────────────────────────────────────────────────

    unknown_method_policy: UnknownMethodPolicy = UnknownMethodPolicy.FALLBACK_TO_GET
    """What to do with methods outside GET/POST/PUT/DELETE/OPTIONS."""

    def __post_init__(self):
        # Accept the plain string form ("reject") as well as the enum
        self.unknown_method_policy = UnknownMethodPolicy(self.unknown_method_policy)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        Unset variables keep the dataclass defaults.

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Raises:
            ValueError: If a numeric variable does not parse
        """
        env = os.environ if environ is None else environ
        config = cls()

        host = env.get("MICROAPI_HOST", env.get("HOST"))
        if host:
            config.host = host

        port = env.get("MICROAPI_PORT", env.get("PORT"))
        if port:
            config.port = int(port)

        workers = env.get("MICROAPI_WORKERS")
        if workers:
            config.max_workers = int(workers)
            config.min_workers = min(config.min_workers, config.max_workers)

        timeout = env.get("MICROAPI_TIMEOUT")
        if timeout:
            config.timeout = float(timeout)

        log_level = env.get("MICROAPI_LOG_LEVEL")
        if log_level:
            config.log_level = log_level.upper()

        policy = env.get("MICROAPI_UNKNOWN_METHOD")
        if policy:
            config.unknown_method_policy = UnknownMethodPolicy(policy.lower())

        return config

    def validate(self) -> None:
        """
        Validate configuration values at startup.

        Raises:
            ValueError: On the first invalid setting
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
