"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables live in one dataclass. Three ways to fill it, later ones
winning:

    1. Defaults in the dataclass           ServerConfig()
    2. Environment variables               ServerConfig.from_env()
    3. Command line flags                  python -m staticserver --port 8000

    ┌───────────────────────┬─────────────┬──────────────────────────────┐
    │ Field                 │ Env var     │ Default                      │
    ├───────────────────────┼─────────────┼──────────────────────────────┤
    │ host                  │ HOST        │ 127.0.0.1                    │
    │ port                  │ PORT        │ 3000                         │
    │ root_dir              │ STATIC_ROOT │ public                       │
    │ environment           │ APP_ENV     │ development                  │
    │ log_level             │ LOG_LEVEL   │ INFO                         │
    │ log_format            │ LOG_FORMAT  │ text                         │
    │ max_workers           │ WORKERS     │ 16                           │
    │ timeout               │ HTTP_TIMEOUT│ 30 seconds                   │
    │ cors                  │ CORS        │ off                          │
    └───────────────────────┴─────────────┴──────────────────────────────┘

The Twelve-Factor App rule applies: config that differs between
deployments comes from the environment, never from code.

validate() fails fast at startup. A typo in PORT should stop the process
with a clear message, not surface as a bind error deep in the socket
layer.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ServerConfig:
    """
    Server configuration.

    Network:
        host, port, backlog

    Connections:
        buffer_size: Bytes per recv().
        timeout: Seconds to wait for the first request on a connection.
        keep_alive: Allow persistent connections.
        keep_alive_timeout: Seconds to wait for a follow-up request.
        max_request_size: Upper bound for request head + body.

    Workers:
        min_workers, max_workers, queue_size

    Static files:
        root_dir: Directory to serve. Relative paths resolve against the
            working directory at startup, not the package location.
        index_file, not_found_page: File names looked up inside it.
        chunk_size: Bytes per read when streaming a file.
        compression_level: zlib level (1-9) for gzip and deflate.
        brotli_quality: brotli quality (0-11) for br.

    Application:
        environment: Reported by /api/health.
        cors: Enable the permissive CORS middleware.

    Logging:
        log_level, log_format ("text" or "json")
    """

    # Network
    host: str = "127.0.0.1"
    port: int = 3000
    backlog: int = 128

    # Connections
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    # Workers
    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # Static files
    root_dir: str = "public"
    index_file: str = "index.html"
    not_found_page: str = "404.html"
    chunk_size: int = 64 * 1024
    compression_level: int = 6
    brotli_quality: int = 4

    # Application
    environment: str = "development"
    cors: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"
    server_name: str = "StaticServer/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a config from environment variables.

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        defaults = cls()
        max_workers = int(os.getenv("WORKERS", str(defaults.max_workers)))
        return cls(
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", str(defaults.port))),
            root_dir=os.getenv("STATIC_ROOT", defaults.root_dir),
            environment=os.getenv("APP_ENV", defaults.environment),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            log_format=os.getenv("LOG_FORMAT", defaults.log_format),
            min_workers=min(defaults.min_workers, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("HTTP_TIMEOUT", str(defaults.timeout))),
            cors=os.getenv("CORS", "").strip().lower() in _TRUTHY,
        )

    def validate(self) -> None:
        """
        Check the configuration.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.chunk_size < 1024:
            raise ValueError("chunk_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if not 1 <= self.compression_level <= 9:
            raise ValueError("compression_level must be between 1 and 9")

        if not 0 <= self.brotli_quality <= 11:
            raise ValueError("brotli_quality must be between 0 and 11")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Static root directory does not exist: {self.root_dir}")
