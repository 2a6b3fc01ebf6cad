"""
=============================================================================
HEALTH AND INFO ENDPOINTS
=============================================================================

Two tiny JSON endpoints next to the static files:

    GET /api/health
    {
        "status": "OK",
        "uptime": 532.18,                        # seconds since start
        "timestamp": "2025-11-15T12:45:26.120Z", # current UTC time
        "environment": "development"
    }

    GET /api/info
    {
        "name": "Intermediate Static Server",
        "version": "1.0.0",
        "features": ["Static file serving", ...]
    }

Load balancers and container orchestrators poll /api/health to decide
whether to route traffic here. Its answer must never be cached by an
intermediary, otherwise a dead server keeps looking alive:

    Cache-Control: no-store

=============================================================================
"""

from datetime import datetime, timezone
import time
from typing import Any, Callable, Dict, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


SERVER_INFO: Dict[str, Any] = {
    "name": "Intermediate Static Server",
    "version": "1.0.0",
    "features": [
        "Static file serving",
        "Gzip/Brotli compression",
        "ETag caching",
        "Content type detection",
        "404 error handling",
    ],
}


def iso_timestamp(dt: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


class HealthHandler:
    """
    Serves /api/health and /api/info.

    Args:
        environment: Deployment environment name reported by /api/health.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        environment: str = "development",
        clock: Callable[[], float] = time.monotonic,
        info: Optional[Dict[str, Any]] = None,
    ):
        self.environment = environment
        self._clock = clock
        self._started = clock()
        self._info = dict(info if info is not None else SERVER_INFO)

    @property
    def uptime(self) -> float:
        """Seconds since the handler was created."""
        return self._clock() - self._started

    def health(self, request: HTTPRequest) -> HTTPResponse:
        payload = {
            "status": "OK",
            "uptime": round(self.uptime, 3),
            "timestamp": iso_timestamp(datetime.now(timezone.utc)),
            "environment": self.environment,
        }
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json(payload)
            .cache_control("no-store")
            .build())

    def info(self, request: HTTPRequest) -> HTTPResponse:
        return ResponseBuilder().json(self._info).build()
