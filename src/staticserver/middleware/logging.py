"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One line per request on the ``staticserver.access`` logger.

TEXT FORMAT (Apache combined-ish)
─────────────────────────────────

    127.0.0.1 - - [15/Nov/2025:12:45:26 +0000] "GET /css/site.css HTTP/1.1" 200 5120 "-" "curl/8.4.0" 1.42ms

JSON FORMAT (for log shippers)
──────────────────────────────

    {"request_id": "a1b2c3d4", "method": "GET", "path": "/css/site.css",
     "status_code": 200, "content_length": 5120, ...}

BODY SIZE
─────────

File bodies are streamed, so the size is known only if the response
declares Content-Length. Compressed responses log "-" (text) or null
(JSON), because the bytes have not been produced yet when the line is
written.

A short request id is echoed in X-Request-ID so a client report can be
matched to its log line.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    request_id: str
    method: str
    target: str
    version: str
    client_ip: str
    referer: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        size = "-" if self.content_length is None else str(self.content_length)
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.target} {self.version}" {self.status_code} {size} '
            f'"{self.referer}" "{self.user_agent}" {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Logs every request after the handler returns.

    Args:
        log_format: "text" or "json".
        include_request_id: Add X-Request-ID to responses.
        log_level: Level for access lines.
        skip_paths: Paths that are never logged (e.g. health probes).
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            target=request.target,
            version=request.version,
            client_ip=request.client_address[0],
            referer=request.headers.get("referer", "-"),
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=response.content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
