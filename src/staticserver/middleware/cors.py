"""
=============================================================================
CORS MIDDLEWARE
=============================================================================

Browsers block JavaScript on site A from reading responses from site B
unless B opts in with Access-Control-* headers. Static assets are often
pulled cross-origin (fonts, module scripts, JSON fixtures), so the server
can opt in for everyone.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    SIMPLE vs PREFLIGHTED                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Simple (GET a font):                                               │
    │     → GET /fonts/inter.woff2    Origin: https://app.example         │
    │     ← 200  Access-Control-Allow-Origin: *                           │
    │                                                                      │
    │   Preflighted (fetch with custom header):                           │
    │     → OPTIONS /data.json        Access-Control-Request-Method: GET  │
    │     ← 204  Access-Control-Allow-Methods: GET,HEAD,...               │
    │     → GET /data.json                                                 │
    │     ← 200  Access-Control-Allow-Origin: *                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

With an origin allow-list instead of "*", the matching origin is echoed
and ``Vary: Origin`` is added so shared caches keep one copy per origin.

=============================================================================
"""

from typing import Optional, List
from dataclasses import dataclass, field

from .base import Middleware, NextHandler
from ..http.headers import append_vary
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


@dataclass
class CORSConfig:
    """
    CORS policy.

    An empty ``allow_headers`` list means "echo whatever the preflight
    asked for".
    """

    allow_origins: List[str] = field(default_factory=lambda: ["*"])
    allow_methods: List[str] = field(
        default_factory=lambda: ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]
    )
    allow_headers: List[str] = field(default_factory=list)
    expose_headers: List[str] = field(default_factory=list)
    allow_credentials: bool = False
    max_age: Optional[int] = None


class CORSMiddleware(Middleware):
    """Adds CORS headers and answers preflight requests."""

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        origin = request.headers.get("origin", "")

        if self._is_preflight(request):
            return self._handle_preflight(request, origin)

        response = next(request)
        self._add_cors_headers(response, origin)
        return response

    @staticmethod
    def _is_preflight(request: HTTPRequest) -> bool:
        return (
            request.method == "OPTIONS"
            and "access-control-request-method" in request.headers
        )

    def _handle_preflight(self, request: HTTPRequest, origin: str) -> HTTPResponse:
        response = (ResponseBuilder()
            .status(HTTPStatus.NO_CONTENT)
            .header("Access-Control-Allow-Methods", ",".join(self.config.allow_methods))
            .build())

        if self.config.allow_headers:
            response.headers["Access-Control-Allow-Headers"] = ",".join(self.config.allow_headers)
        else:
            requested = request.headers.get("access-control-request-headers", "")
            if requested:
                response.headers["Access-Control-Allow-Headers"] = requested
                append_vary(response.headers, "Access-Control-Request-Headers")

        if self.config.max_age is not None:
            response.headers["Access-Control-Max-Age"] = str(self.config.max_age)

        self._add_cors_headers(response, origin)
        return response

    def _allowed_origin(self, origin: str) -> Optional[str]:
        if "*" in self.config.allow_origins:
            if self.config.allow_credentials and origin:
                return origin
            return "*"
        if origin in self.config.allow_origins:
            return origin
        return None

    def _add_cors_headers(self, response: HTTPResponse, origin: str) -> None:
        allowed = self._allowed_origin(origin)
        if allowed is None:
            return

        response.headers["Access-Control-Allow-Origin"] = allowed
        if allowed != "*":
            append_vary(response.headers, "Origin")

        if self.config.allow_credentials:
            response.headers["Access-Control-Allow-Credentials"] = "true"

        if self.config.expose_headers:
            response.headers["Access-Control-Expose-Headers"] = ", ".join(
                self.config.expose_headers
            )
