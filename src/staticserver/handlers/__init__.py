"""
=============================================================================
REQUEST HANDLERS
=============================================================================

Handlers take an HTTPRequest and return an HTTPResponse. They know nothing
about sockets, threads or middleware.

1. StaticFileHandler / serve_static()
   - Path confinement to the served root (PathResolver)
   - Directory → index.html, custom 404.html
   - ETag / Last-Modified and 304 responses
   - br / gzip / deflate streaming compression

2. HealthHandler
   - /api/health  status, uptime, timestamp, environment
   - /api/info    static server description

=============================================================================
USAGE
=============================================================================

    from staticserver.handlers import HealthHandler, serve_static

    health = HealthHandler(environment="production")
    router.get("/api/health")(health.health)
    router.get("/api/info")(health.info)

    static = serve_static("public")
    router.add_route("/*path", static.handle)      # registered last

=============================================================================
"""

from .paths import PathResolver
from .static import StaticFileHandler, serve_static
from .health import HealthHandler, SERVER_INFO

__all__ = [
    "PathResolver",
    "StaticFileHandler",
    "serve_static",
    "HealthHandler",
    "SERVER_INFO",
]
