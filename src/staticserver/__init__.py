"""
=============================================================================
STATICSERVER - Streaming Static File Server on Raw Sockets
=============================================================================

Serves a directory over HTTP/1.1 with the features a front-end build
output needs:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    FEATURES                                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Safe path resolution      /../../etc/passwd → 400                 │
    │   Content types             .svg → image/svg+xml, unknown → octet   │
    │   Conditional caching       weak ETag + Last-Modified → 304         │
    │   Compression               br > gzip > deflate, streamed           │
    │   Cache-Control             no-cache for HTML, 1h for assets        │
    │   Index and 404 pages       dir → index.html, missing → 404.html    │
    │   JSON endpoints            /api/health, /api/info                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __main__.py          CLI (python -m staticserver)
    ├── server.py            HTTPServer, create_app()
    ├── config.py            ServerConfig (defaults, env, validation)
    ├── exceptions.py        InvalidPath, NotFound, StreamFailure, ...
    ├── core/                sockets, connections, worker threads
    ├── http/                parsing, responses, routing, caching,
    │                        compression, content types, streams
    ├── middleware/          access logging, CORS
    └── handlers/            static files, health/info

=============================================================================
QUICK START
=============================================================================

    $ PORT=8000 python -m staticserver --root ./dist

    from staticserver import ServerConfig, create_app
    create_app(ServerConfig(root_dir="dist")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .exceptions import (
    StaticServerError,
    InvalidPath,
    NotFound,
    StreamFailure,
    UnexpectedFailure,
)
from .server import HTTPServer, create_app

__all__ = [
    "__version__",
    "ServerConfig",
    "HTTPServer",
    "create_app",
    "StaticServerError",
    "InvalidPath",
    "NotFound",
    "StreamFailure",
    "UnexpectedFailure",
]
