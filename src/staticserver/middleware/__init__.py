"""
=============================================================================
MIDDLEWARE
=============================================================================

    base.py     Middleware ABC and MiddlewarePipeline (composition)
    logging.py  LoggingMiddleware, one access-log line per request
    cors.py     CORSMiddleware, cross-origin headers and preflight

Order used by the server:

    server.use(LoggingMiddleware())     # outermost: times everything
    server.use(CORSMiddleware())        # optional (--cors)

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog
from .cors import CORSMiddleware, CORSConfig

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
    "CORSMiddleware",
    "CORSConfig",
]
