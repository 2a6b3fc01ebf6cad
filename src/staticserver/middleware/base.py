"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Middleware wraps the router so cross-cutting concerns (access logging,
CORS) stay out of the handlers. Chain of Responsibility: each layer gets
the request plus a ``next`` callable and decides what to do around it.

    request ──► Logging ──► CORS ──► Router ──► handler
                   │          │                    │
    response ◄─────┴──────────┴────────────────────┘

The first middleware added is the outermost, so it sees the request first
and the response last. Put access logging first so it times everything.

=============================================================================
WRITING MIDDLEWARE
=============================================================================

    class Timing(Middleware):
        def __call__(self, request, next):
            start = time.perf_counter()
            response = next(request)          # run the rest of the chain
            response.headers["X-Elapsed"] = f"{time.perf_counter() - start:.4f}"
            return response

Returning a response WITHOUT calling ``next`` short-circuits the chain
(the CORS preflight answer does this).

A middleware that replaces a streamed response must close the original
one; otherwise its file handle stays open until garbage collection.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """Base class for middleware."""

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process the request, usually by calling ``next(request)``."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware list that composes into a single handler.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware()).add(CORSMiddleware())
        handler = pipeline.wrap(router.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Compose the middleware around ``handler``.

        Built inside out: the last middleware wraps the handler, the
        first middleware wraps everything.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = _bind(middleware, current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    # A separate function gives each closure its own bindings; a lambda
    # inside the loop would capture the loop variables by reference.
    def wrapped(request: HTTPRequest) -> HTTPResponse:
        return middleware(request, next_handler)
    return wrapped
