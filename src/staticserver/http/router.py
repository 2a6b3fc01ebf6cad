"""
=============================================================================
URL ROUTING
=============================================================================

Maps (method, path) to a handler. The static server has very few routes,
but their ORDER matters:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ROUTE TABLE                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET   /api/health    → HealthHandler.health                       │
    │   GET   /api/info      → HealthHandler.info                         │
    │   ANY   /*path         → StaticFileHandler.handle   (fallback)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Routes are tried in registration order and the first match wins, so the
catch-all wildcard must be registered last.

PATTERN SYNTAX
──────────────

    /api/info        static segments, exact match
    /users/:id       ":" captures one segment        → {"id": "42"}
    /*path           "*" captures the rest, slashes included
                                                     → {"path": "css/site.css"}

Patterns compile to regular expressions once, at registration time.

HEAD
────

A HEAD request matches routes registered for GET. The server strips the
body before writing, so handlers never need to special-case HEAD.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, Any, List
import logging
import re
from enum import Enum

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


class RouteType(Enum):
    STATIC = "static"
    PARAM = "param"
    WILDCARD = "wildcard"


@dataclass
class Route:
    """
    A registered route.

    Attributes:
        path: URL pattern, e.g. ``/*path``.
        method: HTTP method, or None to match any method.
        handler: Callable producing the response.
        name: Optional name for logging.
    """

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)

    @property
    def route_type(self) -> RouteType:
        if "*" in self.path:
            return RouteType.WILDCARD
        if ":" in self.path:
            return RouteType.PARAM
        return RouteType.STATIC

    def accepts(self, method: str) -> bool:
        """Whether this route answers ``method`` (HEAD rides on GET)."""
        if self.method is None:
            return True
        method = method.upper()
        return self.method == method or (method == "HEAD" and self.method == "GET")


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Ordered route table with first-match-wins dispatch.

    Example:
        router = Router()

        @router.get("/api/info")
        def info(request):
            return ok({"name": "Intermediate Static Server"})

        router.add_route("/*path", static.handle)      # any method
    """

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Route:
        pattern, param_names = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            meta=meta,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        logger.debug(f"Registered route {route.method or 'ANY'} {path}")
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a route pattern to a regex.

            /api/info      → ^/api/info$
            /files/:name   → ^/files/(?P<name>[^/]+)$
            /*path         → ^/(?P<path>.*)$
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                name = segment[1:]
                param_names.append(name)
                regex_parts.append(f"(?P<{name}>[^/]+)")
            elif segment.startswith("*"):
                name = segment[1:] or "wildcard"
                param_names.append(name)
                regex_parts.append(f"(?P<{name}>.*)")
                break
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")
        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    @staticmethod
    def _normalize(path: str) -> str:
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First route accepting ``method`` whose pattern matches ``path``."""
        path = self._normalize(path)
        for route in self._routes:
            if not route.accepts(method):
                continue
            found = route._pattern.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())
        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods that would match ``path``, for the Allow header."""
        path = self._normalize(path)
        methods = set()
        for route in self._routes:
            if route._pattern.match(path):
                if route.method is None:
                    return ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
                methods.add(route.method)
                if route.method == "GET":
                    methods.add("HEAD")
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch to the matching handler, or answer 405/404."""
        found = self.match(request.method, request.path)
        if found:
            request.path_params = found.params
            return found.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)
        return not_found()

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name, **meta)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name, **meta)

    def head(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "HEAD", name, **meta)

    def routes(self) -> List[Route]:
        return list(self._routes)

    def log_routes(self, level: int = logging.INFO) -> None:
        for route in self._routes:
            logger.log(level, f"  {route.method or 'ANY':8} {route.path}")
