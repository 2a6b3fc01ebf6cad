"""
=============================================================================
HTTP RESPONSE
=============================================================================

A response is a status, a header set and a body. For this server the body
comes in two shapes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    RESPONSE BODY SHAPES                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   FIXED (body: bytes)                                               │
    │   ──────────────────                                                │
    │   Small, fully known payloads: JSON from /api/*, "Bad Request",     │
    │   the custom 404 page. Content-Length is filled in automatically.   │
    │                                                                      │
    │   STREAMED (stream: ByteStream)                                     │
    │   ─────────────────────────────                                     │
    │   File contents, optionally compressed. Produced chunk by chunk     │
    │   so a 2 GB video never sits in memory. The length is whatever the  │
    │   producer put in the Content-Length header, or unknown.            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

WIRE FORMAT
───────────

    HTTP/1.1 200 OK\r\n                     ← status line
    Content-Type: image/png\r\n             ← headers
    Content-Length: 5120\r\n
    \r\n                                    ← blank line ends the head
    <body bytes>

``head_bytes()`` renders everything up to and including the blank line.
The server writes the body separately so it can stream it.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union
import json

from .headers import Headers
from .status_codes import HTTPStatus
from .streams import ByteStream


DEFAULT_SERVER_NAME = "StaticServer/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written to a connection.

    Attributes:
        status: HTTP status code.
        headers: Case-insensitive header set.
        body: Fixed body bytes (ignored when ``stream`` is set).
        stream: Lazy body producer; consumed once, then closed.
        version: HTTP version for the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    stream: Optional[ByteStream] = field(default=None, repr=False)
    version: str = "HTTP/1.1"

    def __post_init__(self):
        self.status = HTTPStatus(self.status)
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    # =========================================================================
    # INSPECTION
    # =========================================================================

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def is_streamed(self) -> bool:
        return self.stream is not None

    @property
    def content_length(self) -> Optional[int]:
        """
        Number of body bytes, or None when it is not known in advance.

        A streamed body is only sized if the producer declared it.
        """
        declared = self.headers.get("Content-Length")
        if declared is not None:
            return int(declared)
        if self.is_streamed:
            return None
        return len(self.body) if self.status.allows_body else 0

    # =========================================================================
    # MUTATION (chainable)
    # =========================================================================

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def head_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the status line and headers, ending with the blank line.

        Adds, unless already present:
            - Content-Length for fixed bodies (never for 204/304 or streams)
            - Date in RFC 7231 format
            - Server
        """
        headers = self.headers.copy()

        if self.status.allows_body and not self.is_streamed:
            headers.setdefault("Content-Length", str(len(self.body)))
        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize a fixed-body response in one piece.

        Raises:
            ValueError: If the response is streamed.
        """
        if self.is_streamed:
            raise ValueError("Streamed responses must be written incrementally")
        body = self.body if self.status.allows_body else b""
        return self.head_bytes(server_name) + body

    def close(self) -> None:
        """Release the body stream, if any. Safe to call more than once."""
        if self.stream is not None:
            self.stream.close()


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .text("404 Not Found")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers = Headers()
        self._body: bytes = b""
        self._stream: Optional[ByteStream] = None

    def status(self, status: int) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Mapping[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        self.body(html)
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def stream(self, stream: ByteStream) -> "ResponseBuilder":
        """Use a lazy byte producer as the body."""
        self._stream = stream
        return self

    def cache_control(self, value: str) -> "ResponseBuilder":
        return self.header("Cache-Control", value)

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            stream=self._stream,
        )


# =============================================================================
# HTTP DATES
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 IMF-fixdate.

        Sun, 06 Nov 1994 08:49:37 GMT

    Built by hand rather than with strftime because %a/%b are
    locale-dependent and HTTP requires the English names. Naive datetimes
    are taken to be UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def http_date_from_timestamp(timestamp: float) -> str:
    """HTTP date for a POSIX timestamp, truncated to whole seconds."""
    return format_http_date(datetime.fromtimestamp(int(timestamp), tz=timezone.utc))


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    builder = ResponseBuilder()
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)
    return builder.build()


def plain_text(status: int, message: str) -> HTTPResponse:
    """Minimal text/plain response, used for every pipeline error."""
    return ResponseBuilder().status(status).text(message).build()


def not_found(message: str = "Not Found") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def method_not_allowed(allowed_methods: Iterable[str]) -> HTTPResponse:
    allowed: List[str] = list(allowed_methods)
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed))
        .json({"error": "Method Not Allowed", "allowed": allowed})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).json({"error": message}).build()
