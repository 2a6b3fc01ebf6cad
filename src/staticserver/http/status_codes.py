"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of RFC 9110 status codes this server can actually emit.

    ┌──────────┬─────────────────────────────────────────────────────────┐
    │  Range   │  Used for                                               │
    ├──────────┼─────────────────────────────────────────────────────────┤
    │  2xx     │  200 file or JSON body, 204 CORS preflight              │
    │  3xx     │  304 conditional request matched the validator          │
    │  4xx     │  400 bad path, 404 missing file, 405/408/413 protocol   │
    │  5xx     │  500 read failure, 503 overloaded, 505 bad version      │
    └──────────┴─────────────────────────────────────────────────────────┘

IntEnum keeps the codes usable as plain integers (``status == 304``) while
still giving us a readable name and reason phrase for logs and status lines.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes with reason phrases."""

    OK = 200
    NO_CONTENT = 204                    # CORS preflight answer

    NOT_MODIFIED = 304                  # Client cache is still valid

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408               # Client connected but never sent a request
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503           # Thread pool queue is full
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. ``Not Modified``."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a message body.

        RFC 9110 forbids a body (and the framing headers that describe
        one) on 1xx, 204 and 304 responses.
        """
        return not (self < 200 or self in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED))


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
