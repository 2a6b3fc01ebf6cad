"""
=============================================================================
STATIC SERVER ERRORS
=============================================================================

Every failure the file-serving pipeline can hit maps to exactly one HTTP
status. The exception carries that status, the same way HTTPParseError does
for malformed requests, so callers never have to translate error types by
hand.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ERROR → RESPONSE MAPPING                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   InvalidPath        400  "Bad Request"                             │
    │   NotFound           404  custom 404.html or "404 Not Found"        │
    │   StreamFailure      500  "Server Error" (or connection abort)      │
    │   UnexpectedFailure  500  "Internal Server Error"                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Messages are deliberately generic. They are what the client sees, so they
must never contain filesystem paths.

=============================================================================
"""

from typing import Optional


class StaticServerError(Exception):
    """
    Base class for pipeline errors.

    Attributes:
        status_code: HTTP status the error should produce.
    """

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.default_message)
        if status_code is not None:
            self.status_code = status_code


class InvalidPath(StaticServerError):
    """Request path escapes the root directory or is malformed."""

    status_code = 400
    default_message = "Bad Request"


class NotFound(StaticServerError):
    """No servable file exists for the request."""

    status_code = 404
    default_message = "404 Not Found"


class StreamFailure(StaticServerError):
    """Reading the file failed while producing the response body."""

    status_code = 500
    default_message = "Server Error"


class UnexpectedFailure(StaticServerError):
    status_code = 500
    default_message = "Internal Server Error"
