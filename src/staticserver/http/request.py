"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest.

    GET /assets/app.js?v=3 HTTP/1.1\r\n
    Host: localhost:3000\r\n
    Accept-Encoding: gzip, br\r\n
    If-None-Match: W/"9a0364b9e99bb480dd25e1f0284c8555"\r\n
    \r\n

becomes

    HTTPRequest(
        method="GET",
        target="/assets/app.js?v=3",       # exactly as sent
        path="/assets/app.js",             # percent-decoded, no query
        query_params={"v": ["3"]},
        headers={"host": ..., "accept-encoding": ..., "if-none-match": ...},
    )

=============================================================================
PATH HANDLING
=============================================================================

The parser decodes percent-escapes (%20 → space, %2f → /) but does NOT
judge whether the path is safe. "/../../etc/passwd" parses fine here; it is
the static file resolver's job to refuse it, because only the resolver
knows which directory the path is confined to.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why lowercase header names?"
A: "RFC 9110 says field names are case-insensitive. Normalizing once at
   parse time means every later lookup is a plain dict hit."

Q: "When is a connection kept alive?"
A: "HTTP/1.1: unless the client sends Connection: close.
   HTTP/1.0: only if the client sends Connection: keep-alive."

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlsplit, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when the request bytes are not a valid HTTP request.

    Attributes:
        status_code: HTTP status to answer with (400, 405, 413, 505).
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method: Upper-case method, e.g. GET.
        path: Percent-decoded path without query string.
        target: Request target exactly as it appeared on the request line.
        version: HTTP/1.0 or HTTP/1.1.
        headers: Lowercased header name → value.
        query_params: Query parameter → list of values.
        body: Raw body bytes.
        path_params: Values captured by the router (:name, *name).
        client_address: (ip, port) of the peer.
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        if not self.target:
            self.target = self.path

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def query_string(self) -> str:
        _, _, query = self.target.partition("?")
        return query

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes.

    Lenient about header formatting (skips malformed header lines, joins
    obsolete folded lines) but strict about the request line, because a
    bad request line means we cannot know what was asked for.
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Raises:
            HTTPParseError: On any syntax or size violation.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes should be ASCII; latin-1 never fails and keeps
        # obs-text bytes intact.
        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, version = self._parse_request_line(lines[0])
        path, query_params = self._split_target(target)
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line[:100]}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        return method, target, version

    def _split_target(self, target: str) -> tuple[str, Dict[str, list[str]]]:
        """Decode the path and parse the query of a request target."""
        if target.startswith("/"):
            # Origin-form. Split by hand: urlsplit would read "//x/y" as a
            # network location.
            raw_path, _, query = target.partition("#")[0].partition("?")
        else:
            # Absolute-form (GET http://host/path) keeps only the path
            parsed = urlsplit(target)
            raw_path, query = parsed.path, parsed.query

        path = unquote(raw_path) or "/"
        query_params = parse_qs(query, keep_blank_values=True)
        return path, query_params

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            # Obsolete line folding (RFC 7230 §3.2.4)
            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            # Repeated headers combine into a comma-separated list
            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse request bytes with a one-off parser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
