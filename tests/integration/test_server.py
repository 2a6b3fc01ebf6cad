"""
End-to-end tests against a running server over real sockets.
"""

import gzip
import http.client
import json
import socket

import brotli
import pytest


def connect(live_server) -> http.client.HTTPConnection:
    return http.client.HTTPConnection("127.0.0.1", live_server.port, timeout=5)


def get(live_server, path, headers=None, method="GET"):
    conn = connect(live_server)
    try:
        conn.request(method, path, headers=headers or {})
        response = conn.getresponse()
        body = response.read()
        return response, body
    finally:
        conn.close()


def raw_exchange(live_server, data: bytes) -> bytes:
    """Send raw bytes, read until the server closes."""
    with socket.create_connection(("127.0.0.1", live_server.port), timeout=5) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestStaticFiles:
    """Static file serving end to end."""

    def test_index(self, live_server, site):
        """Test "/" serves index.html with an exact length."""
        response, body = get(live_server, "/")

        assert response.status == 200
        assert body == (site / "index.html").read_bytes()
        assert response.getheader("Content-Type") == "text/html; charset=utf-8"
        assert response.getheader("Cache-Control") == "no-cache"
        assert response.getheader("Content-Length") == str(len(body))
        assert response.getheader("Server") == "StaticServer/1.0"
        assert response.getheader("X-Request-ID")

    def test_svg(self, live_server, site):
        """Test an asset with its content type and cache policy."""
        response, body = get(live_server, "/img/logo.svg")

        assert response.status == 200
        assert response.getheader("Content-Type") == "image/svg+xml"
        assert response.getheader("Cache-Control") == "public, max-age=3600, immutable"
        assert body == (site / "img" / "logo.svg").read_bytes()

    def test_gzip_is_chunked(self, live_server, site):
        """Test compressed bodies use chunked framing."""
        response, body = get(live_server, "/app.js", {"Accept-Encoding": "gzip"})

        assert response.getheader("Content-Encoding") == "gzip"
        assert response.getheader("Transfer-Encoding") == "chunked"
        assert response.getheader("Content-Length") is None
        assert gzip.decompress(body) == (site / "app.js").read_bytes()

    def test_brotli(self, live_server, site):
        """Test br is preferred."""
        response, body = get(live_server, "/app.js", {"Accept-Encoding": "gzip, deflate, br"})

        assert response.getheader("Content-Encoding") == "br"
        assert brotli.decompress(body) == (site / "app.js").read_bytes()

    def test_conditional_request(self, live_server):
        """Test the ETag round trip yields 304 with no body."""
        first, _ = get(live_server, "/img/logo.svg")
        etag = first.getheader("ETag")

        second, body = get(live_server, "/img/logo.svg", {"If-None-Match": etag})

        assert second.status == 304
        assert body == b""

    def test_not_found_page(self, live_server, site):
        """Test the custom 404 body."""
        response, body = get(live_server, "/missing.html")

        assert response.status == 404
        assert body == (site / "404.html").read_bytes()
        assert response.getheader("ETag") is None

    def test_traversal(self, live_server):
        """Test a raw traversal target is refused with 400."""
        raw = raw_exchange(
            live_server,
            b"GET /../../etc/passwd HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )
        head, _, body = raw.partition(b"\r\n\r\n")

        assert head.startswith(b"HTTP/1.1 400 Bad Request")
        assert body == b"Bad Request"

    def test_encoded_traversal(self, live_server):
        """Test %2f-encoded traversal is refused with 400."""
        raw = raw_exchange(
            live_server,
            b"GET /..%2f..%2fetc%2fpasswd HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )
        assert raw.startswith(b"HTTP/1.1 400 ")

    def test_head(self, live_server, site):
        """Test HEAD sends headers only."""
        response, body = get(live_server, "/img/image.png", method="HEAD")

        assert response.status == 200
        assert body == b""
        size = (site / "img" / "image.png").stat().st_size
        assert response.getheader("Content-Length") == str(size)

    def test_http10_compressed_ends_on_close(self, live_server, site):
        """Test HTTP/1.0 clients get an unframed body and a close."""
        raw = raw_exchange(
            live_server,
            b"GET /app.js HTTP/1.0\r\nAccept-Encoding: gzip\r\n\r\n",
        )
        head, _, body = raw.partition(b"\r\n\r\n")

        assert b"Connection: close" in head
        assert b"Transfer-Encoding" not in head
        assert gzip.decompress(body) == (site / "app.js").read_bytes()


class TestKeepAlive:
    """Persistent connections."""

    def test_sequential_requests(self, live_server, site):
        """Test several responses, streamed and not, on one connection."""
        conn = connect(live_server)
        try:
            for path, headers in [
                ("/", {}),
                ("/app.js", {"Accept-Encoding": "gzip"}),
                ("/api/health", {}),
                ("/missing", {}),
            ]:
                conn.request("GET", path, headers=headers)
                response = conn.getresponse()
                response.read()
                assert response.status in (200, 404)
        finally:
            conn.close()


class TestAPI:
    """The JSON endpoints."""

    def test_health(self, live_server):
        """Test /api/health."""
        response, body = get(live_server, "/api/health")
        payload = json.loads(body)

        assert response.status == 200
        assert payload["status"] == "OK"
        assert payload["environment"] == "test"
        assert payload["uptime"] >= 0
        assert response.getheader("Cache-Control") == "no-store"

    def test_info(self, live_server):
        """Test /api/info."""
        response, body = get(live_server, "/api/info")
        assert json.loads(body)["name"] == "Intermediate Static Server"

    def test_api_path_under_static_root_not_shadowed(self, live_server):
        """Test that unknown /api paths fall through to static files."""
        response, _ = get(live_server, "/api/unknown")
        assert response.status == 404


class TestProtocolErrors:
    """Errors raised before a handler runs."""

    def test_bad_request_line(self, live_server):
        """Test garbage is answered with 400 and a close."""
        raw = raw_exchange(live_server, b"NOT HTTP\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 400 ")
        assert b"Connection: close" in raw

    def test_unsupported_version(self, live_server):
        """Test HTTP/2.0 on the request line."""
        raw = raw_exchange(live_server, b"GET / HTTP/2.0\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 505 ")

    @pytest.mark.parametrize("method", ["POST", "DELETE"])
    def test_other_methods_reach_static(self, live_server, method):
        """Test the static route is method-agnostic."""
        response, _ = get(live_server, "/", method=method)
        assert response.status == 200
