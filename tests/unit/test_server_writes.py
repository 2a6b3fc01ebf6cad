"""
Unit tests for writing responses onto a connection.
"""

import json
import socket
import zlib

import pytest

from staticserver import ServerConfig, StreamFailure
from staticserver.core import Connection, ConnectionState
from staticserver.http import HTTPRequest, HTTPResponse, IterableStream, ResponseBuilder
from staticserver.http.streams import ByteStream
from staticserver.server import HTTPServer


class FailingStream(ByteStream):
    """Yields the given chunks, then raises ``error``."""

    def __init__(self, chunks, error=StreamFailure):
        super().__init__()
        self._chunks = chunks
        self._error = error

    def _produce(self):
        yield from self._chunks
        raise self._error()


@pytest.fixture
def server(site):
    return HTTPServer(ServerConfig(root_dir=str(site), log_level="WARNING"))


@pytest.fixture
def wire():
    server_side, client_side = socket.socketpair()
    conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)
    client_side.settimeout(2.0)
    yield conn, client_side
    conn.abort()
    client_side.close()


def read_all(client_side) -> bytes:
    chunks = []
    while True:
        chunk = client_side.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def request(method="GET", version="HTTP/1.1", **headers):
    return HTTPRequest(method=method, path="/", version=version, headers=headers)


class TestWriteResponse:
    """Tests for HTTPServer._write_response."""

    def test_fixed_body(self, server, wire):
        """Test a fixed body with keep-alive headers."""
        conn, client = wire
        response = ResponseBuilder().text("hello").build()

        assert server._write_response(conn, request(), response) is True
        conn.close()

        data = read_all(client)
        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Connection: keep-alive" in data
        assert b"Content-Length: 5" in data
        assert data.endswith(b"\r\n\r\nhello")

    def test_declared_length_stream(self, server, wire):
        """Test a stream with Content-Length is written raw."""
        conn, client = wire
        response = (ResponseBuilder()
            .header("Content-Length", "6")
            .stream(IterableStream([b"abc", b"def"]))
            .build())

        assert server._write_response(conn, request(), response) is True
        conn.close()

        data = read_all(client)
        assert b"Transfer-Encoding" not in data
        assert data.endswith(b"\r\n\r\nabcdef")
        assert response.stream.closed

    def test_unknown_length_is_chunked(self, server, wire):
        """Test HTTP/1.1 bodies of unknown length use chunked framing."""
        conn, client = wire
        response = ResponseBuilder().stream(IterableStream([b"abc", b"0123456789"])).build()

        assert server._write_response(conn, request(), response) is True
        conn.close()

        head, _, body = read_all(client).partition(b"\r\n\r\n")
        assert b"Transfer-Encoding: chunked" in head
        assert body == b"3\r\nabc\r\nA\r\n0123456789\r\n0\r\n\r\n"

    def test_http10_unknown_length_closes(self, server, wire):
        """Test HTTP/1.0 bodies of unknown length end with the connection."""
        conn, client = wire
        response = ResponseBuilder().stream(IterableStream([b"abc"])).build()

        keep_alive = server._write_response(
            conn, request(version="HTTP/1.0", connection="keep-alive"), response
        )
        conn.close()

        assert keep_alive is False
        head, _, body = read_all(client).partition(b"\r\n\r\n")
        assert b"Connection: close" in head
        assert b"Transfer-Encoding" not in head
        assert body == b"abc"

    def test_head_sends_no_body(self, server, wire):
        """Test HEAD writes headers only and releases the stream."""
        conn, client = wire
        stream = IterableStream([b"abc"])
        response = ResponseBuilder().header("Content-Length", "3").stream(stream).build()

        assert server._write_response(conn, request(method="HEAD"), response) is True
        conn.close()

        data = read_all(client)
        assert data.endswith(b"\r\n\r\n")
        assert not data.endswith(b"abc")
        assert stream.closed

    def test_failure_before_first_chunk_is_500(self, server, wire):
        """Test an immediate read failure still yields a clean 500."""
        conn, client = wire
        response = ResponseBuilder().stream(FailingStream([])).build()

        server._write_response(conn, request(), response)
        conn.close()

        data = read_all(client)
        assert data.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert data.endswith(b"Server Error")

    def test_failure_mid_stream_aborts(self, server, wire):
        """Test a later failure cuts the connection without a terminator."""
        conn, client = wire
        response = ResponseBuilder().stream(FailingStream([b"abc", b"def"])).build()

        assert server._write_response(conn, request(), response) is False
        assert conn.state is ConnectionState.CLOSED

        data = read_all(client)
        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"3\r\nabc\r\n" in data
        assert not data.endswith(b"0\r\n\r\n")

    def test_length_mismatch_aborts(self, server, wire):
        """Test fewer bytes than declared aborts the connection."""
        conn, client = wire
        response = (ResponseBuilder()
            .header("Content-Length", "10")
            .stream(IterableStream([b"abc"]))
            .build())

        assert server._write_response(conn, request(), response) is False
        assert conn.state is ConnectionState.CLOSED

    def test_not_modified(self, server, wire):
        """Test 304 is written without body or length."""
        conn, client = wire
        server._write_response(conn, request(), HTTPResponse(status=304))
        conn.close()

        data = read_all(client)
        assert data.startswith(b"HTTP/1.1 304 Not Modified\r\n")
        assert b"Content-Length" not in data
        assert data.endswith(b"\r\n\r\n")

    def test_compressor_error_before_first_chunk_is_500(self, server, wire):
        """Test a codec error on the first chunk yields the plain 500."""
        conn, client = wire
        response = ResponseBuilder().stream(FailingStream([], error=zlib.error)).build()

        server._write_response(conn, request(), response)
        conn.close()

        data = read_all(client)
        assert data.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert data.endswith(b"Server Error")

    def test_compressor_error_mid_stream_aborts(self, server, wire):
        """Test a codec error after the head aborts the connection."""
        conn, client = wire
        response = ResponseBuilder().stream(FailingStream([b"abc"], error=zlib.error)).build()

        assert server._write_response(conn, request(), response) is False
        assert conn.state is ConnectionState.CLOSED
        assert not read_all(client).endswith(b"0\r\n\r\n")


class TestProcessConnection:
    """Tests for HTTPServer._process_connection."""

    def test_handler_exception_is_json_500(self, server, wire):
        """Test a raising handler is answered with a JSON 500."""
        conn, client = wire

        def explode(request):
            raise RuntimeError("boom")

        server._handler = explode
        server._running = True
        client.sendall(b"GET / HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n")

        server._process_connection(conn)

        head, _, body = read_all(client).partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert json.loads(body) == {"error": "Internal Server Error"}
