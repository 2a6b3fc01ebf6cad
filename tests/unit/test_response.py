"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timezone, timedelta

import pytest

from staticserver.http.headers import Headers, append_vary
from staticserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    http_date_from_timestamp,
    internal_error,
    method_not_allowed,
    not_found,
    ok,
    plain_text,
)
from staticserver.http.status_codes import HTTPStatus
from staticserver.http.streams import IterableStream


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_phrases(self):
        """Test reason phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_MODIFIED.phrase == "Not Modified"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_categories(self):
        """Test status classification."""
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.NOT_MODIFIED.is_redirect
        assert HTTPStatus.BAD_REQUEST.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert not HTTPStatus.OK.is_error

    def test_allows_body(self):
        """Test that 204 and 304 never carry a body."""
        assert HTTPStatus.OK.allows_body
        assert HTTPStatus.NOT_FOUND.allows_body
        assert not HTTPStatus.NO_CONTENT.allows_body
        assert not HTTPStatus.NOT_MODIFIED.allows_body


class TestHeaders:
    """Tests for the case-insensitive header set."""

    def test_case_insensitive_access(self):
        """Test lookups ignore case."""
        headers = Headers({"Content-Type": "text/plain"})
        assert headers["content-type"] == "text/plain"
        assert "CONTENT-TYPE" in headers

    def test_last_spelling_wins(self):
        """Test re-setting keeps one entry with the newest spelling."""
        headers = Headers()
        headers["etag"] = "a"
        headers["ETag"] = "b"
        assert list(headers.items()) == [("ETag", "b")]

    def test_delete(self):
        """Test deletion ignores case."""
        headers = Headers({"Vary": "Accept-Encoding"})
        del headers["vary"]
        assert len(headers) == 0

    def test_equality(self):
        """Test comparison against plain mappings."""
        assert Headers({"A": "1"}) == {"a": "1"}
        assert Headers({"A": "1"}) != {"a": "2"}

    def test_copy_is_independent(self):
        """Test that copies do not share state."""
        headers = Headers({"A": "1"})
        clone = headers.copy()
        clone["B"] = "2"
        assert "B" not in headers

    def test_append_vary(self):
        """Test Vary tokens are added once."""
        headers = Headers()
        append_vary(headers, "Accept-Encoding")
        append_vary(headers, "Origin")
        append_vary(headers, "accept-encoding")
        assert headers["Vary"] == "Accept-Encoding, Origin"


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_default_response(self):
        """Test default response values."""
        response = HTTPResponse()
        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert response.version == "HTTP/1.1"
        assert not response.is_streamed

    def test_int_status_is_coerced(self):
        """Test plain ints become HTTPStatus."""
        response = HTTPResponse(status=404)
        assert response.status is HTTPStatus.NOT_FOUND
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_dict_headers_are_coerced(self):
        """Test plain dicts become Headers."""
        response = HTTPResponse(headers={"Content-Type": "text/plain"})
        assert response.headers["content-type"] == "text/plain"

    def test_to_bytes(self):
        """Test serialization of a fixed body."""
        response = HTTPResponse(status=HTTPStatus.OK, body=b"Hello")
        response.set_content_type("text/plain")

        data = response.to_bytes()
        head, _, body = data.partition(b"\r\n\r\n")

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Type: text/plain" in head
        assert b"Content-Length: 5" in head
        assert b"Date: " in head
        assert b"Server: StaticServer/1.0" in head
        assert body == b"Hello"

    def test_custom_server_name(self):
        """Test the Server header value."""
        data = HTTPResponse().to_bytes(server_name="Custom/2.0")
        assert b"Server: Custom/2.0" in data

    def test_304_has_no_body_or_length(self):
        """Test Not Modified responses are header-only."""
        response = HTTPResponse(status=HTTPStatus.NOT_MODIFIED, body=b"ignored")
        data = response.to_bytes()

        assert data.endswith(b"\r\n\r\n")
        assert b"Content-Length" not in data
        assert response.content_length == 0

    def test_streamed_head(self):
        """Test streamed responses declare no automatic length."""
        response = HTTPResponse(stream=IterableStream([b"abc"]))
        assert response.is_streamed
        assert response.content_length is None
        assert b"Content-Length" not in response.head_bytes()
        response.close()

    def test_streamed_declared_length(self):
        """Test a producer-declared Content-Length is reported."""
        response = HTTPResponse(
            headers={"Content-Length": "3"},
            stream=IterableStream([b"abc"]),
        )
        assert response.content_length == 3
        response.close()

    def test_streamed_to_bytes_refused(self):
        """Test that streams cannot be serialized in one piece."""
        response = HTTPResponse(stream=IterableStream([b"abc"]))
        with pytest.raises(ValueError):
            response.to_bytes()
        response.close()

    def test_close_closes_stream(self):
        """Test close() releases the body stream."""
        stream = IterableStream([b"abc"])
        response = HTTPResponse(stream=stream)
        response.close()
        response.close()
        assert stream.closed

    def test_set_body_encodes_str(self):
        """Test str bodies are encoded as UTF-8."""
        response = HTTPResponse().set_body("héllo")
        assert response.body == "héllo".encode("utf-8")


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_text(self):
        """Test plain text bodies."""
        response = ResponseBuilder().text("Bad Request").status(400).build()
        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == b"Bad Request"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_html(self):
        """Test HTML bodies from bytes."""
        response = ResponseBuilder().html(b"<h1>x</h1>").build()
        assert response.body == b"<h1>x</h1>"
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_json(self):
        """Test JSON serialization."""
        response = ResponseBuilder().json({"status": "OK"}).build()
        assert json.loads(response.body) == {"status": "OK"}
        assert response.headers["Content-Type"] == "application/json; charset=utf-8"

    def test_json_pretty(self):
        """Test indented JSON."""
        response = ResponseBuilder().json({"a": 1}, pretty=True).build()
        assert b"\n" in response.body

    def test_stream_and_headers(self):
        """Test chaining a stream with headers."""
        stream = IterableStream([b"x"])
        response = (ResponseBuilder()
            .content_type("image/png")
            .cache_control("no-cache")
            .headers({"Vary": "Accept-Encoding"})
            .stream(stream)
            .build())

        assert response.stream is stream
        assert response.headers["Cache-Control"] == "no-cache"
        assert response.headers["vary"] == "Accept-Encoding"
        response.close()

    def test_close_connection(self):
        """Test the Connection: close helper."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"


class TestHTTPDates:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test the IMF-fixdate format."""
        dt = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_aware_datetime_converted_to_utc(self):
        """Test non-UTC offsets are normalized."""
        dt = datetime(1994, 11, 6, 10, 49, 37, tzinfo=timezone(timedelta(hours=2)))
        assert format_http_date(dt) == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_from_timestamp_truncates(self):
        """Test fractional seconds are dropped."""
        assert http_date_from_timestamp(784111777.9) == "Sun, 06 Nov 1994 08:49:37 GMT"


class TestConvenienceFunctions:
    """Tests for response helper functions."""

    def test_ok_dict(self):
        """Test ok() with JSON data."""
        response = ok({"key": "value"})
        assert response.status == HTTPStatus.OK
        assert json.loads(response.body) == {"key": "value"}

    def test_ok_bytes(self):
        """Test ok() with raw bytes."""
        response = ok(b"\x00\x01", content_type="application/octet-stream")
        assert response.body == b"\x00\x01"
        assert response.headers["Content-Type"] == "application/octet-stream"

    def test_plain_text(self):
        """Test plain_text() helper."""
        response = plain_text(404, "404 Not Found")
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 Not Found"

    def test_not_found(self):
        """Test not_found() helper."""
        response = not_found()
        assert response.status == HTTPStatus.NOT_FOUND
        assert json.loads(response.body) == {"error": "Not Found"}

    def test_method_not_allowed(self):
        """Test method_not_allowed() helper."""
        response = method_not_allowed(["GET", "HEAD"])
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, HEAD"

    def test_internal_error(self):
        """Test internal_error() helper."""
        response = internal_error()
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert json.loads(response.body) == {"error": "Internal Server Error"}
