"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP looks like, and nothing that knows about
sockets or threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py      bytes → HTTPRequest                                 │
    │ response.py     HTTPResponse → bytes (fixed or streamed body)       │
    │ headers.py      case-insensitive, ordered header set                │
    │ router.py       (method, path) → handler                            │
    │ status_codes.py HTTPStatus enum with reason phrases                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │ mime_types.py   extension → Content-Type                            │
    │ caching.py      ETag / Last-Modified validators, 304 decision       │
    │ compression.py  Accept-Encoding → br / gzip / deflate / none        │
    │ streams.py      single-pass chunk producers (file, compressed)      │
    └─────────────────────────────────────────────────────────────────────┘

The lower block is the static-file toolkit: pure functions and small
immutable objects that the static handler composes per request.

=============================================================================
"""

from .status_codes import HTTPStatus
from .headers import Headers, append_vary
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    http_date_from_timestamp,
    ok,
    plain_text,
    not_found,
    method_not_allowed,
    internal_error,
)
from .router import Router, Route, RouteMatch
from .mime_types import ContentTypeTable, DEFAULT_TABLE, get_content_type
from .caching import FileMetadata, CacheValidator, build_validator, compute_etag, is_fresh
from .compression import CompressionChoice, select_compression, compress_stream
from .streams import ByteStream, FileStream, IterableStream, CompressedStream


__all__ = [
    # Status codes
    "HTTPStatus",

    # Headers
    "Headers",
    "append_vary",

    # Request
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "http_date_from_timestamp",
    "ok",
    "plain_text",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    # Static file toolkit
    "ContentTypeTable",
    "DEFAULT_TABLE",
    "get_content_type",
    "FileMetadata",
    "CacheValidator",
    "build_validator",
    "compute_etag",
    "is_fresh",
    "CompressionChoice",
    "select_compression",
    "compress_stream",
    "ByteStream",
    "FileStream",
    "IterableStream",
    "CompressedStream",
]
