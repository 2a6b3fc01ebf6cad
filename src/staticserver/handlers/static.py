"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from a root directory: resolves the path safely, negotiates
caching and compression, and hands back a streamed response.

=============================================================================
REQUEST PIPELINE
=============================================================================

Every request walks the same state machine. Each arrow out of a box is a
terminal response; nothing loops.

    ┌──────────┐ InvalidPath
    │ RESOLVE  │───────────────────────────────► 400 "Bad Request"
    └────┬─────┘
         ▼
    ┌──────────┐ missing / unreadable
    │  STAT    │───────────────────────────────► 404 (404.html or text)
    └────┬─────┘
         │ directory?
         ├──────► STAT <dir>/index.html ─ fail / directory again ─► 404
         ▼
    ┌──────────┐ If-None-Match / If-Modified-Since hit
    │  CACHE   │───────────────────────────────► 304, empty body
    └────┬─────┘
         ▼
    ┌──────────┐ open() fails
    │  BUILD   │───────────────────────────────► 500 "Server Error"
    └────┬─────┘
         ▼
    ┌──────────┐
    │  STREAM  │──► 200, Content-Length          (identity)
    └──────────┘──► 200, Content-Encoding: br|gzip|deflate

=============================================================================
RESPONSE HEADERS ON 200
=============================================================================

    Content-Type      from the ContentTypeTable
    Last-Modified     file mtime, RFC 7231 date
    ETag              W/"<sha1>"
    Cache-Control     no-cache                        for text/html
                      public, max-age=3600, immutable for everything else
    Vary              Accept-Encoding
    Content-Length    exact file size   (only when not compressing)
    Content-Encoding  br / gzip / deflate (only when compressing)

HTML is revalidated on every load so a deploy shows up immediately;
assets are cached for an hour because they are expected to be
fingerprinted or rarely changed.

Error responses (400/404/500) never carry ETag or Last-Modified.

=============================================================================
"""

import logging
import os
from typing import Mapping, Optional

from ..exceptions import InvalidPath, NotFound, StreamFailure, UnexpectedFailure
from ..http.caching import FileMetadata, CacheValidator, build_validator, is_fresh
from ..http.compression import (
    DEFAULT_BROTLI_QUALITY,
    DEFAULT_COMPRESSION_LEVEL,
    compress_stream,
    select_compression,
)
from ..http.mime_types import ContentTypeTable, DEFAULT_TABLE, is_html
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, plain_text
from ..http.status_codes import HTTPStatus
from ..http.streams import DEFAULT_CHUNK_SIZE, FileStream
from .paths import PathResolver


logger = logging.getLogger(__name__)


HTML_CACHE_CONTROL = "no-cache"
ASSET_CACHE_CONTROL = "public, max-age=3600, immutable"


class StaticFileHandler:
    """
    Request-to-file response pipeline.

    Holds only immutable configuration (root directory, content type
    table, tuning values), so one instance serves all worker threads
    concurrently.

    Args:
        root_dir: Directory to serve.
        content_types: Extension table. Defaults to the built-in table.
        index_file: Served for directory requests.
        not_found_page: File under the root used as the 404 body.
        chunk_size: Bytes per read when streaming.
        compression_level: zlib level for gzip/deflate.
        brotli_quality: brotli quality for br.

    Example:
        static = StaticFileHandler("public")
        router.add_route("/*path", static.handle)
    """

    def __init__(
        self,
        root_dir: str,
        content_types: Optional[ContentTypeTable] = None,
        index_file: str = "index.html",
        not_found_page: str = "404.html",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        brotli_quality: int = DEFAULT_BROTLI_QUALITY,
    ):
        self._resolver = PathResolver(root_dir, index_file=index_file)
        self._content_types = content_types or DEFAULT_TABLE
        self._index_file = index_file
        self._not_found_page = not_found_page
        self._chunk_size = chunk_size
        self._compression_level = compression_level
        self._brotli_quality = brotli_quality

    @property
    def root(self) -> str:
        return self._resolver.root

    @property
    def content_types(self) -> ContentTypeTable:
        return self._content_types

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Router-facing handler. Any failure becomes a plain 500."""
        try:
            # request.path is already split from its query and decoded
            return self.respond(request.path, request.headers, strip_query=False)
        except Exception as e:
            logger.exception(f"Unexpected failure serving {request.method} request: {e}")
            failure = UnexpectedFailure()
            return plain_text(failure.status_code, str(failure))

    def respond(
        self,
        request_path: str,
        request_headers: Mapping[str, str],
        strip_query: bool = True,
    ) -> HTTPResponse:
        """
        Run the pipeline for one request.

        Args:
            request_path: URL path (query and fragment are ignored).
            request_headers: Request headers, any name casing.
            strip_query: See PathResolver.resolve.

        Returns:
            A response. 200 responses carry an unconsumed body stream
            that the caller must iterate or close.
        """
        # ─────────────────────────────────────────────────────────────────
        # RESOLVE
        # ─────────────────────────────────────────────────────────────────
        try:
            file_path = self._resolver.resolve(request_path, strip_query=strip_query)
        except InvalidPath as e:
            return plain_text(e.status_code, str(e))

        # ─────────────────────────────────────────────────────────────────
        # STAT (with one directory → index.html step)
        # ─────────────────────────────────────────────────────────────────
        try:
            file_path, meta = self._stat(file_path)
        except NotFound:
            return self._not_found()

        # ─────────────────────────────────────────────────────────────────
        # CACHE CHECK
        # ─────────────────────────────────────────────────────────────────
        validator = build_validator(meta)
        if is_fresh(validator, request_headers):
            return HTTPResponse(status=HTTPStatus.NOT_MODIFIED)

        # ─────────────────────────────────────────────────────────────────
        # BUILD + STREAM
        # ─────────────────────────────────────────────────────────────────
        return self._file_response(file_path, meta, validator, request_headers)

    # =========================================================================
    # STAGES
    # =========================================================================

    def _stat(self, path: str) -> tuple[str, FileMetadata]:
        """
        Stat ``path``; for a directory, stat its index file instead.

        Raises:
            NotFound: Missing, unreadable, or a directory whose index is
                itself missing or a directory.
        """
        try:
            meta = FileMetadata.from_stat(os.stat(path))
            if meta.is_directory:
                path = os.path.join(path, self._index_file)
                meta = FileMetadata.from_stat(os.stat(path))
        except (OSError, ValueError) as e:
            raise NotFound() from e

        if meta.is_directory:
            raise NotFound()
        return path, meta

    def _not_found(self) -> HTTPResponse:
        """404 with the custom page if the root has one."""
        page = os.path.join(self.root, self._not_found_page)
        try:
            with open(page, "rb") as f:
                content = f.read()
        except OSError:
            return plain_text(NotFound.status_code, NotFound.default_message)

        return (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .html(content)
            .build())

    def _file_response(
        self,
        path: str,
        meta: FileMetadata,
        validator: CacheValidator,
        request_headers: Mapping[str, str],
    ) -> HTTPResponse:
        content_type = self._content_types.lookup(path)
        compression = select_compression(_header(request_headers, "accept-encoding"))

        # Open before committing to a 200 so "cannot open" is still a 500
        try:
            source = FileStream(path, chunk_size=self._chunk_size)
        except OSError as e:
            logger.error(f"Cannot open file for streaming: {e}")
            return plain_text(StreamFailure.status_code, StreamFailure.default_message)

        builder = (ResponseBuilder()
            .content_type(content_type)
            .header("Last-Modified", validator.last_modified)
            .header("ETag", validator.etag)
            .cache_control(HTML_CACHE_CONTROL if is_html(content_type) else ASSET_CACHE_CONTROL)
            .header("Vary", "Accept-Encoding"))

        if compression.is_compressed:
            try:
                body = compress_stream(
                    source,
                    compression,
                    level=self._compression_level,
                    brotli_quality=self._brotli_quality,
                )
            except Exception:
                source.close()
                raise
            builder.header("Content-Encoding", compression.token)
        else:
            body = source
            builder.header("Content-Length", str(meta.size))

        return builder.stream(body).build()


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup on an arbitrary mapping."""
    value = headers.get(name)
    if value is not None:
        return value
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def serve_static(root_dir: str, **kwargs) -> StaticFileHandler:
    """Shorthand for StaticFileHandler(root_dir, **kwargs)."""
    return StaticFileHandler(root_dir, **kwargs)
