"""
=============================================================================
STATIC HTTP SERVER
=============================================================================

Ties the pieces together: listener, worker pool, parser, middleware,
router, and the response writer that streams file bodies onto the wire.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ARCHITECTURE                                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │  ThreadPool  │    │    Router    │        │
    │    └──────┬───────┘    └──────┬───────┘    └──────┬───────┘        │
    │           ▼                   ▼                   ▼                 │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │  Connection  │    │ keep-alive   │    │ /api/health      │    │
    │    │              │    │ loop         │    │ /api/info        │    │
    │    └──────────────┘    └──────────────┘    │ /*  static files │    │
    │                                            └──────────────────┘    │
    │           Middleware:  Logging → CORS (optional) → Router           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WRITING A STREAMED BODY
=============================================================================

File bodies arrive as a lazy stream. Writing one has three hazards:

    1. The file fails on the FIRST read.
       We have not sent anything yet, so a clean 500 is still possible.
       That is why the first chunk is pulled BEFORE the head is sent.

    2. The file fails LATER.
       The 200 head is already out. The only honest signal left is to cut
       the connection without finishing the body, so the client sees a
       truncated transfer instead of a silently short file.

    3. The client goes away.
       sendall() fails, we stop pulling chunks and close the stream so
       the file handle is released immediately.

Framing depends on what we know:

    Content-Length declared         raw bytes, exact length
    length unknown, HTTP/1.1        Transfer-Encoding: chunked
    length unknown, HTTP/1.0        raw bytes, end of body = close

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "How does a 2 GB file avoid 2 GB of memory?"
A: "It is read in 64 KiB chunks and each chunk is written with a blocking
   sendall() before the next is read. Memory per transfer stays at one
   chunk (plus compressor state)."

Q: "Why is there no Content-Length on compressed responses?"
A: "The compressed size is only known after compressing everything, which
   would defeat streaming. HTTP/1.1 chunked encoding frames the body
   instead."

=============================================================================
"""

import logging
from typing import Callable, Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, RequestTooLarge
from .exceptions import StreamFailure
from .handlers import HealthHandler, StaticFileHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus,
    Router, plain_text, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware, CORSMiddleware


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server.

    Example:
        server = HTTPServer(ServerConfig(port=3000, root_dir="public"))
        server.use(LoggingMiddleware())

        @server.get("/api/ping")
        def ping(request):
            return ok({"pong": True})

        server.run()            # blocks until Ctrl+C / SIGTERM

    Use create_app() to get the fully wired static file server.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # TRANSPORT
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION
        # ─────────────────────────────────────────────────────────────────
        self._router = Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self.static_root: Optional[str] = None

        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. The first one added is the outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> tuple[str, int]:
        return self._socket_server.address

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Serve until shutdown() or a termination signal.

        Args:
            host: Override config.host.
            port: Override config.port.
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port

        self._setup_logging()
        self._handler = self._middleware.wrap(self._router.handle)
        self._running = True
        self._thread_pool.start()

        logger.info(f"{self.config.server_name} starting on http://{self.config.host}:{self.config.port}")
        logger.info(f"Workers: {self.config.min_workers}-{self.config.max_workers} threads")
        if self.static_root:
            logger.info(f"Serving static files from {self.static_root}")
        self._router.log_routes(logging.DEBUG)

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Stop accepting connections; run() returns once workers drain."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    @property
    def is_running(self) -> bool:
        return self._running

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserver").setLevel(level)

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=10.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Queue a new connection on the worker pool (accept thread)."""
        if not self._thread_pool.submit(self._process_connection, args=(conn,)):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection) -> None:
        """Keep-alive loop for one connection (worker thread)."""
        with conn:
            while self._running and not conn.is_closed:
                # ─────────────────────────────────────────────────────────
                # READ
                # ─────────────────────────────────────────────────────────
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                # ─────────────────────────────────────────────────────────
                # PARSE
                # ─────────────────────────────────────────────────────────
                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    self._send_error(conn, e.status_code, str(e))
                    break

                # ─────────────────────────────────────────────────────────
                # HANDLE
                # ─────────────────────────────────────────────────────────
                conn.state = ConnectionState.PROCESSING
                try:
                    response = self._handler(request)
                except Exception as e:
                    logger.exception(f"[{conn.id}] Handler error: {e}")
                    response = internal_error()

                # ─────────────────────────────────────────────────────────
                # WRITE
                # ─────────────────────────────────────────────────────────
                if not self._write_response(conn, request, response):
                    break
                conn.set_keep_alive()

    def _write_response(self, conn: Connection, request: HTTPRequest, response: HTTPResponse) -> bool:
        """
        Write ``response`` for ``request``.

        Returns:
            True if the connection can carry another request.
        """
        keep_alive = request.is_keep_alive and self.config.keep_alive
        head_only = request.is_head or not response.status.allows_body

        try:
            if response.is_streamed:
                return self._write_streamed(conn, request, response, keep_alive, head_only)

            self._set_connection_headers(response, keep_alive)
            server_name = self.config.server_name
            data = response.head_bytes(server_name) if head_only else response.to_bytes(server_name)
            return conn.send(data) and keep_alive
        finally:
            response.close()

    def _write_streamed(
        self,
        conn: Connection,
        request: HTTPRequest,
        response: HTTPResponse,
        keep_alive: bool,
        head_only: bool,
    ) -> bool:
        declared = response.content_length
        chunks = iter(())
        first = b""

        if not head_only:
            chunks = iter(response.stream)
            try:
                first = next(chunks, b"")
            except Exception as e:
                # Compressor errors surface here too, not only StreamFailure
                logger.error(f"[{conn.id}] Body failed before headers were sent: {e}")
                error = e if isinstance(e, StreamFailure) else StreamFailure()
                failure = plain_text(error.status_code, str(error))
                self._set_connection_headers(failure, keep_alive)
                return conn.send(failure.to_bytes(self.config.server_name)) and keep_alive

        chunked = declared is None and request.version == "HTTP/1.1"
        if declared is None and not chunked:
            keep_alive = False
        if chunked:
            response.headers["Transfer-Encoding"] = "chunked"

        self._set_connection_headers(response, keep_alive)
        if not conn.send(response.head_bytes(self.config.server_name)):
            return False
        if head_only:
            return keep_alive

        sent = 0
        piece = first
        try:
            while piece:
                sent += len(piece)
                if not conn.send(_chunk_frame(piece) if chunked else piece):
                    return False
                piece = next(chunks, b"")
        except Exception as e:
            logger.error(f"[{conn.id}] Body failed after {sent} bytes, aborting: {e}")
            conn.abort()
            return False

        if chunked:
            return conn.send(b"0\r\n\r\n") and keep_alive

        if declared is not None and sent != declared:
            # File changed size between stat and read; the framing is wrong
            logger.warning(f"[{conn.id}] Sent {sent} bytes, declared {declared}, aborting")
            conn.abort()
            return False

        return keep_alive

    def _set_connection_headers(self, response: HTTPResponse, keep_alive: bool) -> None:
        if keep_alive:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
        else:
            response.headers["Connection"] = "close"

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str) -> None:
        """Error for failures before a handler ran (parse, timeout, overload)."""
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())
        conn.send(response.to_bytes(self.config.server_name))


def _chunk_frame(data: bytes) -> bytes:
    """One Transfer-Encoding: chunked frame: hex size, CRLF, data, CRLF."""
    return f"{len(data):X}\r\n".encode("ascii") + data + b"\r\n"


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build the static file server.

    Routes, in match order:
        GET /api/health   health payload (no-store)
        GET /api/info     server description
        ANY /*path        static files from config.root_dir

    Middleware: access logging, plus CORS when config.cors is set.
    """
    config = config or ServerConfig()
    server = HTTPServer(config)

    server.use(LoggingMiddleware(log_format=config.log_format))
    if config.cors:
        server.use(CORSMiddleware())

    health = HealthHandler(environment=config.environment)
    server.get("/api/health")(health.health)
    server.get("/api/info")(health.info)

    static = StaticFileHandler(
        config.root_dir,
        index_file=config.index_file,
        not_found_page=config.not_found_page,
        chunk_size=config.chunk_size,
        compression_level=config.compression_level,
        brotli_quality=config.brotli_quality,
    )
    server.router.add_route("/*path", static.handle, name="static")
    server.static_root = static.root

    return server
