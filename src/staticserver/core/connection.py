"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted TCP socket: reads complete requests out of the byte
stream and writes response bytes back.

=============================================================================
FRAMING REQUESTS OUT OF A BYTE STREAM
=============================================================================

TCP delivers bytes, not messages. One recv() may return half a request
line, or two pipelined requests at once. So we buffer:

    buffer: b"GET /a.css HTTP/1.1\r\nHost: x\r\n\r\nGET /b.js HTTP/1.1\r\n..."
                                                  ▲
                                  first \r\n\r\n ─┘ end of request #1 head

    1. recv() until the buffer holds \r\n\r\n
    2. read Content-Length from the head (0 for a plain GET)
    3. recv() until the body is complete
    4. slice the request off the front; the rest stays for next time

=============================================================================
WRITING RESPONSES
=============================================================================

A static file response is written as a head followed by many body chunks.
``send()`` is called once per piece and blocks in sendall() until the
kernel has taken the bytes. That blocking is the backpressure: a slow
client stalls this worker's file reads, nothing piles up in memory.

send() reports a vanished peer as False instead of raising, so the caller
can stop producing and clean up in one place.

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
     │         │                          │                     │
     └─────────┴──────────► CLOSING ◄─────┴─────────────────────┘
                               │
                               ▼
                             CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Peer (ip, port).
        id: Short identifier used in log lines.
        requests_handled: Requests read so far on this connection.
        bytes_sent: Total bytes written so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0
    bytes_sent: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (head and body).

        Returns:
            The request bytes, or None if the peer closed the connection
            or went quiet between keep-alive requests.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            # ─────────────────────────────────────────────────────────────
            # HEAD
            # ─────────────────────────────────────────────────────────────
            while b"\r\n\r\n" not in self._buffer:
                if not self._fill():
                    return None

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            # ─────────────────────────────────────────────────────────────
            # BODY
            # ─────────────────────────────────────────────────────────────
            while len(self._buffer) - body_start < content_length:
                if not self._fill():
                    break

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            if self.state != ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

    def _fill(self) -> bool:
        """recv() once into the buffer. False when the peer is gone."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        if not chunk:
            return False

        self._buffer += chunk
        self.last_activity = time.time()

        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")
        return True

    @staticmethod
    def _parse_content_length(head: bytes) -> int:
        # Scanned before full parsing: we need it to know where the
        # request ends. A bad value counts as 0; the parser rejects it.
        for line in head.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Write ``data`` completely.

        Returns:
            True on success, False if the peer is gone.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        self.last_activity = time.time()
        return True

    # Name kept for callers that write a whole serialized response.
    send_response = send

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort(self) -> None:
        """
        Drop the connection without a graceful shutdown.

        Used when a response body fails halfway: the client must see a
        truncated transfer, not a clean end of message.
        """
        if self.state == ConnectionState.CLOSED:
            return
        try:
            self.socket.close()
        except OSError:
            pass
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection aborted")

    def close(self) -> None:
        """
        Close gracefully: FIN, drain what the client still sends, close.

        Idempotent.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests")

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
