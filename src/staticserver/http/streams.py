"""
=============================================================================
BYTE STREAMS
=============================================================================

A response body that is too big to hold in memory is modelled as a stream:
an iterable of byte chunks that can be consumed exactly once and must be
closed afterwards.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STREAM COMPOSITION                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   FileStream ──chunks──► CompressedStream ──chunks──► socket        │
    │   (owns the fd)          (owns the FileStream)                      │
    │                                                                      │
    │   Closing the outermost stream closes everything it wraps, so the   │
    │   server only ever has to close what it was handed.                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

LIFECYCLE
─────────

    created ──iter()──► producing ──exhausted/error/close()──► closed

    - Iterating a second time raises RuntimeError (a file read cannot be
      rewound into the middle of a compressed stream, so we never pretend).
    - close() is idempotent and may be called before, during or after
      iteration. Early close is how a client disconnect is handled.
    - A read error surfaces as StreamFailure, never as a bare OSError, so
      the server can tell "the file broke" apart from "the socket broke".

BACKPRESSURE
────────────

Chunks are pulled, not pushed. The server asks for the next chunk only
after sendall() for the previous one returned, so a slow client slows the
file reads down instead of filling memory.

=============================================================================
"""

from abc import ABC, abstractmethod
import logging
from typing import Iterable, Iterator, Optional

from ..exceptions import StreamFailure


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 64 * 1024


class ByteStream(ABC):
    """
    Single-pass, closeable producer of byte chunks.

    Subclasses implement ``_produce()`` and, if they hold resources,
    ``_release()``.
    """

    def __init__(self):
        self._started = False
        self._closed = False

    @abstractmethod
    def _produce(self) -> Iterator[bytes]:
        """Yield the body chunks. Called at most once."""

    def _release(self) -> None:
        """Free held resources. Called exactly once."""

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[bytes]:
        if self._started:
            raise RuntimeError(f"{type(self).__name__} can only be consumed once")
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} is closed")
        self._started = True
        return self._run()

    def _run(self) -> Iterator[bytes]:
        try:
            for chunk in self._produce():
                if chunk:
                    yield chunk
        finally:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    def __enter__(self) -> "ByteStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class FileStream(ByteStream):
    """
    Sequential chunked reader over a file.

    The file is opened in the constructor, so "cannot open" is reported
    before any response header is committed. Reading happens lazily.

    Args:
        path: File to read.
        chunk_size: Maximum bytes per chunk.

    Raises:
        OSError: If the file cannot be opened.
    """

    def __init__(self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        super().__init__()
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = chunk_size
        self._file = open(path, "rb")

    def _produce(self) -> Iterator[bytes]:
        while True:
            try:
                chunk = self._file.read(self.chunk_size)
            except OSError as e:
                logger.error(f"Read failed after open: {e}")
                raise StreamFailure() from e
            if not chunk:
                return
            yield chunk

    def _release(self) -> None:
        self._file.close()


class IterableStream(ByteStream):
    """
    Stream over an in-memory iterable of byte chunks.

    Handy for generated bodies and for feeding known data into a
    CompressedStream.
    """

    def __init__(self, chunks: Iterable[bytes]):
        super().__init__()
        self._chunks: Optional[Iterable[bytes]] = chunks

    def _produce(self) -> Iterator[bytes]:
        yield from self._chunks

    def _release(self) -> None:
        close = getattr(self._chunks, "close", None)
        if close is not None:
            close()
        self._chunks = None


class CompressedStream(ByteStream):
    """
    Pipes a source stream through an incremental compressor.

    The compressor only needs ``compress(data) -> bytes`` and
    ``flush() -> bytes`` (the zlib compressobj interface). Empty outputs
    are skipped, since compressors buffer internally and often return
    nothing for small inputs.

    The source is owned: closing this stream closes the source.
    """

    def __init__(self, source: ByteStream, compressor):
        super().__init__()
        self._source = source
        self._compressor = compressor

    def _produce(self) -> Iterator[bytes]:
        for chunk in self._source:
            yield self._compressor.compress(chunk)
        yield self._compressor.flush()

    def _release(self) -> None:
        self._source.close()
