"""
=============================================================================
CONTENT ENCODING NEGOTIATION
=============================================================================

Clients list the encodings they understand in Accept-Encoding:

    Accept-Encoding: gzip, deflate, br

The server picks at most one and announces it in Content-Encoding. This
module does the picking and builds the streaming compressor.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    SELECTION ORDER                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   header contains "br"       →  BROTLI   (best ratio for web text) │
    │   else contains "gzip"       →  GZIP     (universal)               │
    │   else contains "deflate"    →  DEFLATE  (zlib-wrapped)            │
    │   else / absent / empty      →  NONE                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Selection is a plain substring test on the lowercased header. Quality
values are not parsed: "gzip;q=0" still selects gzip. That keeps the
choice a pure, total function of one string.

    "gzip, deflate, br"  →  BROTLI
    "gzip"               →  GZIP
    "identity"           →  NONE

WIRE FORMATS
────────────

    gzip     RFC 1952 container   zlib wbits = 16 + 15
    deflate  RFC 1950 zlib stream zlib wbits = 15   (what browsers expect)
    br       RFC 7932             brotli.Compressor

Compressed length is unknown until the last byte is produced, so
compressed responses never carry Content-Length.

=============================================================================
"""

from enum import Enum
from typing import Optional
import zlib

import brotli

from .streams import ByteStream, CompressedStream


DEFAULT_COMPRESSION_LEVEL = 6
DEFAULT_BROTLI_QUALITY = 4


class CompressionChoice(Enum):
    """Closed set of body encodings the server can produce."""

    NONE = "identity"
    GZIP = "gzip"
    DEFLATE = "deflate"
    BROTLI = "br"

    @property
    def token(self) -> str:
        """Value for the Content-Encoding header."""
        return self.value

    @property
    def is_compressed(self) -> bool:
        return self is not CompressionChoice.NONE


# Checked in order; first substring hit wins.
_PREFERENCE = (
    ("br", CompressionChoice.BROTLI),
    ("gzip", CompressionChoice.GZIP),
    ("deflate", CompressionChoice.DEFLATE),
)


def select_compression(accept_encoding: Optional[str]) -> CompressionChoice:
    """
    Choose the body encoding for an Accept-Encoding header value.

    Args:
        accept_encoding: Raw header value, or None when absent.

    Returns:
        The selected CompressionChoice (NONE when nothing matches).
    """
    if not accept_encoding:
        return CompressionChoice.NONE

    offered = accept_encoding.lower()
    for needle, choice in _PREFERENCE:
        if needle in offered:
            return choice
    return CompressionChoice.NONE


class BrotliCompressor:
    """
    Adapts ``brotli.Compressor`` to the compressobj interface.

    brotli calls the steps process()/finish(); CompressedStream expects
    compress()/flush().
    """

    def __init__(self, quality: int = DEFAULT_BROTLI_QUALITY):
        self._compressor = brotli.Compressor(quality=quality)

    def compress(self, data: bytes) -> bytes:
        return self._compressor.process(data)

    def flush(self) -> bytes:
        return self._compressor.finish()


def create_compressor(
    choice: CompressionChoice,
    level: int = DEFAULT_COMPRESSION_LEVEL,
    brotli_quality: int = DEFAULT_BROTLI_QUALITY,
):
    """
    Build a fresh incremental compressor for ``choice``.

    Raises:
        ValueError: For CompressionChoice.NONE.
    """
    if choice is CompressionChoice.GZIP:
        return zlib.compressobj(level, zlib.DEFLATED, 16 + zlib.MAX_WBITS)
    if choice is CompressionChoice.DEFLATE:
        return zlib.compressobj(level, zlib.DEFLATED, zlib.MAX_WBITS)
    if choice is CompressionChoice.BROTLI:
        return BrotliCompressor(quality=brotli_quality)
    raise ValueError(f"No compressor for {choice}")


def compress_stream(
    source: ByteStream,
    choice: CompressionChoice,
    level: int = DEFAULT_COMPRESSION_LEVEL,
    brotli_quality: int = DEFAULT_BROTLI_QUALITY,
) -> ByteStream:
    """
    Wrap ``source`` so it yields ``choice``-encoded bytes.

    NONE returns the source unchanged.
    """
    if not choice.is_compressed:
        return source
    return CompressedStream(source, create_compressor(choice, level, brotli_quality))
