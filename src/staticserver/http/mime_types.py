"""
=============================================================================
CONTENT TYPE TABLE
=============================================================================

Maps a file extension to the value sent in the Content-Type header.

    index.html  →  text/html; charset=utf-8
    app.mjs     →  text/javascript; charset=utf-8
    logo.svg    →  image/svg+xml
    photo.JPG   →  image/jpeg               (extension match is case-insensitive)
    data.bin    →  application/octet-stream (anything we don't know)

Text types carry an explicit charset so browsers never have to sniff the
encoding. The charset is part of the table value, not bolted on afterwards,
which keeps lookup a single dictionary hit.

WHY APPLICATION/OCTET-STREAM AS THE FALLBACK?
─────────────────────────────────────────────

It tells the browser "opaque bytes, don't try to render or execute this".
Guessing text/plain for an unknown file could let an uploaded .exe display
as garbage, or worse, let a crafted file be sniffed as HTML.

=============================================================================
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional


CONTENT_TYPES = {
    # Documents and code
    ".html": "text/html; charset=utf-8",
    ".htm": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "text/javascript; charset=utf-8",
    ".mjs": "text/javascript; charset=utf-8",     # ES modules
    ".json": "application/json; charset=utf-8",
    ".map": "application/json; charset=utf-8",    # Source maps
    ".txt": "text/plain; charset=utf-8",
    ".xml": "application/xml; charset=utf-8",

    # Images
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts and binaries
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".wasm": "application/wasm",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ContentTypeTable:
    """
    Immutable extension → content type lookup.

    The table is built once and exposed through a read-only mapping, so a
    single instance can be shared by every request thread without locking.

    Example:
        table = ContentTypeTable()
        table.lookup("/srv/public/logo.svg")    # "image/svg+xml"

        custom = ContentTypeTable({".md": "text/markdown; charset=utf-8"})
    """

    def __init__(
        self,
        types: Optional[Mapping[str, str]] = None,
        default: str = DEFAULT_CONTENT_TYPE,
    ):
        source = CONTENT_TYPES if types is None else types
        self._types = MappingProxyType({ext.lower(): value for ext, value in source.items()})
        self._default = default

    @property
    def types(self) -> Mapping[str, str]:
        """Read-only view of the table."""
        return self._types

    @property
    def default(self) -> str:
        return self._default

    def lookup(self, path: str | Path) -> str:
        """
        Content type for ``path`` based on its final extension.

        Only the last suffix counts: ``archive.tar.gz`` is looked up as
        ``.gz``. Dotfiles such as ``.htaccess`` have no extension.
        """
        extension = Path(path).suffix.lower()
        return self._types.get(extension, self._default)

    def __contains__(self, extension: object) -> bool:
        return isinstance(extension, str) and extension.lower() in self._types

    def __len__(self) -> int:
        return len(self._types)


DEFAULT_TABLE = ContentTypeTable()


def get_content_type(path: str | Path) -> str:
    """Content type from the default table."""
    return DEFAULT_TABLE.lookup(path)


def is_html(content_type: str) -> bool:
    """True for text/html, with or without parameters."""
    return content_type.startswith("text/html")
