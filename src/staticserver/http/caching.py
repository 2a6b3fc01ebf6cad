"""
=============================================================================
CONDITIONAL REQUESTS (ETag / Last-Modified)
=============================================================================

The cheapest response is the one you don't send. After the first download
a browser remembers two validators for the file:

    ETag: W/"3f786850e387550fdab836ed7e6dc881de23001b"
    Last-Modified: Tue, 15 Nov 2025 12:45:26 GMT

and sends them back on the next visit:

    If-None-Match: W/"3f786850e387550fdab836ed7e6dc881de23001b"
    If-Modified-Since: Tue, 15 Nov 2025 12:45:26 GMT

If either still matches, we answer 304 Not Modified with no body.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CACHE NEGOTIATION                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   stat(file) ──► FileMetadata ──► CacheValidator(etag, last_mod)   │
    │                                          │                          │
    │                         request headers ─┤                          │
    │                                          ▼                          │
    │                          If-None-Match == etag ?  ──yes──► 304     │
    │                          If-Modified-Since == lm ? ──yes──► 304    │
    │                                          │ no                       │
    │                                          ▼                          │
    │                                    200 + body                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

THE ETAG
────────

    W/"<sha1 hex of '<inode>-<size>-<mtime in ns>'>"

Derived from metadata only, so computing it never reads the file. It is
weak (W/) because it does not promise byte-identical content, only "same
file, same size, same modification time".

COMPARISON RULES
────────────────

Both headers are compared by exact string equality. A client that sends a
list of ETags, or reformats the date, simply gets a 200. That errs on the
side of sending bytes, never on the side of serving stale content.

=============================================================================
"""

from dataclasses import dataclass
import hashlib
import os
import stat
from typing import Mapping

from .response import http_date_from_timestamp


@dataclass(frozen=True)
class FileMetadata:
    """
    Snapshot of the stat fields the pipeline needs.

    Attributes:
        size: File size in bytes.
        mtime_ns: Modification time, nanoseconds since the epoch.
        inode: Filesystem identifier (0 where the platform has none).
        is_directory: True for directories.
    """

    size: int
    mtime_ns: int
    inode: int = 0
    is_directory: bool = False

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileMetadata":
        return cls(
            size=st.st_size,
            mtime_ns=st.st_mtime_ns,
            inode=st.st_ino,
            is_directory=stat.S_ISDIR(st.st_mode),
        )

    @property
    def mtime(self) -> float:
        """Modification time in seconds."""
        return self.mtime_ns / 1_000_000_000


@dataclass(frozen=True)
class CacheValidator:
    """The pair of validators sent with every successful file response."""

    etag: str
    last_modified: str


def compute_etag(meta: FileMetadata) -> str:
    """Weak ETag from inode, size and nanosecond mtime."""
    fingerprint = f"{meta.inode}-{meta.size}-{meta.mtime_ns}"
    digest = hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()
    return f'W/"{digest}"'


def build_validator(meta: FileMetadata) -> CacheValidator:
    """Deterministic validator for a metadata snapshot."""
    return CacheValidator(
        etag=compute_etag(meta),
        last_modified=http_date_from_timestamp(meta.mtime),
    )


def is_fresh(validator: CacheValidator, request_headers: Mapping[str, str]) -> bool:
    """
    True when the client's cached copy is still valid.

    Args:
        validator: Validators of the file on disk.
        request_headers: Request headers. Names are matched
            case-insensitively.
    """
    lowered = {name.lower(): value for name, value in request_headers.items()}

    if_none_match = lowered.get("if-none-match")
    if if_none_match is not None and if_none_match == validator.etag:
        return True

    if_modified_since = lowered.get("if-modified-since")
    return if_modified_since is not None and if_modified_since == validator.last_modified
