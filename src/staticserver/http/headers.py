"""
=============================================================================
RESPONSE HEADER SET
=============================================================================

HTTP header names are case-insensitive ("Content-Type" == "content-type"),
but a plain dict is not. Several layers touch the same response (the static
pipeline, CORS, access logging, the connection loop) and each of them may
spell a name differently. Headers keeps one entry per name regardless of
case:

    >>> h = Headers()
    >>> h["Content-Type"] = "text/html"
    >>> h["content-type"] = "text/plain"      # overwrites, last write wins
    >>> list(h.items())
    [('content-type', 'text/plain')]
    >>> h["CONTENT-TYPE"]
    'text/plain'

Insertion order is preserved, so headers go on the wire in the order they
were first set.

=============================================================================
"""

from collections.abc import Mapping, MutableMapping
from typing import Dict, Iterator, Optional, Tuple


class Headers(MutableMapping):
    """
    Ordered, case-insensitive header mapping.

    Keys are stored lowercased; the spelling used by the most recent write
    is kept for serialization.
    """

    def __init__(self, data: Optional[Mapping] = None, **kwargs: str):
        self._store: Dict[str, Tuple[str, str]] = {}
        if data is not None:
            self.update(data)
        if kwargs:
            self.update(kwargs)

    def __setitem__(self, name: str, value) -> None:
        self._store[name.lower()] = (name, str(value))

    def __getitem__(self, name: str) -> str:
        return self._store[name.lower()][1]

    def __delitem__(self, name: str) -> None:
        del self._store[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._store

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        other_lower = {str(k).lower(): str(v) for k, v in other.items()}
        return {k: v for k, (_, v) in self._store.items()} == other_lower

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def copy(self) -> "Headers":
        return Headers(self)


def append_vary(headers: MutableMapping, token: str) -> None:
    """
    Add ``token`` to the Vary header unless it is already listed.

    Both CORS (Origin) and content negotiation (Accept-Encoding) contribute
    to Vary, so neither may simply overwrite it.
    """
    current = headers.get("Vary", "")
    listed = [part.strip().lower() for part in current.split(",") if part.strip()]
    if token.lower() in listed:
        return
    headers["Vary"] = f"{current}, {token}" if current else token
