"""
=============================================================================
REQUEST PATH RESOLUTION
=============================================================================

Turns a URL path into an absolute filesystem path that is guaranteed to
lie inside the served root, or refuses.

=============================================================================
PATH TRAVERSAL
=============================================================================

The classic static-server hole:

    GET /../../etc/passwd HTTP/1.1

Naively joined onto /srv/public this becomes /srv/public/../../etc/passwd,
which the OS happily resolves to /etc/passwd. Encoded variants
(/..%2f..%2fetc/passwd, backslashes on Windows) do the same once decoded.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    RESOLUTION STEPS                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   "/css/../img/logo.svg?v=2#top"                                    │
    │        │                                                             │
    │        ├─ 1. cut at first ? or #      "/css/../img/logo.svg"        │
    │        ├─ 2. "/" becomes "/index.html"                               │
    │        ├─ 3. reject NUL bytes                                        │
    │        ├─ 4. "\" becomes "/"                                          │
    │        ├─ 5. drop leading "/", normalize  "img/logo.svg"             │
    │        ├─ 6. join onto root           "/srv/public/img/logo.svg"    │
    │        └─ 7. must equal root or start with root + "/"   ✓           │
    │                                                                      │
    │   "/../../etc/passwd"                                               │
    │        ├─ 5. normalize                "../../etc/passwd"            │
    │        ├─ 6. join onto root           "/etc/passwd"                 │
    │        └─ 7. outside root             ✗ InvalidPath                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Normalization is purely lexical (no filesystem access), so the check is
cheap and deterministic. The price: a symlink inside the root that points
outside it is followed. Do not put such links in the served directory.

The separator in step 7 matters: without it, a root of /srv/public would
accept /srv/public-secrets/key.pem because the string starts with the
root.

=============================================================================
"""

import logging
import os
import posixpath

from ..exceptions import InvalidPath


logger = logging.getLogger(__name__)


class PathResolver:
    """
    Confines request paths to a root directory.

    Args:
        root_dir: Directory to serve. Made absolute once, at construction.
        index_file: File substituted for the bare "/" path.

    Example:
        resolver = PathResolver("public")
        resolver.resolve("/")                   # ".../public/index.html"
        resolver.resolve("/css/site.css?v=1")   # ".../public/css/site.css"
        resolver.resolve("/../secret")          # raises InvalidPath
    """

    def __init__(self, root_dir: str, index_file: str = "index.html"):
        self._root = os.path.normpath(os.path.abspath(root_dir))
        self._index_file = index_file

    @property
    def root(self) -> str:
        """Absolute, normalized root directory."""
        return self._root

    def resolve(self, request_path: str, strip_query: bool = True) -> str:
        """
        Map ``request_path`` to an absolute path inside the root.

        Args:
            request_path: URL path, possibly with query and fragment.
            strip_query: Cut at the first ? or #. Pass False for paths that
                were already split and percent-decoded, where ? and # are
                part of the file name.

        Returns:
            Absolute path. Equal to the root itself for paths like "/."

        Raises:
            InvalidPath: If the path is malformed or escapes the root.
        """
        path = _strip_query_and_fragment(request_path) if strip_query else request_path

        if path in ("", "/"):
            path = "/" + self._index_file

        if "\x00" in path:
            raise InvalidPath()

        relative = path.replace("\\", "/").lstrip("/")
        relative = posixpath.normpath(relative) if relative else ""
        if relative == ".":
            relative = ""

        candidate = os.path.normpath(os.path.join(self._root, *relative.split("/")))

        if not self.contains(candidate):
            logger.warning("Rejected request path outside the static root")
            raise InvalidPath()

        return candidate

    def contains(self, candidate: str) -> bool:
        """True if ``candidate`` is the root or lies below it."""
        prefix = self._root if self._root.endswith(os.sep) else self._root + os.sep
        return candidate == self._root or candidate.startswith(prefix)


def _strip_query_and_fragment(path: str) -> str:
    for marker in ("?", "#"):
        index = path.find(marker)
        if index != -1:
            path = path[:index]
    return path
