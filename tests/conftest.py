"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Generator
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import HTTPServer, ServerConfig, create_app


INDEX_HTML = b"<!doctype html><title>Home</title><h1>Hello</h1>"
NOT_FOUND_HTML = b"<!doctype html><title>Missing</title><h1>Nothing here</h1>"
LOGO_SVG = b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"></svg>'
APP_JS = b"console.log('hello');\n" * 200
IMAGE_PNG = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4

# Fixed mtime so Last-Modified values are predictable
FIXED_MTIME = 1_700_000_000


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample conditional GET for a static asset."""
    return (
        b"GET /img/logo.svg?v=2 HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, deflate, br\r\n"
        b'If-None-Match: W/"abc"\r\n'
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b'{"name": "John"}'
    return (
        b"POST /upload HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode() +
        b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small static site:

        public/
        ├── index.html
        ├── 404.html
        ├── app.js
        ├── data.bin
        ├── img/
        │   ├── logo.svg
        │   └── image.png
        ├── docs/
        │   └── index.html
        └── empty/
    """
    root = tmp_path / "public"
    (root / "img").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "empty").mkdir()

    files = {
        "index.html": INDEX_HTML,
        "404.html": NOT_FOUND_HTML,
        "app.js": APP_JS,
        "data.bin": b"\x00\x01\x02\x03",
        "img/logo.svg": LOGO_SVG,
        "img/image.png": IMAGE_PNG,
        "docs/index.html": b"<h1>Docs</h1>",
    }
    for name, content in files.items():
        path = root / name
        path.write_bytes(content)
        os.utime(path, (FIXED_MTIME, FIXED_MTIME))

    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs a server in a background thread."""

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread and wait until it accepts."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": self.port},
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def live_server(site: Path, free_port: int) -> Generator[ServerThread, None, None]:
    """The full application serving ``site`` on a free port."""
    server = create_app(ServerConfig(
        host="127.0.0.1",
        port=free_port,
        root_dir=str(site),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
        environment="test",
    ))

    thread = ServerThread(server, free_port)
    thread.start()

    yield thread

    thread.stop()
