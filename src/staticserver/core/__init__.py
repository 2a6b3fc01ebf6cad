"""
=============================================================================
NETWORKING CORE
=============================================================================

Transport-level building blocks, independent of HTTP semantics:

    socket_server.py   listening socket and accept loop
    connection.py      one client socket: framed reads, blocking writes
    thread_pool.py     bounded worker threads, one connection per task

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
