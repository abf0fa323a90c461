"""
Transport layer: TCP listener, per-client connections, worker threads.

    SocketServer ──accept──► Connection ──submit──► ThreadPool ──► HTTPServer
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
