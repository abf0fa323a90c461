"""
=============================================================================
RESOURCE SERVER
=============================================================================

An HTTP/1.1 resource server built on sockets and the standard library:

    - /users          CRUD collection with unique emails
    - /login ...      cookie-backed sessions
    - /cache          ETag / If-None-Match conditional GET
    - Accept          JSON, plain text or HTML representations

Layers, bottom up:

    core/         TCP listener, connections, worker threads
    http/         parsing, responses, routing, cookies, caching, negotiation
    stores/       users and sessions, each behind its own lock
    handlers/     request → Outcome, one class per resource family
    middleware/   access log, CORS
    app.py        wiring; server.py puts it on a socket

=============================================================================
"""

__version__ = "1.0.0"

from .app import Application, create_app
from .config import AppConfig, ServerConfig
from .server import HTTPServer

__all__ = [
    "Application",
    "create_app",
    "AppConfig",
    "ServerConfig",
    "HTTPServer",
    "__version__",
]
