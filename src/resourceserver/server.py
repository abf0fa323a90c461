"""
=============================================================================
HTTP SERVER
=============================================================================

Puts an Application on a socket:

    SocketServer.accept()
        └── ThreadPool.submit(_process_connection)
                └── loop per connection (keep-alive):
                        Connection.read_request()   bytes
                        RequestParser.parse()       HTTPRequest
                        Application.handle()        HTTPResponse
                        Connection.send_response()  bytes

Failures before the application runs (timeout, oversized or malformed
request) are answered here with {"error": ...} and the connection is
closed. Once the application has produced a response, a failed write
only closes the connection; whatever the handler committed stays
committed.

=============================================================================
"""

from typing import Optional
import logging
import threading

from .app import Application, create_app
from .config import AppConfig, ServerConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .http import HTTPParseError, HTTPStatus, RequestParser, ResponseBuilder


logger = logging.getLogger(__name__)


class HTTPServer:
    """
        server = HTTPServer(ServerConfig(port=8080))
        server.run()                       # blocks until Ctrl+C / SIGTERM

        server.start_background()          # tests
        host, port = server.address
        server.stop()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        app: Optional[Application] = None,
        app_config: Optional[AppConfig] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()
        self.app = app or create_app(
            app_config,
            server_name=self.config.server_name,
            access_log=self.config.log_format,
        )

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._running = False
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self):
        return self._socket_server.address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """Serve until interrupted. Blocks."""
        self._setup_logging()
        self._print_startup_banner()
        self._serve()

    def start_background(self, timeout: float = 5.0) -> "HTTPServer":
        """Serve from a daemon thread; returns once the socket is bound."""
        self._thread = threading.Thread(target=self._serve, name="HTTPServer", daemon=True)
        self._thread.start()
        if not self._socket_server.wait_until_bound(timeout):
            raise RuntimeError("Server did not start listening in time")
        return self

    def stop(self, timeout: float = 5.0):
        self._socket_server.shutdown()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _serve(self):
        self._running = True
        self._thread_pool.start()
        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("resourceserver").setLevel(level)

    def _print_startup_banner(self):
        print()
        print(f"  {self.config.server_name}")
        print(f"  http://{self.config.host}:{self.config.port}")
        print(f"  workers: {self.config.min_workers}-{self.config.max_workers}")
        print("  Press Ctrl+C to stop")
        self.app.router.print_routes()

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Runs on the accept thread: hand the connection to a worker."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
            on_drop=self._reject_connection,
        )
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._reject_connection(conn)

    def _reject_connection(self, conn: Connection):
        """503 and close. Used when the pool is full or a queued connection went stale."""
        self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
        conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one client. Runs on a worker thread."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break
                    request = self._parser.parse(raw_request, conn.address)
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                try:
                    response = self.app.handle(request)
                except Exception:
                    logger.exception(f"[{conn.id}] Unhandled error outside the router")
                    response = (ResponseBuilder(self.config.server_name)
                        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                        .json({"error": "Internal Server Error"})
                        .build())

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                if not conn.send_response(response.to_bytes(self.config.server_name)):
                    break
                if not keep_alive:
                    break
                conn.set_keep_alive()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        response = (ResponseBuilder(self.config.server_name)
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))
