"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket. TCP delivers a byte stream in arbitrary
chunks; read_request() buffers until it holds exactly one HTTP message:

    recv() ─► buffer ─► "\\r\\n\\r\\n" seen? ─► Content-Length ─► body complete?
                 ▲            │ no                                  │ no
                 └────────────┴─────────────────────────────────────┘

Bytes past the end of the message stay in the buffer for the next
request on a keep-alive connection (pipelining).

If the client goes away in the middle of a body, the partial message is
dropped: nothing half-read is ever handed to the router.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging
import socket
import time
import uuid

from ..http.request import HTTPParseError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client socket with request framing, timeouts and state tracking.

    The first request gets `timeout` seconds; later requests on the same
    connection get the shorter `keep_alive_timeout`, after which an idle
    connection is closed quietly.
    """

    socket: socket.socket
    address: tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        Returns:
            The raw request bytes, or None if the client closed the
            connection (cleanly, mid-request, or by idling out between
            keep-alive requests).

        Raises:
            TimeoutError: First request did not arrive in time.
            HTTPParseError: Request exceeds max_request_size (413).
        """
        self.state = ConnectionState.READING
        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                if not self._fill():
                    return None

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._content_length(self._buffer[:header_end])
            if body_start + content_length > self.max_request_size:
                raise HTTPParseError(
                    f"Request too large: {body_start + content_length} bytes",
                    status_code=413,
                )

            while len(self._buffer) - body_start < content_length:
                if not self._fill():
                    logger.debug(f"[{self.id}] Client closed mid-body, dropping request")
                    return None

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]
            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")
        finally:
            self.socket.settimeout(self.timeout)

    def _fill(self) -> bool:
        """recv() once into the buffer. False when the peer has gone."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        if not chunk:
            return False
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(self._buffer)} bytes",
                status_code=413,
            )
        return True

    @staticmethod
    def _content_length(header_section: bytes) -> int:
        """
        Content-Length from raw header bytes, 0 when absent or unreadable.

        The full parse happens later in RequestParser, which rejects
        invalid values; this is only for framing.
        """
        for line in header_section.decode("latin-1").split("\r\n")[1:]:
            name, _, value = line.partition(":")
            if name.strip().lower() == "content-length":
                try:
                    return max(int(value.strip()), 0)
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING & LIFECYCLE
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """sendall() the response. False if the client is gone."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """Half-close, drain briefly, then release the socket."""
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests ({self.age:.2f}s)")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
