"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them per RFC 7230.

    ┌─ STATUS LINE ───────────────────────────────────────────────────────┐
    │   HTTP/1.1 200 OK\r\n                                                │
    ├─ HEADERS ───────────────────────────────────────────────────────────┤
    │   Content-Type: application/json; charset=utf-8\r\n                  │
    │   Content-Length: 44\r\n          ← auto-added                       │
    │   Date: Sun, 18 Oct 2026 12:00:00 GMT\r\n   ← auto-added             │
    │   Server: ResourceServer/1.0\r\n  ← auto-added                       │
    │   Set-Cookie: sessionId=ab12; Path=/; Max-Age=3600; HttpOnly\r\n     │
    │   Set-Cookie: username=admin; Path=/; Max-Age=3600\r\n               │
    │   \r\n                                                               │
    ├─ BODY ──────────────────────────────────────────────────────────────┤
    │   {"message": "Login successful", "username": "admin"}               │
    └─────────────────────────────────────────────────────────────────────┘

Headers are a plain dict (one value per name) EXCEPT Set-Cookie, which
lives in its own list: every cookie directive must be its own header line.

204 and 304 responses are serialized without a body and without
Content-Length.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
import json

from .cookies import format_http_date
from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "ResourceServer/1.0"

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

        Router builds          to_bytes()              Connection sends
        HTTPResponse  ─────►   serializes   ─────►     raw bytes
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: List[str] = field(default_factory=list)   # Set-Cookie directives
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 304 Not Modified"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def add_cookie(self, directive: str) -> "HTTPResponse":
        """Append one Set-Cookie directive (see http.cookies.serialize_cookie)."""
        self.cookies.append(directive)
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize for socket.sendall().

        Fills in Content-Length, Date and Server when the handler did not
        set them, and writes each cookie directive on its own line.
        """
        response_headers = dict(self.headers)
        body = self.body if self.status.allows_body else b""

        if self.status.allows_body:
            response_headers.setdefault("Content-Length", str(len(body)))
        else:
            response_headers.pop("Content-Length", None)

        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        for directive in self.cookies:
            lines.append(f"Set-Cookie: {directive}")
        lines.append("")

        return "\r\n".join(lines).encode("utf-8") + b"\r\n" + body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("Location", "/users/3")
            .json({"id": 3, "name": "A", "email": "a@x.com"})
            .build())
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._cookies: List[str] = []
        self._body: bytes = b""
        self._server_name = server_name

    # =========================================================================
    # STATUS & HEADERS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def cookie(self, directive: str) -> "ResponseBuilder":
        """Add one Set-Cookie directive. Call once per cookie."""
        self._cookies.append(directive)
        return self

    def cookies(self, directives: List[str]) -> "ResponseBuilder":
        self._cookies.extend(directives)
        return self

    # =========================================================================
    # BODY
    # =========================================================================

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        return self.text(html, "text/html; charset=utf-8")

    def json(self, data: Any) -> "ResponseBuilder":
        """Serialize data as JSON (ensure_ascii=False keeps non-ASCII names readable)."""
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def attachment(self, content: bytes, filename: str, content_type: str) -> "ResponseBuilder":
        """
        A body the browser should save rather than render.

        Content-Length is set from the exact byte count here rather than
        left to to_bytes(), so it is visible on the built response too.
        """
        self._body = content
        self._headers["Content-Type"] = content_type
        self._headers["Content-Disposition"] = f'attachment; filename="{filename}"'
        self._headers["Content-Length"] = str(len(content))
        return self

    # =========================================================================
    # CACHING
    # =========================================================================

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def etag(self, tag: str) -> "ResponseBuilder":
        return self.header("ETag", tag)

    def last_modified(self, when: datetime) -> "ResponseBuilder":
        return self.header("Last-Modified", format_http_date(when))

    # =========================================================================
    # CONNECTION
    # =========================================================================

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            cookies=self._cookies,
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        return self.build().to_bytes(self._server_name)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def error_response(
    status: HTTPStatus,
    message: str,
    server_name: Optional[str] = None,
) -> HTTPResponse:
    """{"error": message} with the given status."""
    builder = ResponseBuilder().status(status).json({"error": message})
    if server_name:
        builder.header("Server", server_name)
    return builder.build()


def method_not_allowed(allowed_methods: List[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 requires."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())
