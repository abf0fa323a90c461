"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects
(RFC 7230 message syntax).

    ┌─ REQUEST LINE ──────────────────────────────────────────────────────┐
    │   PATCH /users/3 HTTP/1.1\r\n                                        │
    ├─ HEADERS ───────────────────────────────────────────────────────────┤
    │   Host: localhost:8080\r\n                                           │
    │   Content-Type: application/json\r\n                                 │
    │   Content-Length: 14\r\n                                             │
    │   Cookie: sessionId=5f2a...; theme=dark\r\n                          │
    │   If-None-Match: "2-0"\r\n                                           │
    │   \r\n                          ← blank line ends the headers        │
    ├─ BODY ──────────────────────────────────────────────────────────────┤
    │   {"name": "Z"}                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parser is deliberately strict about structure (request line, header
terminator, Content-Length) and lenient about content: malformed header
lines are skipped, and the body is kept as raw bytes. Decoding the body
as JSON is deferred to HTTPRequest.json, which the Router calls eagerly
for methods that carry a body.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Any
from urllib.parse import parse_qs, urlparse, unquote
import re
import json

from .cookies import parse_cookies


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code to answer with:

        400 Bad Request                - Malformed syntax or JSON body
        405 Method Not Allowed         - Unknown method token
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


_UNPARSED = object()


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase (RFC 7230: header names are
    case-insensitive), so lookups never need .lower() at call sites.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    # Filled in by the Router after matching
    path_params: Dict[str, Any] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    _body_json: Any = field(default=_UNPARSED, repr=False)
    _cookies: Optional[Dict[str, str]] = field(default=None, repr=False)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters ("application/json; charset=utf-8" → "application/json")."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def cookie_header(self) -> str:
        """Raw Cookie header ("" when absent)."""
        return self.headers.get("cookie", "")

    @property
    def cookies(self) -> Dict[str, str]:
        """Decoded cookies from the Cookie header, parsed once and cached."""
        if self._cookies is None:
            self._cookies = parse_cookies(self.cookie_header)
        return self._cookies

    @property
    def has_body(self) -> bool:
        return bool(self.body.strip())

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON, or None for an empty body.

        Lazy and cached: the Router touches this once per request (eager
        parse), handlers then read the cached value.

        Raises:
            HTTPParseError: If the body is not valid UTF-8 JSON.
        """
        if self._body_json is _UNPARSED:
            if not self.has_body:
                self._body_json = None
            else:
                try:
                    self._body_json = json.loads(self.body.decode("utf-8"))
                # JSONDecodeError and UnicodeDecodeError are ValueErrors, as is the
                # int digit limit; deep nesting raises RecursionError
                except (ValueError, RecursionError) as e:
                    raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless told "close";
        HTTP/1.0 closes it unless told "keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    =========================================================================
    PARSING ALGORITHM
    =========================================================================

        1. Reject oversized input (413)
        2. Split at the first \\r\\n\\r\\n into header section and body
        3. Parse the request line: METHOD SP URI SP VERSION
        4. Parse header lines into a lowercase dict
        5. Truncate the body to exactly Content-Length bytes

    =========================================================================
    """

    VALID_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # Request smuggling guard: the body must be exactly as long as announced
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Parse "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            Tuple of (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        if ".." in path:
            raise HTTPParseError("Invalid path: contains ..")

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict keyed by lowercase name.

        - Obsolete line folding (leading whitespace) continues the
          previous header.
        - Repeated headers are joined with ", " (RFC 7230 §3.2.2), except
          Cookie, whose pairs are joined with "; " so the cookie codec
          still sees one well-formed list.
        - Lines without a colon are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                separator = "; " if name == "cookie" else ", "
                headers[name] += separator + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """One-shot parse with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
