"""
=============================================================================
HTTP STATUS CODES (RFC 7231)
=============================================================================

The status codes this server can answer with, plus their reason phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK, 201 Created, 204 No Content                       │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  3xx   │ 304 Not Modified (conditional GET, no body)               │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400, 401, 403, 404, 405, 408, 409, 413                    │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500, 503, 505                                             │
    └────────┴───────────────────────────────────────────────────────────┘

Codes outside this table are never produced by the router or the
transport, so they are not listed.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain ints:

        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    OK = 200
    CREATED = 201
    NO_CONTENT = 204                # DELETE success, CORS preflight

    NOT_MODIFIED = 304              # Cached representation is still valid

    BAD_REQUEST = 400               # Missing fields, malformed JSON
    UNAUTHORIZED = 401              # No session / bad credentials
    FORBIDDEN = 403                 # Wrong auth scheme / bad token
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405        # Only with strict method routing
    REQUEST_TIMEOUT = 408
    CONFLICT = 409                  # Email already exists
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503       # Thread pool saturated
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.1 304 Not Modified
                     ─── ────────────
                      │       └── phrase
                      └────────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx."""
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """204 and 304 responses never carry a body (RFC 7230 §3.3.3)."""
        return self not in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
