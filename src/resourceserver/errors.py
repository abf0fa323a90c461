"""
=============================================================================
APPLICATION ERRORS
=============================================================================

Every failure a handler can produce is one of these exception types.
Handlers and stores RAISE them; the Router is the only place that turns
them into HTTP responses.

    ┌──────────────────┬────────┬──────────────────────────────────────┐
    │ Exception        │ Status │ Meaning                              │
    ├──────────────────┼────────┼──────────────────────────────────────┤
    │ ValidationError  │  400   │ Missing / malformed required fields  │
    │ ParseError       │  400   │ Request body is not valid JSON       │
    │ AuthError        │  401   │ No session, bad credentials          │
    │ AuthError(403)   │  403   │ Wrong auth scheme or invalid token   │
    │ NotFoundError    │  404   │ Unknown id or unmatched route        │
    │ ConflictError    │  409   │ Uniqueness violation                 │
    │ InternalError    │  500   │ Anything else (detail logged only)   │
    └──────────────────┴────────┴──────────────────────────────────────┘

=============================================================================
"""


class AppError(Exception):
    """
    Base class for errors that map onto an HTTP status.

    Attributes:
        message: Client-facing error text (goes into {"error": message})
        status: HTTP status the Router answers with
    """

    status: int = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str = None, status: int = None, headers: dict = None):
        self.message = message or self.default_message
        if status is not None:
            self.status = status
        # Extra response headers, e.g. WWW-Authenticate on a 401
        self.headers = headers or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed required fields."""
    status = 400
    default_message = "Bad Request"


class ParseError(AppError):
    """Request body could not be parsed. Raised by the Router, never by handlers."""
    status = 400
    default_message = "Invalid JSON body"


class AuthError(AppError):
    """
    Authentication failure.

    401 by default. Pass forbidden=True for "we know what you sent and it
    is not acceptable" (wrong scheme, bad bearer token), which is a 403.
    """
    status = 401
    default_message = "Unauthorized"

    def __init__(self, message: str = None, forbidden: bool = False, headers: dict = None):
        super().__init__(
            message or ("Forbidden" if forbidden else None),
            403 if forbidden else None,
            headers,
        )
        self.forbidden = forbidden


class NotFoundError(AppError):
    """Unknown resource id or unmatched route."""
    status = 404
    default_message = "Not Found"


class ConflictError(AppError):
    """Uniqueness violation."""
    status = 409
    default_message = "Conflict"


class InternalError(AppError):
    """Uncaught handler failure. The message is always generic."""
    status = 500
    default_message = "Internal Server Error"
