"""
=============================================================================
CORS (Cross-Origin Resource Sharing)
=============================================================================

Before a "non-simple" cross-origin request (PUT, PATCH, DELETE, a JSON
POST, anything with custom headers) the browser sends a preflight:

    OPTIONS /users/1 HTTP/1.1
    Origin: https://app.example
    Access-Control-Request-Method: PATCH

    HTTP/1.1 204 No Content
    Access-Control-Allow-Origin: *
    Access-Control-Allow-Methods: GET, POST, PUT, PATCH, DELETE, OPTIONS
    Access-Control-Allow-Headers: Content-Type, Authorization, If-None-Match
    Access-Control-Max-Age: 86400

The Router answers preflights itself, before route matching, so OPTIONS
never reaches a handler and never 404s. CORSMiddleware reuses
add_cors_headers() to decorate every other response.

=============================================================================
"""

from dataclasses import dataclass
from typing import List, Optional

from .request import HTTPRequest
from .response import HTTPResponse, ResponseBuilder
from .status_codes import HTTPStatus


@dataclass
class CORSConfig:
    """
    CORS policy.

    Development (default):  CORSConfig()
    Production:             CORSConfig(allow_origins=["https://app.example"],
                                       allow_credentials=True)
    """

    allow_origins: Optional[List[str]] = None
    allow_methods: Optional[List[str]] = None
    allow_headers: Optional[List[str]] = None
    expose_headers: Optional[List[str]] = None
    # Cookies cross origins only with credentials; never combined with a literal "*"
    allow_credentials: bool = False
    max_age: int = 86400

    def __post_init__(self):
        if self.allow_origins is None:
            self.allow_origins = ["*"]
        if self.allow_methods is None:
            self.allow_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
        if self.allow_headers is None:
            self.allow_headers = ["Content-Type", "Authorization", "If-None-Match"]
        if self.expose_headers is None:
            self.expose_headers = ["ETag", "Location", "X-Request-ID"]


def add_cors_headers(response: HTTPResponse, origin: str, config: CORSConfig) -> None:
    """
    Add Access-Control-* headers to a response.

    "*" in allow_origins answers "*", or echoes the origin when credentials
    are allowed (browsers reject "*" with credentials). Otherwise the origin
    must be listed; unlisted origins get no CORS headers at all and the
    browser blocks the response.
    """
    if "*" in config.allow_origins:
        if config.allow_credentials and origin:
            allowed_origin = origin
        else:
            allowed_origin = "*"
    elif origin in config.allow_origins:
        allowed_origin = origin
    else:
        return

    response.headers["Access-Control-Allow-Origin"] = allowed_origin
    if config.allow_credentials:
        response.headers["Access-Control-Allow-Credentials"] = "true"
    if config.expose_headers:
        response.headers["Access-Control-Expose-Headers"] = ", ".join(config.expose_headers)

    if allowed_origin != "*":
        vary = response.headers.get("Vary", "")
        if "Origin" not in vary:
            response.headers["Vary"] = f"{vary}, Origin".lstrip(", ")


def preflight_response(request: HTTPRequest, config: CORSConfig) -> HTTPResponse:
    """Empty 204 carrying the full permission set. Sent unconditionally."""
    response = ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()
    add_cors_headers(response, request.get_header("origin"), config)
    response.headers["Access-Control-Allow-Methods"] = ", ".join(config.allow_methods)
    response.headers["Access-Control-Allow-Headers"] = ", ".join(config.allow_headers)
    response.headers["Access-Control-Max-Age"] = str(config.max_age)
    return response
