"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw bytes and the resource handlers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       bytes → HTTPRequest (headers, cookies, lazy JSON)  │
    │ response.py      HTTPResponse / ResponseBuilder → bytes             │
    │ router.py        (method, path) → handler, Outcome → HTTPResponse   │
    │ outcomes.py      what handlers return (Success, Created, ...)       │
    │ cookies.py       Cookie header codec, Set-Cookie directives         │
    │ caching.py       entity tags and If-None-Match freshness            │
    │ negotiation.py   Accept header → media type                         │
    │ cors.py          preflight answers and Access-Control-* headers    │
    │ status_codes.py  HTTPStatus with reason phrases                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    method_not_allowed,
)
from .router import Router, Route, RouteMatch
from .outcomes import (
    Outcome,
    Success,
    Created,
    Representation,
    Attachment,
    NoContent,
    NotModified,
)
from .cookies import parse_cookies, serialize_cookie, expire_cookie
from .caching import compute_tag, is_fresh
from .negotiation import select_media_type
from .cors import CORSConfig
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "method_not_allowed",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    # Handler outcomes
    "Outcome",
    "Success",
    "Created",
    "Representation",
    "Attachment",
    "NoContent",
    "NotModified",

    # Cookies, caching, negotiation, CORS
    "parse_cookies",
    "serialize_cookie",
    "expire_cookie",
    "compute_tag",
    "is_fresh",
    "select_media_type",
    "CORSConfig",

    # Status codes
    "HTTPStatus",
]
