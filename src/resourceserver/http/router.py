"""
=============================================================================
URL ROUTER / DISPATCHER
=============================================================================

The Router is the only component that turns handler results into HTTP.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     REQUEST STATE MACHINE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Received ──► OPTIONS? ──yes──► 204 + CORS headers (preflight)    │
    │       │                                                             │
    │       ▼                                                             │
    │   match(method, path)                                               │
    │       │                                                             │
    │       ├── Unmatched ──► 404 {"error": "Not Found"}                 │
    │       │                 (405 + Allow when strict_methods=True)      │
    │       ▼                                                             │
    │   Matched ──► POST/PUT/PATCH? parse JSON body eagerly               │
    │       │            └── malformed ──► 400 {"error": "Invalid JSON"}  │
    │       ▼                                                             │
    │   handler(request)                                                  │
    │       ├── returns Outcome ──► render() ──► 200/201/204/304          │
    │       ├── raises AppError ──► {"error": message}, err.status        │
    │       └── raises anything else ──► logged, 500 generic message     │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTE PATTERNS
=============================================================================

    /users                literal, looked up in a dict before any regex
    /users/:id<int>       ^/users/(?P<id>[0-9]+)$  → path_params["id"] = 3
    /files/:name          ^/files/(?P<name>[^/]+)$ → path_params["name"] = "a"

Typed segments only match their converter's pattern, so /users/abc does
not match /users/:id<int> and falls through to 404.

Matching order: literal routes first, then parametrized routes in
registration order (first match wins).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, Any, List, Tuple
import logging
import re

from ..errors import AppError, InternalError, NotFoundError, ParseError
from .cors import CORSConfig, preflight_response
from .outcomes import (
    Outcome, Success, Created, Representation, Attachment, NoContent, NotModified,
)
from .request import HTTPRequest, HTTPParseError
from .response import (
    HTTPResponse, ResponseBuilder, DEFAULT_SERVER_NAME,
    error_response, method_not_allowed,
)
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], Outcome]

# Converters for typed path parameters: name → (regex, python type)
CONVERTERS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "int": (r"[0-9]+", int),   # ASCII digits only
    "str": (r"[^/]+", str),
}

PARAM_PATTERN = re.compile(r"^:(?P<name>\w+)(?:<(?P<converter>\w+)>)?$")


@dataclass
class Route:
    """A URL pattern + method bound to a handler."""

    path: str
    method: str
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _converters: Dict[str, Callable[[str], Any]] = field(default_factory=dict, repr=False)

    @property
    def is_literal(self) -> bool:
        return self._pattern is None


@dataclass
class RouteMatch:
    """A matched route plus its converted path parameters."""
    route: Route
    params: Dict[str, Any]


class Router:
    """
    Method + path dispatcher.

        router = Router()

        def get_user(request):
            return Success(store.get(request.path_params["id"]).to_dict())

        router.add_route("/users/:id<int>", get_user, "GET", name="get_user")

        router.url_for("get_user", id=3)   # "/users/3"
    """

    BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

    def __init__(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        strict_methods: bool = False,
        cors: Optional[CORSConfig] = None,
    ):
        """
        Args:
            server_name: Value of the Server header on every response
            strict_methods: Answer 405 + Allow instead of 404 when the path
                            exists under another method
            cors: Policy for preflight answers
        """
        self.server_name = server_name
        self.strict_methods = strict_methods
        self.cors = cors or CORSConfig()
        self._routes: List[Route] = []
        self._literal: Dict[Tuple[str, str], Route] = {}
        self._named_routes: Dict[str, Route] = {}

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str = "GET",
        name: Optional[str] = None,
    ) -> Route:
        """Register `handler` for (method, path). Returns the Route."""
        path = self._normalize(path)
        pattern, converters = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper(),
            handler=handler,
            name=name,
            _pattern=pattern,
            _converters=converters,
        )

        self._routes.append(route)
        if route.is_literal:
            self._literal[(route.method, path)] = route
        if name:
            self._named_routes[name] = route
        return route

    def _compile_pattern(
        self,
        path: str
    ) -> Tuple[Optional[re.Pattern], Dict[str, Callable[[str], Any]]]:
        """
        Compile a route path to one anchored regex.

        Returns (None, {}) for literal paths, which never need a regex.

            "/users/:id<int>" → ^/users/(?P<id>[0-9]+)$ , {"id": int}
        """
        converters: Dict[str, Callable[[str], Any]] = {}
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue
            regex_parts.append("/")

            param = PARAM_PATTERN.match(segment)
            if param:
                name = param.group("name")
                converter = param.group("converter") or "str"
                if converter not in CONVERTERS:
                    raise ValueError(f"Unknown converter <{converter}> in {path}")
                regex, to_python = CONVERTERS[converter]
                converters[name] = to_python
                regex_parts.append(f"(?P<{name}>{regex})")
            else:
                regex_parts.append(re.escape(segment))

        if not converters:
            return None, {}

        regex_parts.append("$")
        return re.compile("".join(regex_parts)), converters

    @staticmethod
    def _normalize(path: str) -> str:
        """Leading slash, no trailing slash: "users/" → "/users"."""
        return "/" + path.strip("/") if path != "/" else "/"

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """Find the route for (method, path); None when unmatched."""
        method = method.upper()
        path = self._normalize(path)

        route = self._literal.get((method, path))
        if route:
            return RouteMatch(route=route, params={})

        for route in self._routes:
            if route.is_literal or route.method != method:
                continue
            found = route._pattern.match(path)
            if found:
                params = {
                    name: route._converters[name](value)
                    for name, value in found.groupdict().items()
                }
                return RouteMatch(route=route, params=params)

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for `path` under any route (for the Allow header)."""
        path = self._normalize(path)
        methods = set()
        for route in self._routes:
            if route.is_literal:
                if route.path == path:
                    methods.add(route.method)
            elif route._pattern.match(path):
                methods.add(route.method)
        return sorted(methods)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run one request through the state machine above."""
        if request.method == "OPTIONS":
            return self._finish(preflight_response(request, self.cors))

        match = self.match(request.method, request.path)
        if match is None:
            if self.strict_methods:
                allowed = self.get_allowed_methods(request.path)
                if allowed:
                    return self._finish(method_not_allowed(allowed))
            return self._finish(self._error_response(NotFoundError()))

        request.path_params = match.params

        try:
            if request.method in self.BODY_METHODS:
                self._parse_body(request)
            outcome = match.route.handler(request)
            response = self.render(outcome)
        except AppError as e:
            if e.status >= 500:
                logger.error(f"{request.method} {request.path} failed: {e.message}")
            response = self._error_response(e)
        except Exception:
            # Full detail stays in the server log; the client gets a generic 500
            logger.exception(f"Unhandled error in {request.method} {request.path}")
            response = self._error_response(InternalError())

        return self._finish(response)

    def _parse_body(self, request: HTTPRequest) -> None:
        try:
            request.json
        except HTTPParseError as e:
            logger.debug(f"Rejecting body for {request.method} {request.path}: {e}")
            raise ParseError()

    def render(self, outcome: Outcome) -> HTTPResponse:
        """Map a handler outcome onto status, headers and body."""
        builder = ResponseBuilder(self.server_name)

        if isinstance(outcome, Created):
            builder.status(HTTPStatus.CREATED).json(outcome.body)
            if outcome.location:
                builder.header("Location", outcome.location)
        elif isinstance(outcome, Success):
            builder.status(HTTPStatus.OK).json(outcome.body)
        elif isinstance(outcome, Representation):
            builder.status(HTTPStatus.OK).text(
                outcome.content, f"{outcome.media_type}; charset=utf-8"
            )
        elif isinstance(outcome, Attachment):
            builder.status(HTTPStatus.OK).attachment(
                outcome.content, outcome.filename, outcome.media_type
            )
        elif isinstance(outcome, NoContent):
            builder.status(HTTPStatus.NO_CONTENT)
        elif isinstance(outcome, NotModified):
            builder.status(HTTPStatus.NOT_MODIFIED)
            if outcome.etag:
                builder.etag(outcome.etag)
        else:
            raise TypeError(f"Handler returned {type(outcome).__name__}, not an Outcome")

        builder.headers(outcome.headers)
        builder.cookies(outcome.cookies)
        return builder.build()

    def _error_response(self, error: AppError) -> HTTPResponse:
        response = error_response(HTTPStatus(error.status), error.message)
        response.headers.update(error.headers)
        return response

    def _finish(self, response: HTTPResponse) -> HTTPResponse:
        response.headers.setdefault("Server", self.server_name)
        return response

    # =========================================================================
    # UTILITIES
    # =========================================================================

    def url_for(self, name: str, **params: Any) -> Optional[str]:
        """
        Reverse routing: url_for("get_user", id=3) → "/users/3".

        Returns None for unknown names.
        """
        route = self._named_routes.get(name)
        if not route:
            return None

        segments = []
        for segment in route.path.split("/"):
            param = PARAM_PATTERN.match(segment)
            if param:
                segments.append(str(params[param.group("name")]))
            else:
                segments.append(segment)
        return "/".join(segments)

    def routes(self) -> List[Route]:
        return list(self._routes)

    def print_routes(self) -> None:
        """Startup banner helper."""
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self._routes:
            print(f"  {route.method:8} {route.path}")
        print("-" * 60)
