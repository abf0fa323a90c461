"""
=============================================================================
APPLICATION WIRING
=============================================================================

create_app() builds the whole resource layer with no sockets involved:

    ┌──────────────┐    ┌───────────────┐    ┌──────────────────────────┐
    │  UserStore   │◄───│ UserHandlers  │    │                          │
    │              │◄───│ ResourceHdlrs │◄───│  Router (routes below)   │
    ├──────────────┤    ├───────────────┤    │                          │
    │ SessionStore │◄───│ SessionHdlrs  │◄───│                          │
    └──────────────┘    │ TokenHandlers │◄───│                          │
                        └───────────────┘    └────────────▲─────────────┘
                                                          │
                               Logging ► CORS ► router.handle (pipeline)

Application.handle(request) is the entry point the transport calls; tests
call it directly with hand-built HTTPRequest objects.

=============================================================================
"""

from datetime import datetime
from typing import Callable, Optional
import logging
import secrets

from .config import AppConfig
from .handlers import ResourceHandlers, SessionHandlers, TokenHandlers, UserHandlers
from .http.cors import CORSConfig
from .http.request import HTTPRequest
from .http.response import DEFAULT_SERVER_NAME, HTTPResponse
from .http.router import Router
from .middleware import (
    CORSMiddleware, LoggingMiddleware, Middleware, MiddlewarePipeline, NextHandler,
)
from .stores import SessionStore, UserStore


logger = logging.getLogger(__name__)


class Application:
    """Stores + router + middleware, ready to handle parsed requests."""

    def __init__(
        self,
        router: Router,
        users: UserStore,
        sessions: SessionStore,
        config: AppConfig,
    ):
        self.router = router
        self.users = users
        self.sessions = sessions
        self.config = config
        self._pipeline = MiddlewarePipeline()
        self._handler: Optional[NextHandler] = None

    def use(self, middleware: Middleware) -> "Application":
        self._pipeline.add(middleware)
        self._handler = None
        return self

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if self._handler is None:
            self._handler = self._pipeline.wrap(self.router.handle)
        return self._handler(request)

    __call__ = handle


def register_routes(
    router: Router,
    users: UserHandlers,
    sessions: SessionHandlers,
    tokens: TokenHandlers,
    resources: ResourceHandlers,
) -> Router:
    """The route table. Literal paths are listed before parametrized ones."""
    router.add_route("/users", users.list, "GET", name="list_users")
    router.add_route("/users", users.create, "POST", name="create_user")
    router.add_route("/users/:id<int>", users.get, "GET", name="get_user")
    router.add_route("/users/:id<int>", users.replace, "PUT", name="replace_user")
    router.add_route("/users/:id<int>", users.patch, "PATCH", name="patch_user")
    router.add_route("/users/:id<int>", users.delete, "DELETE", name="delete_user")

    router.add_route("/login", sessions.login, "POST", name="login")
    router.add_route("/logout", sessions.logout, "POST", name="logout")
    router.add_route("/session", sessions.session, "GET", name="session")
    router.add_route("/profile", sessions.profile, "GET", name="profile")
    router.add_route("/preferences", sessions.preferences, "POST", name="preferences")

    router.add_route("/protected", tokens.protected, "GET", name="protected")

    router.add_route("/cache", resources.cache, "GET", name="cache")
    router.add_route("/download", resources.download, "GET", name="download")
    return router


def create_app(
    config: Optional[AppConfig] = None,
    server_name: str = DEFAULT_SERVER_NAME,
    cors: Optional[CORSConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
    random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    access_log: Optional[str] = "text",
) -> Application:
    """
    Build a ready-to-serve Application.

    Args:
        config: Credentials, lifetimes, seed users
        server_name: Server header value
        cors: CORS policy for preflights and responses
        clock: Injected time source for stores (tests freeze it)
        random_bytes: Injected entropy for session ids
        access_log: "text", "json", or None to skip LoggingMiddleware
    """
    config = config or AppConfig()
    config.validate()
    cors = cors or CORSConfig()

    users = UserStore(seed=config.seed_users, clock=clock)
    sessions = SessionStore(ttl=config.session_ttl, clock=clock, random_bytes=random_bytes)

    router = Router(server_name=server_name, strict_methods=config.strict_methods, cors=cors)
    register_routes(
        router,
        UserHandlers(users),
        SessionHandlers(sessions, config),
        TokenHandlers(config),
        ResourceHandlers(users, cache_max_age=config.cache_max_age),
    )

    app = Application(router, users, sessions, config)
    if access_log:
        app.use(LoggingMiddleware(log_format=access_log))
    app.use(CORSMiddleware(cors))

    logger.debug(f"Application created with {len(router.routes())} routes")
    return app
