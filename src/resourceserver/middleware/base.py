"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps the Router for concerns that apply to every request.
Each one receives the request and `next`, and may act before and after
calling it:

    pipeline.add(LoggingMiddleware())   # first added = outermost
    pipeline.add(CORSMiddleware())

        ┌───────────────────────────────────────────────┐
        │ LoggingMiddleware                             │
        │  ┌─────────────────────────────────────────┐  │
        │  │ CORSMiddleware                          │  │
        │  │  ┌───────────────────────────────────┐  │  │
        │  │  │ router.handle                     │  │  │
        │  │  └───────────────────────────────────┘  │  │
        │  └─────────────────────────────────────────┘  │
        └───────────────────────────────────────────────┘

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.headers["X-Handled"] = "1"
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Return next(request), possibly modified, or a short-circuit response."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware, composed around a final handler by wrap()."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Compose the pipeline around `handler`.

        Built inside-out: the last middleware wraps the handler, the
        first middleware wraps everything.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
