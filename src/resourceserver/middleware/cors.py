"""
CORS headers on ordinary responses.

Preflight OPTIONS requests are answered by the Router before matching
(see http/cors.py); this middleware adds Access-Control-Allow-Origin and
friends to everything else, error responses included, so browsers can
read the {"error": ...} body too.
"""

from typing import Optional

from .base import Middleware, NextHandler
from ..http.cors import CORSConfig, add_cors_headers
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


class CORSMiddleware(Middleware):

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)
        # Preflight answers already carry the full header set
        if request.method != "OPTIONS":
            add_cors_headers(response, request.get_header("origin"), self.config)
        return response
