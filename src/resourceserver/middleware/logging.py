"""
Access logging.

One line per request on the "resourceserver.access" logger, either
Apache-style text or one JSON object:

    127.0.0.1 - - [18/Oct/2026:12:00:00 +0000] "POST /users" 201 52 1.84ms
    {"request_id": "3f9c2a1b", "method": "POST", "path": "/users", ...}

The request id is echoed back in X-Request-ID so a client report can be
matched to the server log.
"""

from dataclasses import dataclass, asdict
from typing import Iterable, Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("resourceserver.access")


@dataclass
class RequestLog:
    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Args:
        log_format: "text" or "json"
        include_request_id: Add X-Request-ID to every response
        log_level: Level for access lines
        skip_paths: Paths that are served but not logged
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000

        if request.path not in self.skip_paths:
            entry = RequestLog(
                request_id=request_id,
                method=request.method,
                path=request.path,
                client_ip=request.client_address[0] or "-",
                user_agent=request.user_agent or "-",
                status_code=int(response.status),
                content_length=len(response.body) if response.status.allows_body else 0,
                duration_ms=duration_ms,
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
            )
            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id
        return response
