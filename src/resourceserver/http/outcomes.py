"""
=============================================================================
HANDLER OUTCOMES
=============================================================================

Handlers never pick status codes. They return one of these values (or
raise an errors.AppError) and the Router turns it into an HTTPResponse:

    ┌────────────────┬────────┬─────────────────────────────────────────┐
    │ Outcome        │ Status │ Body                                    │
    ├────────────────┼────────┼─────────────────────────────────────────┤
    │ Success        │  200   │ JSON                                    │
    │ Created        │  201   │ JSON, plus Location                     │
    │ Representation │  200   │ Text in a negotiated media type         │
    │ Attachment     │  200   │ Bytes + Content-Disposition: attachment │
    │ NoContent      │  204   │ (none)                                  │
    │ NotModified    │  304   │ (none), ETag repeated                   │
    └────────────────┴────────┴─────────────────────────────────────────┘

Every outcome can carry extra headers and Set-Cookie directives.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Outcome:
    headers: Dict[str, str] = field(default_factory=dict, kw_only=True)
    cookies: List[str] = field(default_factory=list, kw_only=True)


@dataclass
class Success(Outcome):
    body: Any = None


@dataclass
class Created(Outcome):
    body: Any = None
    location: str = ""


@dataclass
class Representation(Outcome):
    content: str = ""
    media_type: str = "text/plain"


@dataclass
class Attachment(Outcome):
    content: bytes = b""
    filename: str = "download"
    media_type: str = "application/octet-stream"


@dataclass
class NoContent(Outcome):
    pass


@dataclass
class NotModified(Outcome):
    etag: str = ""
