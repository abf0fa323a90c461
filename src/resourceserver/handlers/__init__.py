"""
Request handlers, one class per resource family.

Handlers read the request, call the stores, and return an Outcome (or
raise an AppError). They never build HTTP responses themselves.
"""

from .users import UserHandlers
from .auth import SessionHandlers, TokenHandlers
from .resources import ResourceHandlers

__all__ = [
    "UserHandlers",
    "SessionHandlers",
    "TokenHandlers",
    "ResourceHandlers",
]
