"""
In-memory state owned by the server: users and sessions.

Each store guards its own data with its own lock. Nothing is persisted;
a restart starts over from the seed users and no sessions.
"""

from .users import User, UserStore, EMAIL_CONFLICT
from .sessions import Session, SessionStore, SESSION_COOKIE

__all__ = [
    "User",
    "UserStore",
    "EMAIL_CONFLICT",
    "Session",
    "SessionStore",
    "SESSION_COOKIE",
]
