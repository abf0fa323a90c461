"""
=============================================================================
SESSION STORE
=============================================================================

HTTP is stateless; sessions are how the server remembers who logged in.

    POST /login ─────► create("admin") ─────► "5f2a9c..."  (64 hex chars)
                                                   │
        Set-Cookie: sessionId=5f2a9c...; HttpOnly  │
                                                   ▼
    GET /profile ────► resolve("sessionId=5f2a9c...") ─────► Session
                       (unknown, destroyed or expired id → None → 401)

The session id is the only credential. It comes from a cryptographic
random source (32 bytes) so it cannot be guessed, and the cookie that
carries it is HttpOnly so page scripts cannot read it.

Expiry: the browser drops the cookie after Max-Age, but a copied cookie
would otherwise stay valid forever. With `ttl` set, sessions older than
`ttl` seconds are treated as absent and evicted on lookup.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
import logging
import secrets
import threading

from ..http.cookies import parse_cookies
from .users import Clock, utc_now


logger = logging.getLogger(__name__)

SESSION_COOKIE = "sessionId"
SESSION_ID_BYTES = 32


@dataclass
class Session:
    session_id: str
    username: str
    created_at: datetime
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Client-facing view. The id itself stays in the HttpOnly cookie."""
        return {
            "username": self.username,
            "createdAt": self.created_at.isoformat(),
            "data": dict(self.data),
        }


class SessionStore:
    """
    Thread-safe in-memory sessions.

    Args:
        ttl: Seconds a session stays valid; None disables server-side expiry
        clock: Returns the current aware UTC datetime
        random_bytes: Source of id entropy, called with a byte count
    """

    def __init__(
        self,
        ttl: Optional[float] = 3600,
        clock: Optional[Clock] = None,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        self.ttl = ttl
        self._clock = clock or utc_now
        self._random_bytes = random_bytes
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, username: str) -> str:
        """Start a session for `username` and return its id."""
        with self._lock:
            session_id = self._random_bytes(SESSION_ID_BYTES).hex()
            while session_id in self._sessions:
                session_id = self._random_bytes(SESSION_ID_BYTES).hex()
            self._sessions[session_id] = Session(
                session_id=session_id,
                username=username,
                created_at=self._clock(),
            )
        logger.info(f"Session created for {username}")
        return session_id

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """The live session for `session_id`, or None."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._is_expired(session):
                del self._sessions[session_id]
                logger.info(f"Session for {session.username} expired")
                return None
            return self._copy(session)

    def resolve(self, cookie_header: Optional[str]) -> Optional[Session]:
        """Look up the session named by the sessionId cookie in a raw Cookie header."""
        return self.get(parse_cookies(cookie_header).get(SESSION_COOKIE))

    def merge_data(self, session_id: str, fields: Dict[str, Any]) -> Optional[Session]:
        """
        Shallow-merge `fields` into the session's data.

        Existing keys not in `fields` are kept. Returns None if the
        session is gone.
        """
        with self._lock:
            if self.get(session_id) is None:
                return None
            session = self._sessions[session_id]
            session.data.update(fields)
            return self._copy(session)

    def destroy(self, session_id: Optional[str]) -> None:
        """Remove a session. Unknown or missing ids are a no-op."""
        if not session_id:
            return
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info(f"Session destroyed for {session.username}")

    def purge_expired(self) -> int:
        """Drop every expired session. Returns how many were removed."""
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if self._is_expired(s)]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.debug(f"Purged {len(expired)} expired sessions")
        return len(expired)

    def _is_expired(self, session: Session) -> bool:
        if self.ttl is None:
            return False
        return self._clock() - session.created_at >= timedelta(seconds=self.ttl)

    @staticmethod
    def _copy(session: Session) -> Session:
        return Session(
            session_id=session.session_id,
            username=session.username,
            created_at=session.created_at,
            data=dict(session.data),
        )
