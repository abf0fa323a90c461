"""
=============================================================================
SESSION & TOKEN HANDLERS
=============================================================================

Cookie sessions:

    POST /login        {"username", "password"}  → 200 + sessionId, username cookies
    GET  /session      session info              → 200 | 401
    GET  /profile      user view of the session  → 200 | 401
    POST /preferences  {"theme": "dark", ...}    → 200 merged data (+ theme cookie)
    POST /logout       destroy + expire cookies  → 200 always

Bearer token:

    GET /protected     Authorization: Bearer <token>
                       missing header        → 401 + WWW-Authenticate
                       other scheme or token → 403

Every protected handler starts by resolving the session from the Cookie
header. An unknown id, a destroyed session and an expired one all give
the same 401, so a client cannot probe which ids once existed.

=============================================================================
"""

import hmac
import logging
from typing import Optional

from ..config import AppConfig
from ..errors import AuthError, ValidationError
from ..http.cookies import expire_cookie, serialize_cookie
from ..http.outcomes import Outcome, Success
from ..http.request import HTTPRequest
from ..stores.sessions import SESSION_COOKIE, Session, SessionStore
from .users import require_object


logger = logging.getLogger(__name__)

USERNAME_COOKIE = "username"
THEME_COOKIE = "theme"


def _matches(supplied: str, expected: str) -> bool:
    """Constant-time string comparison."""
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


class SessionHandlers:
    """Login/logout and everything that requires a live session."""

    def __init__(self, sessions: SessionStore, config: Optional[AppConfig] = None):
        self.sessions = sessions
        self.config = config or AppConfig()

    def require_session(self, request: HTTPRequest) -> Session:
        session = self.sessions.resolve(request.cookie_header)
        if session is None:
            raise AuthError("Not authenticated")
        return session

    # =========================================================================
    # LOGIN / LOGOUT
    # =========================================================================

    def login(self, request: HTTPRequest) -> Outcome:
        body = require_object(request)
        username = body.get("username")
        password = body.get("password")
        if not isinstance(username, str) or not isinstance(password, str) \
                or not username or not password:
            raise ValidationError("Username and password are required")

        user_ok = _matches(username, self.config.admin_user)
        password_ok = _matches(password, self.config.admin_password)
        if not (user_ok and password_ok):
            logger.warning(f"Failed login for {username!r} from {request.client_address[0]}")
            raise AuthError("Invalid credentials")

        session_id = self.sessions.create(username)
        max_age = self.config.session_max_age
        return Success(
            {"message": "Login successful", "username": username},
            cookies=[
                serialize_cookie(SESSION_COOKIE, session_id, max_age=max_age, http_only=True),
                serialize_cookie(USERNAME_COOKIE, username, max_age=max_age),
            ],
        )

    def logout(self, request: HTTPRequest) -> Outcome:
        """Idempotent: works with or without a (valid) session cookie."""
        self.sessions.destroy(request.cookies.get(SESSION_COOKIE))
        return Success(
            {"message": "Logged out"},
            cookies=[
                expire_cookie(SESSION_COOKIE, http_only=True),
                expire_cookie(USERNAME_COOKIE),
            ],
        )

    # =========================================================================
    # SESSION-PROTECTED
    # =========================================================================

    def session(self, request: HTTPRequest) -> Outcome:
        session = self.require_session(request)
        return Success({"authenticated": True, **session.to_dict()})

    def profile(self, request: HTTPRequest) -> Outcome:
        session = self.require_session(request)
        return Success({
            "username": session.username,
            "preferences": session.data,
            "memberSince": session.created_at.isoformat(),
        })

    def preferences(self, request: HTTPRequest) -> Outcome:
        session = self.require_session(request)
        fields = require_object(request)

        merged = self.sessions.merge_data(session.session_id, fields)
        if merged is None:
            # Expired between resolve and merge
            raise AuthError("Not authenticated")

        cookies = []
        theme = fields.get(THEME_COOKIE)
        if isinstance(theme, str) and theme:
            cookies.append(
                serialize_cookie(THEME_COOKIE, theme, max_age=self.config.theme_max_age)
            )
        return Success(
            {"message": "Preferences updated", "preferences": merged.data},
            cookies=cookies,
        )


class TokenHandlers:
    """Routes guarded by a static bearer token instead of a session."""

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or AppConfig()

    def protected(self, request: HTTPRequest) -> Outcome:
        header = request.get_header("authorization")
        if not header:
            raise AuthError(
                "Authorization required",
                headers={"WWW-Authenticate": 'Bearer realm="api"'},
            )

        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer":
            raise AuthError("Invalid authorization scheme", forbidden=True)
        if not _matches(token.strip(), self.config.api_token):
            logger.warning(f"Rejected bearer token from {request.client_address[0]}")
            raise AuthError("Invalid token", forbidden=True)

        return Success({"message": "Access granted"})
