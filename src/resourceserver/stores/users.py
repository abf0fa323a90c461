"""
=============================================================================
USER STORE
=============================================================================

In-memory User collection with store-assigned ids.

    ┌───────────────────────────────────────────────────────────────┐
    │  _users (dict, insertion ordered)        _next_id = 4         │
    │  ┌────┬────────┬───────────────────┐     version  = 3         │
    │  │ 1  │ Alice  │ alice@example.com │     last_modified = t3   │
    │  │ 2  │ Bob    │ bob@example.com   │                          │
    │  │ 3  │ Carol  │ carol@example.com │  ← POST /users           │
    │  └────┴────────┴───────────────────┘                          │
    └───────────────────────────────────────────────────────────────┘

- Ids are monotonic and never reused: deleting 3 and creating again
  yields 4.
- Email is unique across all users. The check and the write happen
  under the same lock, so two concurrent POSTs with the same email
  cannot both succeed.
- Every mutation bumps `version` and stamps `last_modified`; the
  /cache representation derives its ETag from them.
- Callers only ever see copies. Mutating a returned User does nothing
  to the store.

=============================================================================
"""

from dataclasses import dataclass, replace as dc_replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging
import threading

from ..errors import ConflictError, NotFoundError


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

EMAIL_CONFLICT = "Email already exists"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    id: int
    name: str
    email: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}


class UserStore:
    """
    Thread-safe User collection.

    Args:
        seed: (name, email) pairs inserted at startup with ids 1..n
        clock: Returns the current aware UTC datetime
    """

    def __init__(
        self,
        seed: Optional[Iterable[Tuple[str, str]]] = None,
        clock: Optional[Clock] = None,
    ):
        self._clock = clock or utc_now
        self._lock = threading.RLock()
        self._users: Dict[int, User] = {}
        self._next_id = 1
        self._version = 0
        self._last_modified = self._clock()

        for name, email in seed or ():
            self._insert(name, email)

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def last_modified(self) -> datetime:
        with self._lock:
            return self._last_modified

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def list(self) -> List[User]:
        """All users in insertion order."""
        with self._lock:
            return [dc_replace(user) for user in self._users.values()]

    def get(self, user_id: int) -> User:
        with self._lock:
            return dc_replace(self._require(user_id))

    def snapshot(self) -> Tuple[List[User], int, datetime]:
        """(users, version, last_modified) read in one critical section."""
        with self._lock:
            return self.list(), self._version, self._last_modified

    # =========================================================================
    # WRITES
    # =========================================================================

    def create(self, name: str, email: str) -> User:
        """
        Insert a new user with the next id.

        Raises:
            ConflictError: If another user already has `email`.
        """
        with self._lock:
            self._check_email(email)
            user = self._insert(name, email)
            self._touch()
            logger.debug(f"Created user {user.id} <{email}>")
            return dc_replace(user)

    def replace(self, user_id: int, name: str, email: str) -> User:
        """Replace every field of an existing user (PUT)."""
        with self._lock:
            user = self._require(user_id)
            self._check_email(email, exclude_id=user_id)
            user.name = name
            user.email = email
            self._touch()
            logger.debug(f"Replaced user {user_id}")
            return dc_replace(user)

    def patch(self, user_id: int, fields: Dict[str, Any]) -> User:
        """
        Update only the supplied fields (PATCH).

        Unknown keys are ignored. A changed email goes through the same
        uniqueness check as create and replace.
        """
        with self._lock:
            user = self._require(user_id)
            if "email" in fields:
                self._check_email(fields["email"], exclude_id=user_id)
            if "name" in fields:
                user.name = fields["name"]
            if "email" in fields:
                user.email = fields["email"]
            self._touch()
            logger.debug(f"Patched user {user_id}: {sorted(fields)}")
            return dc_replace(user)

    def delete(self, user_id: int) -> None:
        with self._lock:
            self._require(user_id)
            del self._users[user_id]
            self._touch()
            logger.debug(f"Deleted user {user_id}")

    # =========================================================================
    # INTERNALS (call with the lock held)
    # =========================================================================

    def _require(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _check_email(self, email: str, exclude_id: Optional[int] = None) -> None:
        for user in self._users.values():
            if user.email == email and user.id != exclude_id:
                raise ConflictError(EMAIL_CONFLICT)

    def _insert(self, name: str, email: str) -> User:
        user = User(id=self._next_id, name=name, email=email)
        self._users[user.id] = user
        self._next_id += 1
        return user

    def _touch(self) -> None:
        self._version += 1
        self._last_modified = self._clock()
