"""
Unit tests for the user and session stores.
"""

import threading

import pytest

from resourceserver.errors import ConflictError, NotFoundError
from resourceserver.stores import SessionStore, UserStore


SEED = [("Alice", "alice@example.com"), ("Bob", "bob@example.com")]


@pytest.fixture
def users(clock) -> UserStore:
    return UserStore(seed=SEED, clock=clock)


class TestUserStore:
    """Tests for UserStore."""

    def test_seed_ids(self, users: UserStore):
        """Seed users get ids 1..n in order."""
        assert [(u.id, u.name) for u in users.list()] == [(1, "Alice"), (2, "Bob")]

    def test_create_next_id(self, users: UserStore):
        """New users continue after the seeds."""
        assert users.create("A", "a@x.com").id == 3

    def test_ids_never_reused(self, users: UserStore):
        """Deleting the newest user does not free its id."""
        created = users.create("A", "a@x.com")
        users.delete(created.id)
        assert users.create("B", "b@x.com").id == created.id + 1

    def test_duplicate_email_on_create(self, users: UserStore):
        """Create rejects an email already in use."""
        with pytest.raises(ConflictError) as exc_info:
            users.create("Other", "alice@example.com")
        assert exc_info.value.message == "Email already exists"
        assert len(users) == 2

    def test_replace(self, users: UserStore):
        """PUT replaces every field."""
        user = users.replace(1, "Alicia", "alicia@example.com")
        assert (user.name, user.email) == ("Alicia", "alicia@example.com")

    def test_replace_own_email_allowed(self, users: UserStore):
        """Keeping your own email is not a conflict."""
        assert users.replace(1, "Alicia", "alice@example.com").name == "Alicia"

    def test_replace_conflict(self, users: UserStore):
        """Taking another user's email is."""
        with pytest.raises(ConflictError):
            users.replace(1, "Alice", "bob@example.com")
        assert users.get(1).email == "alice@example.com"

    def test_patch_partial(self, users: UserStore):
        """Only supplied fields change."""
        user = users.patch(1, {"name": "Z"})
        assert (user.name, user.email) == ("Z", "alice@example.com")

    def test_patch_conflict(self, users: UserStore):
        """PATCH enforces email uniqueness too."""
        with pytest.raises(ConflictError):
            users.patch(2, {"email": "alice@example.com"})
        assert users.get(2).email == "bob@example.com"

    @pytest.mark.parametrize("operation", [
        lambda s: s.get(99),
        lambda s: s.replace(99, "n", "e@x.com"),
        lambda s: s.patch(99, {"name": "n"}),
        lambda s: s.delete(99),
    ])
    def test_unknown_id(self, users: UserStore, operation):
        """Every id-based operation raises NotFoundError for unknown ids."""
        with pytest.raises(NotFoundError):
            operation(users)

    def test_returns_copies(self, users: UserStore):
        """Mutating a returned user does not touch the store."""
        user = users.get(1)
        user.name = "Mallory"
        users.list()[1].email = "mallory@example.com"

        assert users.get(1).name == "Alice"
        assert users.get(2).email == "bob@example.com"

    def test_version_and_last_modified(self, users: UserStore, clock):
        """Every mutation bumps the version and stamps the clock."""
        start_version = users.version
        clock.advance(30)
        users.create("A", "a@x.com")

        assert users.version == start_version + 1
        assert users.last_modified == clock.now

    def test_failed_mutation_keeps_version(self, users: UserStore):
        """Rejected writes change nothing."""
        version = users.version
        with pytest.raises(ConflictError):
            users.create("Dup", "bob@example.com")
        assert users.version == version

    def test_concurrent_creates_same_email(self):
        """Racing creates with one email: exactly one wins."""
        store = UserStore()
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            try:
                store.create("Racer", "race@x.com")
                results.append("ok")
            except ConflictError:
                results.append("conflict")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        assert results.count("conflict") == 7
        assert len(store) == 1


def counting_bytes():
    """Deterministic random-bytes source: 00.., 01.., 02.."""
    counter = iter(range(256))

    def random_bytes(n: int) -> bytes:
        return bytes([next(counter)]) * n

    return random_bytes


@pytest.fixture
def sessions(clock) -> SessionStore:
    return SessionStore(ttl=3600, clock=clock, random_bytes=counting_bytes())


class TestSessionStore:
    """Tests for SessionStore."""

    def test_create_and_get(self, sessions: SessionStore, clock):
        """New sessions are retrievable with empty data."""
        session_id = sessions.create("admin")
        session = sessions.get(session_id)

        assert session.username == "admin"
        assert session.created_at == clock.now
        assert session.data == {}

    def test_id_is_64_hex_chars(self):
        """32 random bytes, hex encoded."""
        session_id = SessionStore().create("admin")
        assert len(session_id) == 64
        int(session_id, 16)

    def test_ids_unique(self):
        """Two logins never share an id."""
        store = SessionStore()
        assert store.create("admin") != store.create("admin")

    def test_get_unknown(self, sessions: SessionStore):
        """Unknown and empty ids resolve to None."""
        assert sessions.get("nope") is None
        assert sessions.get(None) is None

    def test_merge_is_shallow(self, sessions: SessionStore):
        """Merging overwrites given keys and keeps the rest."""
        session_id = sessions.create("admin")
        sessions.merge_data(session_id, {"theme": "dark", "lang": "en"})
        merged = sessions.merge_data(session_id, {"theme": "light"})

        assert merged.data == {"theme": "light", "lang": "en"}

    def test_merge_unknown(self, sessions: SessionStore):
        assert sessions.merge_data("nope", {"a": 1}) is None

    def test_destroy_idempotent(self, sessions: SessionStore):
        """Destroying twice, or destroying nothing, is fine."""
        session_id = sessions.create("admin")
        sessions.destroy(session_id)
        sessions.destroy(session_id)
        sessions.destroy(None)

        assert sessions.get(session_id) is None

    def test_resolve_from_cookie_header(self, sessions: SessionStore):
        """resolve() reads the sessionId cookie."""
        session_id = sessions.create("admin")

        assert sessions.resolve(f"theme=dark; sessionId={session_id}").username == "admin"
        assert sessions.resolve("theme=dark") is None
        assert sessions.resolve(None) is None

    def test_ttl_expiry(self, sessions: SessionStore, clock):
        """Sessions older than the TTL are gone."""
        session_id = sessions.create("admin")
        clock.advance(3599)
        assert sessions.get(session_id) is not None

        clock.advance(1)
        assert sessions.get(session_id) is None
        assert len(sessions) == 0

    def test_no_ttl(self, clock):
        """ttl=None keeps sessions until logout."""
        store = SessionStore(ttl=None, clock=clock)
        session_id = store.create("admin")
        clock.advance(10 * 365 * 24 * 3600)
        assert store.get(session_id) is not None

    def test_purge_expired(self, sessions: SessionStore, clock):
        """purge_expired() sweeps only stale sessions."""
        sessions.create("old")
        clock.advance(3000)
        fresh = sessions.create("new")
        clock.advance(700)

        assert sessions.purge_expired() == 1
        assert len(sessions) == 1
        assert sessions.get(fresh).username == "new"

    def test_returns_copies(self, sessions: SessionStore):
        """Mutating returned data does not bypass merge_data."""
        session_id = sessions.create("admin")
        sessions.get(session_id).data["theme"] = "dark"
        assert sessions.get(session_id).data == {}
