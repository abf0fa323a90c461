"""
End-to-end tests through Application.handle (no sockets).
"""

import json
from typing import Optional

import pytest

from resourceserver import AppConfig, create_app
from resourceserver.http.cookies import parse_cookies
from resourceserver.http.request import HTTPRequest
from resourceserver.http.response import HTTPResponse


def call(
    app,
    method: str,
    path: str,
    body=None,
    headers: Optional[dict] = None,
    raw_body: Optional[bytes] = None,
) -> HTTPResponse:
    """Send one request through the app. `body` is JSON-encoded."""
    if raw_body is None:
        raw_body = json.dumps(body).encode() if body is not None else b""
    request = HTTPRequest(
        method=method,
        path=path,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        body=raw_body,
        client_address=("127.0.0.1", 50000),
    )
    return app.handle(request)


def body_of(response: HTTPResponse):
    return json.loads(response.body)


def set_cookies(response: HTTPResponse) -> dict:
    """name → full directive for every Set-Cookie on the response."""
    return {directive.split("=", 1)[0]: directive for directive in response.cookies}


def login(app, username="admin", password="password") -> HTTPResponse:
    return call(app, "POST", "/login", {"username": username, "password": password})


def session_cookie(response: HTTPResponse) -> str:
    directive = set_cookies(response)["sessionId"]
    return directive.split(";", 1)[0]


class TestUserScenarios:
    """The documented request/response scenarios for /users."""

    def test_create_user(self, app):
        """POST → 201, id 3 after two seeds, Location header."""
        response = call(app, "POST", "/users", {"name": "A", "email": "a@x.com"})

        assert response.status == 201
        assert body_of(response) == {"id": 3, "name": "A", "email": "a@x.com"}
        assert response.headers["Location"] == "/users/3"

    def test_duplicate_email(self, app):
        """Second POST with the same email → 409."""
        call(app, "POST", "/users", {"name": "A", "email": "a@x.com"})
        response = call(app, "POST", "/users", {"name": "B", "email": "a@x.com"})

        assert response.status == 409
        assert body_of(response) == {"error": "Email already exists"}

    def test_delete_then_get(self, app):
        """DELETE → 204 with no body; the user is then 404."""
        deleted = call(app, "DELETE", "/users/1")
        assert deleted.status == 204
        assert deleted.body == b""

        assert call(app, "GET", "/users/1").status == 404
        assert call(app, "DELETE", "/users/1").status == 404

    def test_patch_keeps_email(self, app):
        """PATCH {name} changes only the name."""
        call(app, "PUT", "/users/1", {"name": "E", "email": "e@x.com"})
        response = call(app, "PATCH", "/users/1", {"name": "Z"})

        assert response.status == 200
        assert body_of(response) == {"id": 1, "name": "Z", "email": "e@x.com"}

    def test_list_users(self, app):
        """GET /users → users and count."""
        body = body_of(call(app, "GET", "/users"))
        assert body["count"] == 2
        assert [u["name"] for u in body["users"]] == ["Alice", "Bob"]

    def test_get_user(self, app):
        response = call(app, "GET", "/users/2")
        assert body_of(response) == {"id": 2, "name": "Bob", "email": "bob@example.com"}

    def test_non_numeric_id_is_404(self, app):
        """/users/abc matches no route."""
        assert call(app, "GET", "/users/abc").status == 404


class TestUserValidation:
    """Shape checks on write bodies."""

    @pytest.mark.parametrize("body", [
        {"name": "A"},
        {"email": "a@x.com"},
        {"name": "", "email": "a@x.com"},
        {"name": "A", "email": 5},
    ])
    def test_create_requires_name_and_email(self, app, body):
        response = call(app, "POST", "/users", body)
        assert response.status == 400
        assert body_of(response) == {"error": "Name and email are required"}

    def test_put_requires_all_fields(self, app):
        assert call(app, "PUT", "/users/1", {"name": "Only"}).status == 400

    def test_put_unknown_id(self, app):
        assert call(app, "PUT", "/users/99", {"name": "N", "email": "n@x.com"}).status == 404

    def test_put_conflict(self, app):
        response = call(app, "PUT", "/users/1", {"name": "A", "email": "bob@example.com"})
        assert response.status == 409

    def test_patch_bad_type(self, app):
        """Supplied PATCH fields must still be non-empty strings."""
        assert call(app, "PATCH", "/users/1", {"name": 42}).status == 400

    def test_patch_conflict(self, app):
        assert call(app, "PATCH", "/users/2", {"email": "alice@example.com"}).status == 409

    def test_non_object_body(self, app):
        """A JSON array is valid JSON but the wrong shape."""
        response = call(app, "POST", "/users", [{"name": "A", "email": "a@x.com"}])
        assert response.status == 400

    @pytest.mark.parametrize("raw_body", [
        b'{"name": ',
        b"\xff\xfe",
        b'{"name": ' + b"1" * 5000 + b"}",
        b"[" * 100000 + b"]" * 100000,
    ], ids=["truncated", "not-utf8", "huge-int", "deep-nesting"])
    def test_malformed_json(self, app, raw_body):
        """Bodies json cannot load get the generic parse error, never a 500."""
        response = call(app, "POST", "/users", raw_body=raw_body)
        assert response.status == 400
        assert body_of(response) == {"error": "Invalid JSON body"}
        assert len(app.users) == 2


class TestContentNegotiation:
    """Accept-driven representations of users."""

    def test_default_json(self, app):
        response = call(app, "GET", "/users")
        assert response.headers["Content-Type"].startswith("application/json")
        assert response.headers["Vary"] == "Accept"

    def test_plain_text(self, app):
        response = call(app, "GET", "/users", headers={"Accept": "text/plain"})
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body.decode() == (
            "1: Alice <alice@example.com>\n"
            "2: Bob <bob@example.com>\n"
        )

    def test_html_escaped(self, app):
        """Names are HTML-escaped in the table."""
        call(app, "POST", "/users", {"name": "<b>Eve</b>", "email": "eve@x.com"})
        response = call(app, "GET", "/users/3", headers={"Accept": "text/html"})

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert b"&lt;b&gt;Eve&lt;/b&gt;" in response.body

    def test_unsupported_falls_back_to_json(self, app):
        response = call(app, "GET", "/users/1", headers={"Accept": "image/png"})
        assert response.status == 200
        assert body_of(response)["id"] == 1


class TestSessions:
    """Login, session-protected routes and logout."""

    def test_login_sets_two_cookies(self, app):
        """Successful login → sessionId (HttpOnly) and username cookies."""
        response = login(app)

        assert response.status == 200
        assert body_of(response) == {"message": "Login successful", "username": "admin"}

        cookies = set_cookies(response)
        assert set(cookies) == {"sessionId", "username"}
        assert "HttpOnly" in cookies["sessionId"]
        assert "Max-Age=3600" in cookies["sessionId"]
        assert "Path=/" in cookies["sessionId"]
        assert cookies["username"] == "username=admin; Path=/; Max-Age=3600"

    def test_bad_credentials(self, app):
        response = login(app, password="wrong")
        assert response.status == 401
        assert response.cookies == []

    def test_login_missing_fields(self, app):
        assert call(app, "POST", "/login", {"username": "admin"}).status == 400

    def test_profile_requires_session(self, app):
        """No cookie → 401; the login cookie → 200 with the username."""
        assert call(app, "GET", "/profile").status == 401

        cookie = session_cookie(login(app))
        response = call(app, "GET", "/profile", headers={"Cookie": cookie})

        assert response.status == 200
        assert body_of(response)["username"] == "admin"

    def test_forged_session_same_as_missing(self, app):
        """An unknown id is indistinguishable from no cookie."""
        missing = call(app, "GET", "/session")
        forged = call(app, "GET", "/session", headers={"Cookie": "sessionId=deadbeef"})

        assert missing.status == forged.status == 401
        assert missing.body == forged.body

    def test_session_info(self, app):
        cookie = session_cookie(login(app))
        body = body_of(call(app, "GET", "/session", headers={"Cookie": cookie}))

        assert body["authenticated"] is True
        assert body["username"] == "admin"
        assert "sessionId" not in body

    def test_logout_expires_cookies(self, app):
        """Logout destroys the session and expires both cookies."""
        cookie = session_cookie(login(app))
        response = call(app, "POST", "/logout", headers={"Cookie": cookie})

        assert response.status == 200
        cookies = set_cookies(response)
        for name in ("sessionId", "username"):
            assert cookies[name].startswith(f"{name}=;")
            assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in cookies[name]

        assert call(app, "GET", "/profile", headers={"Cookie": cookie}).status == 401

    def test_logout_idempotent(self, app):
        """Logging out twice, or without a session, still succeeds."""
        cookie = session_cookie(login(app))
        first = call(app, "POST", "/logout", headers={"Cookie": cookie})
        second = call(app, "POST", "/logout", headers={"Cookie": cookie})
        anonymous = call(app, "POST", "/logout")

        assert first.status == second.status == anonymous.status == 200
        assert set_cookies(second) == set_cookies(first)

    def test_preferences_merge(self, app):
        """Preferences are merged and theme is mirrored in a cookie."""
        cookie = session_cookie(login(app))
        headers = {"Cookie": cookie}

        call(app, "POST", "/preferences", {"lang": "en"}, headers=headers)
        response = call(app, "POST", "/preferences", {"theme": "dark"}, headers=headers)

        assert response.status == 200
        assert body_of(response)["preferences"] == {"lang": "en", "theme": "dark"}

        theme = set_cookies(response)["theme"]
        assert theme == "theme=dark; Path=/; Max-Age=31536000"

        profile = body_of(call(app, "GET", "/profile", headers=headers))
        assert profile["preferences"] == {"lang": "en", "theme": "dark"}

    def test_preferences_without_theme_sets_no_cookie(self, app):
        cookie = session_cookie(login(app))
        response = call(app, "POST", "/preferences", {"lang": "en"}, headers={"Cookie": cookie})
        assert response.cookies == []

    def test_preferences_unauthenticated(self, app):
        assert call(app, "POST", "/preferences", {"theme": "dark"}).status == 401

    def test_preferences_non_object(self, app):
        cookie = session_cookie(login(app))
        response = call(app, "POST", "/preferences", ["dark"], headers={"Cookie": cookie})
        assert response.status == 400

    def test_session_expires_server_side(self, app, clock):
        """Past the TTL the cookie no longer authenticates."""
        cookie = session_cookie(login(app))
        clock.advance(3600)
        assert call(app, "GET", "/profile", headers={"Cookie": cookie}).status == 401


class TestBearerToken:
    """GET /protected."""

    def test_missing_header(self, app):
        response = call(app, "GET", "/protected")
        assert response.status == 401
        assert response.headers["WWW-Authenticate"].startswith("Bearer")

    def test_wrong_scheme(self, app):
        response = call(app, "GET", "/protected", headers={"Authorization": "Basic YWRtaW4="})
        assert response.status == 403

    def test_wrong_token(self, app):
        response = call(app, "GET", "/protected", headers={"Authorization": "Bearer nope"})
        assert response.status == 403

    def test_valid_token(self, app):
        response = call(app, "GET", "/protected", headers={"Authorization": "Bearer test-token"})
        assert response.status == 200
        assert body_of(response) == {"message": "Access granted"}


class TestConditionalCache:
    """GET /cache and If-None-Match."""

    def test_full_response_headers(self, app):
        response = call(app, "GET", "/cache")

        assert response.status == 200
        assert response.headers["ETag"] == '"2-0"'
        assert response.headers["Cache-Control"] == "public, max-age=60"
        assert response.headers["Last-Modified"].endswith("GMT")
        assert body_of(response)["count"] == 2

    def test_matching_tag_is_304(self, app):
        etag = call(app, "GET", "/cache").headers["ETag"]
        response = call(app, "GET", "/cache", headers={"If-None-Match": etag})

        assert response.status == 304
        assert response.body == b""
        assert response.headers["ETag"] == etag

    def test_stale_tag_is_200(self, app):
        response = call(app, "GET", "/cache", headers={"If-None-Match": '"9-9"'})
        assert response.status == 200
        assert response.body

    @pytest.mark.parametrize("method, path, body", [
        ("POST", "/users", {"name": "A", "email": "a@x.com"}),
        ("PUT", "/users/1", {"name": "A", "email": "a@x.com"}),
        ("PATCH", "/users/1", {"name": "A"}),
        ("DELETE", "/users/1", None),
    ])
    def test_any_mutation_invalidates(self, app, method, path, body):
        """After any write, the old tag is no longer fresh."""
        etag = call(app, "GET", "/cache").headers["ETag"]
        call(app, method, path, body)

        response = call(app, "GET", "/cache", headers={"If-None-Match": etag})
        assert response.status == 200
        assert response.headers["ETag"] != etag

    def test_last_modified_tracks_clock(self, app, clock):
        clock.advance(90)
        call(app, "POST", "/users", {"name": "A", "email": "a@x.com"})
        response = call(app, "GET", "/cache")
        assert response.headers["Last-Modified"] == "Thu, 01 Jan 2026 12:01:30 GMT"


class TestDownload:
    """GET /download."""

    def test_attachment(self, app):
        response = call(app, "GET", "/download")

        assert response.status == 200
        assert response.headers["Content-Disposition"] == 'attachment; filename="users.json"'
        assert response.headers["Content-Length"] == str(len(response.body))
        assert [u["id"] for u in json.loads(response.body)] == [1, 2]


class TestRouting:
    """Cross-cutting behaviour of the wired app."""

    def test_unknown_route(self, app):
        response = call(app, "GET", "/nope")
        assert response.status == 404
        assert body_of(response) == {"error": "Not Found"}

    def test_wrong_method_is_404(self, app):
        assert call(app, "DELETE", "/users").status == 404

    def test_strict_methods(self, clock):
        app = create_app(AppConfig(strict_methods=True), clock=clock, access_log=None)
        response = call(app, "DELETE", "/users")
        assert response.status == 405
        assert response.headers["Allow"] == "GET, POST"

    def test_preflight(self, app):
        response = call(app, "OPTIONS", "/users/1", headers={
            "Origin": "https://app.example",
            "Access-Control-Request-Method": "PATCH",
        })

        assert response.status == 204
        assert response.body == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert "PATCH" in response.headers["Access-Control-Allow-Methods"]

    def test_cors_on_normal_responses(self, app):
        response = call(app, "GET", "/users", headers={"Origin": "https://app.example"})
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_every_response_has_server_and_content_type(self, app):
        for method, path in (("GET", "/users"), ("GET", "/nope"), ("POST", "/login")):
            response = call(app, method, path, {} if method == "POST" else None)
            assert response.headers["Server"] == "ResourceServer/1.0"
            assert "Content-Type" in response.headers

    def test_session_cookie_parses(self, app):
        """The Set-Cookie value round-trips through the Cookie codec."""
        cookie = session_cookie(login(app))
        session_id = parse_cookies(cookie)["sessionId"]
        assert app.sessions.get(session_id).username == "admin"
