"""
=============================================================================
USER RESOURCE HANDLERS
=============================================================================

    GET    /users           list          200 {"users": [...], "count": n}
    GET    /users/:id<int>  get           200 user | 404
    POST   /users           create        201 user + Location | 400 | 409
    PUT    /users/:id<int>  replace       200 user | 400 | 404 | 409
    PATCH  /users/:id<int>  patch         200 user | 400 | 404 | 409
    DELETE /users/:id<int>  delete        204 | 404

Every write handler checks the body's shape before touching the store.
The two GET handlers negotiate their representation from Accept:

    application/json (default)   {"id": 1, "name": "Alice", ...}
    text/plain                   1: Alice <alice@example.com>
    text/html                    <table> with one row per user

=============================================================================
"""

from html import escape
from typing import Any, Dict, List

from ..errors import ValidationError
from ..http.negotiation import select_media_type
from ..http.outcomes import Created, NoContent, Outcome, Representation, Success
from ..http.request import HTTPRequest
from ..stores.users import User, UserStore


OFFERED_TYPES = ("application/json", "text/plain", "text/html")

USER_FIELDS = ("name", "email")


# =============================================================================
# BODY SHAPE CHECKS
# =============================================================================

def require_object(request: HTTPRequest) -> Dict[str, Any]:
    """The JSON body as a dict, or ValidationError."""
    body = request.json
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def require_user_fields(body: Dict[str, Any]) -> Dict[str, str]:
    """Both name and email present as non-empty strings (POST, PUT)."""
    if not all(_is_text(body.get(name)) for name in USER_FIELDS):
        raise ValidationError("Name and email are required")
    return {name: body[name] for name in USER_FIELDS}


def optional_user_fields(body: Dict[str, Any]) -> Dict[str, str]:
    """Whichever of name and email were supplied, each a non-empty string (PATCH)."""
    fields = {}
    for name in USER_FIELDS:
        if name in body:
            if not _is_text(body[name]):
                raise ValidationError(f"{name} must be a non-empty string")
            fields[name] = body[name]
    return fields


# =============================================================================
# REPRESENTATIONS
# =============================================================================

def _as_text(users: List[User]) -> str:
    return "".join(f"{u.id}: {u.name} <{u.email}>\n" for u in users)


def _as_html(users: List[User]) -> str:
    rows = "".join(
        f"<tr><td>{u.id}</td><td>{escape(u.name)}</td><td>{escape(u.email)}</td></tr>"
        for u in users
    )
    return (
        "<!DOCTYPE html><html><head><title>Users</title></head><body>"
        "<table><tr><th>ID</th><th>Name</th><th>Email</th></tr>"
        f"{rows}</table></body></html>"
    )


class UserHandlers:
    """
    CRUD over a UserStore.

        users = UserHandlers(UserStore(seed=[("Alice", "alice@example.com")]))
        router.add_route("/users", users.list, "GET")
    """

    def __init__(self, store: UserStore):
        self.store = store

    def list(self, request: HTTPRequest) -> Outcome:
        users = self.store.list()
        return self._negotiate(
            request,
            users,
            json_body={"users": [u.to_dict() for u in users], "count": len(users)},
        )

    def get(self, request: HTTPRequest) -> Outcome:
        user = self.store.get(request.path_params["id"])
        return self._negotiate(request, [user], json_body=user.to_dict())

    def create(self, request: HTTPRequest) -> Outcome:
        fields = require_user_fields(require_object(request))
        user = self.store.create(fields["name"], fields["email"])
        return Created(user.to_dict(), location=f"/users/{user.id}")

    def replace(self, request: HTTPRequest) -> Outcome:
        fields = require_user_fields(require_object(request))
        user = self.store.replace(request.path_params["id"], fields["name"], fields["email"])
        return Success(user.to_dict())

    def patch(self, request: HTTPRequest) -> Outcome:
        fields = optional_user_fields(require_object(request))
        user = self.store.patch(request.path_params["id"], fields)
        return Success(user.to_dict())

    def delete(self, request: HTTPRequest) -> Outcome:
        self.store.delete(request.path_params["id"])
        return NoContent()

    def _negotiate(self, request: HTTPRequest, users: List[User], json_body: Any) -> Outcome:
        media_type = select_media_type(request.get_header("accept"), OFFERED_TYPES)
        vary = {"Vary": "Accept"}
        if media_type == "text/plain":
            return Representation(_as_text(users), "text/plain", headers=vary)
        if media_type == "text/html":
            return Representation(_as_html(users), "text/html", headers=vary)
        return Success(json_body, headers=vary)
