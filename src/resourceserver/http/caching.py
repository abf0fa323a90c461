"""
=============================================================================
CACHE VALIDATOR (ETags and conditional GET)
=============================================================================

    First request                         Revalidation
    ─────────────                         ────────────
    GET /cache                            GET /cache
                                          If-None-Match: "2-0"
    ◄── 200 OK                            ◄── 304 Not Modified
        ETag: "2-0"                           ETag: "2-0"
        Cache-Control: public, max-age=60     (no body)
        Last-Modified: ...
        {"users": [...], "count": 2}

The tag is derived from the collection size and its mutation counter.
The counter bumps on every create/replace/patch/delete, so the tag
changes whenever the collection does, even when the size stays the same
(PUT, PATCH) or comes back to an earlier value (DELETE then POST).

Comparison is exact string equality on the quoted tag. Lists of tags,
"*" and weak (W/) validators are not interpreted.

=============================================================================
"""

from typing import Optional


def compute_tag(count: int, version: int) -> str:
    """
    Entity tag for a collection state, quoted per RFC 7232:

        >>> compute_tag(2, 0)
        '"2-0"'
    """
    return f'"{count}-{version}"'


def is_fresh(request_tag: Optional[str], current_tag: str) -> bool:
    """True when the client's cached copy (If-None-Match) is still current."""
    if not request_tag:
        return False
    return request_tag.strip() == current_tag
