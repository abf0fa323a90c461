"""
Cacheable and downloadable views of the user collection.

    GET /cache      conditional GET: 304 when If-None-Match still matches
    GET /download   users.json as an attachment
"""

import json
import logging

from ..http.caching import compute_tag, is_fresh
from ..http.cookies import format_http_date
from ..http.outcomes import Attachment, NotModified, Outcome, Success
from ..http.request import HTTPRequest
from ..stores.users import UserStore


logger = logging.getLogger(__name__)


class ResourceHandlers:
    def __init__(self, store: UserStore, cache_max_age: int = 60):
        self.store = store
        self.cache_max_age = cache_max_age

    def cache(self, request: HTTPRequest) -> Outcome:
        """
        Conditional GET over the whole collection.

        The freshness check runs before the representation is built, so a
        304 costs one tag comparison.
        """
        users, version, last_modified = self.store.snapshot()
        etag = compute_tag(len(users), version)

        if is_fresh(request.get_header("if-none-match"), etag):
            logger.debug(f"Cache hit for {etag}")
            return NotModified(etag)

        return Success(
            {"users": [u.to_dict() for u in users], "count": len(users)},
            headers={
                "ETag": etag,
                "Cache-Control": f"public, max-age={self.cache_max_age}",
                "Last-Modified": format_http_date(last_modified),
            },
        )

    def download(self, request: HTTPRequest) -> Outcome:
        users = [u.to_dict() for u in self.store.list()]
        content = json.dumps(users, indent=2, ensure_ascii=False).encode("utf-8")
        return Attachment(content, "users.json", "application/json")
