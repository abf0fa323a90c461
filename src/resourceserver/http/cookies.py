"""
=============================================================================
COOKIE CODEC
=============================================================================

Read side:  Cookie: sessionId=ab12; username=admin; theme=dark
            ──────────────────────────────────────────────────►
            {"sessionId": "ab12", "username": "admin", "theme": "dark"}

Write side: serialize_cookie("sessionId", "ab12", max_age=3600, http_only=True)
            ──────────────────────────────────────────────────►
            sessionId=ab12; Path=/; Max-Age=3600; HttpOnly

Each directive becomes its own Set-Cookie header line. Folding several
cookies into one comma-joined header breaks on the comma inside Expires
dates, so HTTPResponse keeps them in a separate list.

There is no "unset" verb in HTTP. A cookie is deleted by sending it again
with an empty value and an Expires date in the past (expire_cookie).

=============================================================================
"""

from datetime import datetime, timezone
from typing import Dict, Optional
from urllib.parse import quote, unquote


# Any past date works; the epoch is the conventional choice.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Example: Thu, 01 Jan 1970 00:00:00 GMT

    HTTP dates are always GMT; aware datetimes are converted to UTC first,
    naive ones are assumed to already be UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return (
        f"{_WEEKDAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_cookies(header: Optional[str]) -> Dict[str, str]:
    """
    Parse a Cookie header value into a name → decoded value dict.

    Splits on ";", trims whitespace, splits each pair on the FIRST "="
    (values may themselves contain "="), then URL-decodes the value.
    Pairs without "=" are ignored. A missing or empty header yields {}.
    """
    if not header:
        return {}

    cookies: Dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" not in pair:
            continue
        name, _, value = pair.partition("=")
        name = name.strip()
        if not name:
            continue
        cookies[name] = unquote(value.strip())
    return cookies


def serialize_cookie(
    name: str,
    value: str,
    path: Optional[str] = "/",
    max_age: Optional[int] = None,
    http_only: bool = False,
    expires: Optional[datetime] = None,
) -> str:
    """
    Build one Set-Cookie directive.

    Args:
        name: Cookie name
        value: Cookie value (URL-encoded on the way out)
        path: Path attribute; None omits it
        max_age: Lifetime in seconds; None omits it (session cookie)
        http_only: Hide the cookie from page JavaScript
        expires: Absolute expiry; a past date deletes the cookie

    Returns:
        The header value, e.g. "theme=dark; Path=/; Max-Age=31536000"
    """
    parts = [f"{name}={quote(str(value), safe='')}"]
    if path:
        parts.append(f"Path={path}")
    if max_age is not None:
        parts.append(f"Max-Age={int(max_age)}")
    if expires is not None:
        parts.append(f"Expires={format_http_date(expires)}")
    if http_only:
        parts.append("HttpOnly")
    return "; ".join(parts)


def expire_cookie(name: str, path: Optional[str] = "/", http_only: bool = False) -> str:
    """Directive that makes the browser drop `name` immediately."""
    return serialize_cookie(name, "", path=path, http_only=http_only, expires=EPOCH)
