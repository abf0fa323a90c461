"""
Accept-header content negotiation.

    Accept: text/html;q=0.9, text/plain, */*;q=0.1
            ─────────────┬─  ────┬────   ────┬────
                         │       │           └── anything, low priority
                         │       └── q=1.0 (default), wins
                         └── 0.9

select_media_type() returns the offered type the client prefers most.
Ties keep the server's order of preference. When the client accepts
nothing we offer, the first offered type is used rather than a 406.
"""

from typing import List, Sequence, Tuple


def parse_accept(header: str) -> List[Tuple[str, float]]:
    """Parse an Accept header into (media_range, q) pairs, in header order."""
    ranges = []
    for item in header.split(","):
        item = item.strip()
        if not item:
            continue
        media_range, *params = [p.strip() for p in item.split(";")]
        q = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        ranges.append((media_range.lower(), q))
    return ranges


def _quality(offered: str, ranges: List[Tuple[str, float]]) -> float:
    """q of the most specific range matching `offered` (exact > type/* > */*)."""
    main_type = offered.split("/")[0]
    best = None
    best_specificity = -1
    for media_range, q in ranges:
        if media_range == offered:
            specificity = 2
        elif media_range == f"{main_type}/*":
            specificity = 1
        elif media_range == "*/*":
            specificity = 0
        else:
            continue
        if specificity > best_specificity:
            best, best_specificity = q, specificity
    return best if best is not None else 0.0


def select_media_type(accept_header: str, offered: Sequence[str]) -> str:
    """
    Pick the representation to send.

    Args:
        accept_header: Raw Accept header ("" when absent)
        offered: Media types we can produce, most preferred first

    Returns:
        One of `offered`
    """
    if not accept_header:
        return offered[0]

    ranges = parse_accept(accept_header)
    best_type = offered[0]
    best_q = 0.0
    for media_type in offered:
        q = _quality(media_type, ranges)
        if q > best_q:
            best_type, best_q = media_type, q
    return best_type
