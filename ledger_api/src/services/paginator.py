"""
Page/limit parsing.

Raw query-string values are turned into a bounded PageRequest. Bad input
never raises; it falls back to defaults or is clamped into range.
"""

import re
from typing import Optional

from ledger_api.src.models.pagination import PageRequest

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# The store encodes skip as a signed 64-bit integer
MAX_SKIP = 2 ** 63 - 1

_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_int(raw: Optional[str]) -> Optional[int]:
    """
    Parse an ASCII base-10 integer.

    Only an optional sign followed by the digits 0-9 is accepted; underscores
    and non-ASCII digits count as non-numeric.

    Returns:
        The integer, or None for absent/non-numeric input
    """
    if raw is None:
        return None
    raw = raw.strip()
    if not _INTEGER.fullmatch(raw):
        return None
    return int(raw, 10)


class Paginator:
    """Builds PageRequests within configured bounds."""

    def __init__(self, default_limit: int = DEFAULT_LIMIT, max_limit: int = MAX_LIMIT):
        if max_limit < 1:
            raise ValueError("max_limit must be at least 1")
        self.default_limit = max(1, min(default_limit, max_limit))
        self.max_limit = max_limit

    def paginate(self, page_param: Optional[str] = None, limit_param: Optional[str] = None) -> PageRequest:
        """
        Convert raw page/limit parameters into a PageRequest.

        Pages too large for the store's skip are capped at the last
        representable page, which is always past the end of the data.

        Args:
            page_param: Raw 'page' value
            limit_param: Raw 'limit' value

        Returns:
            PageRequest with page >= 1, 1 <= limit <= max_limit and
            skip <= MAX_SKIP
        """
        limit = parse_int(limit_param)
        if limit is None:
            limit = self.default_limit
        limit = max(1, min(limit, self.max_limit))

        page = parse_int(page_param)
        if page is None or page < 1:
            page = DEFAULT_PAGE
        page = min(page, MAX_SKIP // limit + 1)

        return PageRequest(page=page, limit=limit)
