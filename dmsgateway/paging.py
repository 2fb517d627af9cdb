"""
Paged views over device tables that can only be read one row at a time.
"""

from typing import Callable, Sequence, TypeVar

from dmsgateway.errors import ErrorKind, GatewayError
from dmsgateway.types import PagedResult

T = TypeVar("T")

MAX_PAGE_SIZE = 1000
ALL = -1


def page_bounds(page: int, size: int, total: int) -> tuple[int, int, int, int]:
    """Resolve a page request against a table of `total` rows.

    Size is capped at MAX_PAGE_SIZE and at `total`; size -1 selects the whole
    table and forces page 0.

    Returns:
        (page, size, offset, limit) where rows [offset, limit) belong to the page

    Raises:
        GatewayError: INVALID_MODEL for a negative page or a size below -1
    """
    if page < 0:
        raise GatewayError(ErrorKind.INVALID_MODEL, f"page must be >= 0, got {page}")
    if size < ALL:
        raise GatewayError(ErrorKind.INVALID_MODEL, f"size must be >= -1, got {size}")
    total = max(total, 0)
    size = min(size, MAX_PAGE_SIZE)
    if size == ALL:
        size, page = total, 0
    elif size > total:
        size = total
    offset = page * size
    limit = min(offset + size, total)
    return page, size, offset, max(limit, offset)


def fetch_page(page: int, size: int, total: int, fetch: Callable[[int], T]) -> PagedResult[T]:
    """Fetch rows [offset, limit) one at a time with `fetch(position)`.

    Positions are 0-based; callers add 1 for the 1-based device index.
    """
    page, size, offset, limit = page_bounds(page, size, total)
    items = [fetch(position) for position in range(offset, limit)]
    return PagedResult(page=page, page_size=size, total_count=total, items=items)


def slice_page(items: Sequence[T], page: int, size: int) -> PagedResult[T]:
    """Page over an already materialized list (total = len(items))."""
    page, size, offset, limit = page_bounds(page, size, len(items))
    return PagedResult(page=page, page_size=size, total_count=len(items), items=list(items[offset:limit]))
