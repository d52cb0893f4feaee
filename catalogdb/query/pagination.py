"""
Pagination
Normalize page requests and compute page metadata.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, TypeVar

from ..models.common import ResultPage

T = TypeVar("T")

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    """A normalized page (>= 1) and limit (1..max)."""

    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def normalize(
        cls,
        page: Optional[int],
        limit: Optional[int],
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> "PageRequest":
        """
        Build a page request from raw parameters.

        Missing or non-positive limits take the default; limits above the
        maximum are clamped to it.
        """
        page = page if page and page > 0 else 1
        default_limit = max(1, min(default_limit, max_limit))
        if not limit or limit < 1:
            limit = default_limit
        elif limit > max_limit:
            limit = max_limit
        return cls(page=page, limit=limit)


def total_pages(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / limit)


def build_page(items: Sequence[T], total: int, request: PageRequest) -> ResultPage:
    """
    Wrap one page of items with its metadata.

    Args:
        items: Items of the requested page
        total: Number of matches ignoring pagination
        request: Normalized page request

    Returns:
        ResultPage
    """
    pages = total_pages(total, request.limit)
    return ResultPage(
        items=list(items),
        total=total,
        page=request.page,
        limit=request.limit,
        total_pages=pages,
        has_next=request.page < pages,
        has_previous=request.page > 1,
    )


def expected_item_count(total: int, request: PageRequest) -> int:
    """Items a page must hold: min(limit, max(0, total - offset))."""
    return min(request.limit, max(0, total - request.offset))
