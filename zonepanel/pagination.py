"""Splitting lists into pages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PageInfo:
    """Pagination state for rendering a page of items."""

    current: int
    per_page: int
    total_pages: int
    total: int


def paginate(items: Sequence[T], page: int, per_page: int) -> tuple[list[T], PageInfo]:
    """Return one page of ``items`` and its page info.

    A ``per_page`` of zero or less returns every item as a single page. The
    page number is clamped to the range of existing pages.
    """
    total = len(items)
    if per_page <= 0:
        return list(items), PageInfo(current=1, per_page=0, total_pages=1, total=total)

    total_pages = (total + per_page - 1) // per_page
    page = max(page, 1)
    if total_pages > 0:
        page = min(page, total_pages)

    info = PageInfo(current=page, per_page=per_page, total_pages=total_pages, total=total)
    start = (page - 1) * per_page
    if start >= total:
        return [], info
    return list(items[start:start + per_page]), info