from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_PAGE_SIZE
from .retry import retry_transient

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    per_page: int
    total_items: int
    total_pages: int


def paginate(items: Sequence[T], page: int = 1, per_page: int = DEFAULT_PAGE_SIZE) -> Page[T]:
    """Slice a listing; out-of-range pages are clamped to the valid range."""
    per_page = max(1, int(per_page))
    total_pages = math.ceil(len(items) / per_page)
    page = min(max(1, int(page)), max(total_pages, 1))
    start = (page - 1) * per_page
    return Page(
        items=list(items[start : start + per_page]),
        page=page,
        per_page=per_page,
        total_items=len(items),
        total_pages=total_pages,
    )


def fetch_all(fetch: Callable[[int, int], Sequence[T]], page_size: int = DEFAULT_LIST_LIMIT) -> list[T]:
    """Drain a ``fetch(limit, offset)`` store listing one page at a time.

    Stops at the first page shorter than ``page_size``.
    """
    page_size = max(1, int(page_size))
    out: list[T] = []
    offset = 0
    while True:
        batch = retry_transient(lambda: fetch(page_size, offset))
        out.extend(batch)
        if len(batch) < page_size:
            return out
        offset += page_size
