"""
dashboard/app/utils/pagination.py

Page window for list views (1-based pages).
"""

from dataclasses import dataclass
from math import ceil


@dataclass(frozen=True)
class PageWindow:
    page: int
    total_pages: int
    total_items: int
    start_index: int  # 1-based index of the first item on the page, 0 when empty
    end_index: int

    @property
    def can_go_previous(self) -> bool:
        return self.page > 1

    @property
    def can_go_next(self) -> bool:
        return self.page < self.total_pages


def clamp_page(page: int, total_pages: int) -> int:
    """Clamp a requested page into [1, total_pages] (page 1 when there are no pages)."""
    if total_pages <= 0:
        return 1
    return max(1, min(page, total_pages))


def build_page_window(page: int, total_items: int, per_page: int) -> PageWindow:
    """
    Build the page window for a list.

    Returns start/end indexes of 0 when there are no items.
    """
    total_pages = ceil(total_items / per_page) if total_items > 0 else 0
    page = clamp_page(page, total_pages)

    if total_items == 0:
        return PageWindow(page=page, total_pages=total_pages, total_items=0, start_index=0, end_index=0)

    start_index = (page - 1) * per_page + 1
    end_index = min(page * per_page, total_items)
    return PageWindow(
        page=page,
        total_pages=total_pages,
        total_items=total_items,
        start_index=start_index,
        end_index=end_index,
    )
