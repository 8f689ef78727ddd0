from __future__ import annotations

from dataclasses import dataclass

from cinema_admin.core.schemas import PageMeta


@dataclass(frozen=True)
class PaginationControls:
    current_page: int
    total_pages: int
    pages: list[int]
    has_previous: bool
    has_next: bool
    previous_page: int | None
    next_page: int | None


def pagination_controls(meta: PageMeta) -> PaginationControls:
    """Derive page buttons and prev/next availability from the last page meta.

    An empty result still renders a single page.
    """

    total_pages = max(1, meta.total_pages)
    current = min(max(1, meta.page), total_pages)

    has_previous = current > 1
    has_next = current < total_pages
    return PaginationControls(
        current_page=current,
        total_pages=total_pages,
        pages=list(range(1, total_pages + 1)),
        has_previous=has_previous,
        has_next=has_next,
        previous_page=current - 1 if has_previous else None,
        next_page=current + 1 if has_next else None,
    )
