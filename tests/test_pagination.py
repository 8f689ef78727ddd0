from __future__ import annotations

from cinema_admin.core.pagination import pagination_controls
from cinema_admin.core.schemas import DEFAULT_META, PageMeta


def test_middle_page_has_both_neighbours() -> None:
    controls = pagination_controls(PageMeta(page=2, limit=10, total=35, total_pages=4))
    assert controls.pages == [1, 2, 3, 4]
    assert controls.has_previous is True
    assert controls.has_next is True
    assert controls.previous_page == 1
    assert controls.next_page == 3


def test_edges_disable_prev_and_next() -> None:
    first = pagination_controls(PageMeta(page=1, limit=10, total=35, total_pages=4))
    assert first.has_previous is False
    assert first.previous_page is None

    last = pagination_controls(PageMeta(page=4, limit=10, total=35, total_pages=4))
    assert last.has_next is False
    assert last.next_page is None


def test_empty_result_still_renders_one_page() -> None:
    controls = pagination_controls(PageMeta(page=1, limit=10, total=0, total_pages=0))
    assert controls.pages == [1]
    assert controls.has_previous is False
    assert controls.has_next is False

    assert pagination_controls(DEFAULT_META).pages == [1]


def test_meta_accepts_wire_and_python_names() -> None:
    wire = PageMeta.model_validate({"page": 3, "limit": 5, "total": 11, "totalPages": 3})
    py = PageMeta(page=3, limit=5, total=11, total_pages=3)
    assert wire == py
    assert wire.model_dump(by_alias=True)["totalPages"] == 3
