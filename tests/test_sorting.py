from __future__ import annotations

import pytest

from cinema_admin.core.sorting import (
    InvalidSortRule,
    SortRule,
    coerce_sort_rules,
    parse_sort_param,
    serialize_sort_rules,
    sort_info,
    toggle_sort,
)


def test_serialize_sort_rules() -> None:
    assert serialize_sort_rules([SortRule("title", "asc")]) == "title:asc"
    assert serialize_sort_rules([SortRule("title", "asc"), SortRule("id", "desc")]) == "title:asc,id:desc"

    # Empty means "omit the parameter", not an empty string.
    assert serialize_sort_rules([]) is None
    assert serialize_sort_rules(None) is None


def test_toggle_sort_cycles_and_replaces() -> None:
    rules = toggle_sort([], "title")
    assert rules == [SortRule("title", "asc")]

    rules = toggle_sort(rules, "title")
    assert rules == [SortRule("title", "desc")]

    rules = toggle_sort(rules, "title")
    assert rules == [SortRule("title", "asc")]

    rules = toggle_sort(rules, "id")
    assert rules == [SortRule("id", "asc")]


def test_parse_sort_param() -> None:
    assert parse_sort_param(None) == []
    assert parse_sort_param("  ") == []
    assert parse_sort_param("title:asc, year:DESC") == [SortRule("title", "asc"), SortRule("year", "desc")]
    assert parse_sort_param("title") == [SortRule("title", "asc")]

    with pytest.raises(InvalidSortRule):
        parse_sort_param("title:sideways")


def test_parse_is_inverse_of_serialize() -> None:
    rules = [SortRule("releaseDate", "desc"), SortRule("title", "asc")]
    assert parse_sort_param(serialize_sort_rules(rules)) == rules


def test_sort_info_and_coercion() -> None:
    rules = coerce_sort_rules([{"field": "title", "order": "desc"}])
    assert rules == (SortRule("title", "desc"),)

    assert sort_info(rules, "title").is_sorted is True
    assert sort_info(rules, "title").order == "desc"
    assert sort_info(rules, "id").is_sorted is False
    assert sort_info(rules, "id").order is None

    with pytest.raises(InvalidSortRule):
        SortRule("", "asc")
