from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from cinema_admin.core.sorting import SortRule, serialize_sort_rules

FilterValue = str | int | float | None


@dataclass(frozen=True)
class QueryState:
    page: int = 1
    limit: int = 10
    sort_rules: tuple[SortRule, ...] = ()
    filters: dict[str, FilterValue] = field(default_factory=dict)

    def with_page(self, page: int) -> QueryState:
        return replace(self, page=page)

    def with_limit(self, limit: int) -> QueryState:
        # A new page size can make the current page out of range.
        return replace(self, page=1, limit=limit)

    def with_sort_rules(self, rules: tuple[SortRule, ...]) -> QueryState:
        return replace(self, sort_rules=tuple(rules))

    def with_filters(self, partial: Mapping[str, FilterValue]) -> QueryState:
        return replace(self, page=1, filters={**self.filters, **partial})

    def copy(self) -> QueryState:
        return replace(self, filters=dict(self.filters))


def is_empty_param(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def strip_empty_params(params: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if not is_empty_param(v)}


def build_request_params(state: QueryState) -> dict[str, Any]:
    """Flatten query state into the parameter mapping sent to the remote source.

    Filters are spread after page/limit/sort, so a filter with the same key wins.
    """

    params: dict[str, Any] = {
        "page": state.page,
        "limit": state.limit,
        "sort": serialize_sort_rules(state.sort_rules),
        **state.filters,
    }
    return strip_empty_params(params)
