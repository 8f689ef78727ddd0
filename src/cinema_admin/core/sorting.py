from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

SortOrder = Literal["asc", "desc"]

_ORDERS: frozenset[str] = frozenset({"asc", "desc"})


class InvalidSortRule(ValueError):
    pass


@dataclass(frozen=True)
class SortRule:
    field: str
    order: SortOrder = "asc"

    def __post_init__(self) -> None:
        if not self.field or not self.field.strip():
            raise InvalidSortRule("Sort field must not be empty")
        if self.order not in _ORDERS:
            raise InvalidSortRule(f"Unknown sort order: {self.order!r}")

    def flipped(self) -> SortRule:
        return SortRule(self.field, "desc" if self.order == "asc" else "asc")


@dataclass(frozen=True)
class SortInfo:
    is_sorted: bool
    order: SortOrder | None = None


def coerce_sort_rule(rule: SortRule | Mapping[str, Any]) -> SortRule:
    if isinstance(rule, SortRule):
        return rule
    return SortRule(field=str(rule.get("field") or ""), order=rule.get("order") or "asc")


def coerce_sort_rules(rules: Iterable[SortRule | Mapping[str, Any]] | None) -> tuple[SortRule, ...]:
    if not rules:
        return ()
    return tuple(coerce_sort_rule(r) for r in rules)


def serialize_sort_rules(rules: Iterable[SortRule] | None) -> str | None:
    """Serialize rules as ``field:order`` tokens joined by commas.

    Returns None for an empty sequence so callers can omit the parameter entirely.
    """

    tokens = [f"{r.field}:{r.order}" for r in (rules or ())]
    if not tokens:
        return None
    return ",".join(tokens)


def parse_sort_param(sort: str | None) -> list[SortRule]:
    """Parse a ``title:asc,id:desc`` query value back into rules.

    A token without an order defaults to ascending. Empty tokens are skipped.
    """

    if not sort or not sort.strip():
        return []

    rules: list[SortRule] = []
    for token in sort.split(","):
        token = token.strip()
        if not token:
            continue
        field, _, order = token.partition(":")
        rules.append(SortRule(field.strip(), (order.strip().lower() or "asc")))  # type: ignore[arg-type]
    return rules


def toggle_sort(rules: Iterable[SortRule], field: str) -> list[SortRule]:
    """Single-column sort toggle used by clickable column headers.

    Clicking the currently sorted field flips its order; any other field
    replaces the rule set with an ascending rule on that field.
    """

    existing = next((r for r in rules if r.field == field), None)
    if existing is not None:
        return [existing.flipped()]
    return [SortRule(field, "asc")]


def sort_info(rules: Iterable[SortRule], field: str) -> SortInfo:
    for r in rules:
        if r.field == field:
            return SortInfo(is_sorted=True, order=r.order)
    return SortInfo(is_sorted=False)
