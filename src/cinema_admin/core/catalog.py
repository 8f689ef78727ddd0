from __future__ import annotations

import json
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Final

import pandas as pd

from cinema_admin.core.schemas import PageMeta
from cinema_admin.core.services import RESOURCES
from cinema_admin.core.sorting import InvalidSortRule, SortRule, parse_sort_param


class CatalogError(RuntimeError):
    pass


class UnknownResource(CatalogError):
    pass


class RecordNotFound(CatalogError):
    pass


class InvalidQuery(CatalogError):
    pass


class InvalidRecord(CatalogError):
    pass


MAX_PAGE_LIMIT: Final[int] = 100

DEFAULT_SORT: Final[tuple[SortRule, ...]] = (SortRule("id", "asc"),)

_SINGULAR: Final[dict[str, str]] = {
    "genres": "Genre",
    "categories": "Category",
    "countries": "Country",
    "sections": "Section",
    "series": "Series",
    "movies": "Movie",
}


def _titles(*titles: str) -> list[dict[str, Any]]:
    return [{"id": i, "title": t} for i, t in enumerate(titles, start=1)]


SEED_RECORDS: Final[dict[str, list[dict[str, Any]]]] = {
    "genres": _titles(
        "Action", "Adventure", "Animation", "Comedy", "Crime", "Documentary",
        "Drama", "Fantasy", "Horror", "Romance", "Science Fiction", "Thriller",
    ),
    "categories": _titles("Feature Film", "TV Series", "Anime", "Short Film", "Special"),
    "countries": _titles(
        "United States", "South Korea", "Japan", "Vietnam", "France",
        "United Kingdom", "China", "India",
    ),
    "sections": _titles("Trending Now", "New Releases", "Top Rated", "Continue Watching"),
    "series": _titles("The Dark Knight Trilogy", "Dune", "Alien", "Toy Story"),
    "movies": [
        {"id": 1, "title": "Alien", "year": 1979, "genre": "Horror", "country": "United States", "views": 1520},
        {"id": 2, "title": "Aliens", "year": 1986, "genre": "Action", "country": "United States", "views": 1380},
        {"id": 3, "title": "Heat", "year": 1995, "genre": "Crime", "country": "United States", "views": 990},
        {"id": 4, "title": "Parasite", "year": 2019, "genre": "Thriller", "country": "South Korea", "views": 2410},
        {"id": 5, "title": "Oldboy", "year": 2003, "genre": "Thriller", "country": "South Korea", "views": 1105},
        {"id": 6, "title": "Spirited Away", "year": 2001, "genre": "Animation", "country": "Japan", "views": 2230},
        {"id": 7, "title": "Seven Samurai", "year": 1954, "genre": "Action", "country": "Japan", "views": 640},
        {"id": 8, "title": "Amelie", "year": 2001, "genre": "Romance", "country": "France", "views": 870},
        {"id": 9, "title": "The Matrix", "year": 1999, "genre": "Science Fiction", "country": "United States", "views": 2650},
        {"id": 10, "title": "Inception", "year": 2010, "genre": "Science Fiction", "country": "United States", "views": 2800},
        {"id": 11, "title": "Dune", "year": 2021, "genre": "Science Fiction", "country": "United States", "views": 1980},
        {"id": 12, "title": "Dune: Part Two", "year": 2024, "genre": "Science Fiction", "country": "United States", "views": 2105},
        {"id": 13, "title": "The Dark Knight", "year": 2008, "genre": "Action", "country": "United States", "views": 3010},
        {"id": 14, "title": "Toy Story", "year": 1995, "genre": "Animation", "country": "United States", "views": 1750},
        {"id": 15, "title": "Train to Busan", "year": 2016, "genre": "Horror", "country": "South Korea", "views": 1430},
        {"id": 16, "title": "Your Name", "year": 2016, "genre": "Animation", "country": "Japan", "views": 1890},
        {"id": 17, "title": "The Scent of Green Papaya", "year": 1993, "genre": "Drama", "country": "Vietnam", "views": 310},
        {"id": 18, "title": "Paddington 2", "year": 2017, "genre": "Comedy", "country": "United Kingdom", "views": 760},
        {"id": 19, "title": "In the Mood for Love", "year": 2000, "genre": "Romance", "country": "China", "views": 590},
        {"id": 20, "title": "Lagaan", "year": 2001, "genre": "Drama", "country": "India", "views": 480},
        {"id": 21, "title": "Whiplash", "year": 2014, "genre": "Drama", "country": "United States", "views": 1320},
        {"id": 22, "title": "Memories of Murder", "year": 2003, "genre": "Crime", "country": "South Korea", "views": 720},
    ],
}


@dataclass(frozen=True)
class CatalogPage:
    rows: list[dict[str, Any]]
    page: int
    limit: int
    total: int
    total_pages: int

    def meta(self) -> PageMeta:
        return PageMeta(
            page=self.page, limit=self.limit, total=self.total, total_pages=self.total_pages
        )


def _sort_key(col: pd.Series) -> pd.Series:
    if pd.api.types.is_object_dtype(col) or pd.api.types.is_string_dtype(col):
        return col.astype("string").str.lower()
    return col


def _apply_filters(df: pd.DataFrame, filters: Mapping[str, Any]) -> pd.DataFrame:
    mask = pd.Series(True, index=df.index)
    for key, value in filters.items():
        if key not in df.columns or value is None or value == "":
            continue

        col = df[key]
        if pd.api.types.is_bool_dtype(col):
            wanted = str(value).strip().lower() in {"1", "true", "yes"}
            mask &= col == wanted
        elif pd.api.types.is_numeric_dtype(col):
            try:
                number = float(value)
            except (TypeError, ValueError) as e:
                raise InvalidQuery(f'Invalid value for filter "{key}"') from e
            mask &= col == number
        else:
            text = col.fillna("").astype(str)
            mask &= text.str.contains(str(value), case=False, regex=False)
    return df[mask]


class CatalogTable:
    """In-memory rows for one admin resource.

    Rows are kept as plain dicts; listing builds a pandas DataFrame (cached until
    the next write) to filter, sort and slice a page.
    """

    def __init__(
        self,
        resource: str,
        records: Iterable[Mapping[str, Any]] = (),
        *,
        on_change: Callable[[CatalogTable], None] | None = None,
    ) -> None:
        self.resource = resource
        self._records: list[dict[str, Any]] = [dict(r) for r in records]
        self._on_change = on_change
        self._lock = Lock()
        self._frame: pd.DataFrame | None = None

    @property
    def label(self) -> str:
        return _SINGULAR.get(self.resource, self.resource.title())

    def __len__(self) -> int:
        return len(self._records)

    def _df(self) -> pd.DataFrame:
        if self._frame is None:
            if self._records:
                self._frame = pd.DataFrame.from_records(self._records)
            else:
                self._frame = pd.DataFrame({"id": pd.Series(dtype="int64"), "title": pd.Series(dtype="object")})
        return self._frame

    def list_page(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        sort: str | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> CatalogPage:
        if page < 1:
            raise InvalidQuery("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_LIMIT:
            raise InvalidQuery(f"limit must be between 1 and {MAX_PAGE_LIMIT}")

        try:
            rules = parse_sort_param(sort) or list(DEFAULT_SORT)
        except InvalidSortRule as e:
            raise InvalidQuery(str(e)) from e

        with self._lock:
            df = _apply_filters(self._df(), filters or {})

            for rule in rules:
                if rule.field not in df.columns:
                    raise InvalidQuery(f"Unknown sort field: {rule.field}")

            if not df.empty:
                df = df.sort_values(
                    by=[r.field for r in rules],
                    ascending=[r.order == "asc" for r in rules],
                    kind="mergesort",
                    na_position="last",
                    key=_sort_key,
                )

            total = len(df)
            offset = (page - 1) * limit
            # The frame index is the position in _records; rows go out as stored.
            rows = [dict(self._records[pos]) for pos in df.index[offset : offset + limit]]

        return CatalogPage(
            rows=rows,
            page=page,
            limit=limit,
            total=total,
            total_pages=max(1, math.ceil(total / limit)),
        )

    def all(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(r) for r in self._records]

    def get(self, item_id: int) -> dict[str, Any]:
        with self._lock:
            return dict(self._records[self._position(item_id)])

    def create(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        record = self._validated(payload)
        with self._lock:
            next_id = max((int(r["id"]) for r in self._records), default=0) + 1
            record = {"id": next_id, **record}
            self._records.append(record)
            self._frame = None
        self._changed()
        return dict(record)

    def update(self, item_id: int, payload: Mapping[str, Any]) -> dict[str, Any]:
        changes = self._validated(payload)
        with self._lock:
            pos = self._position(item_id)
            record = {**self._records[pos], **changes, "id": item_id}
            self._records[pos] = record
            self._frame = None
        self._changed()
        return dict(record)

    def delete(self, item_id: int) -> None:
        with self._lock:
            pos = self._position(item_id)
            del self._records[pos]
            self._frame = None
        self._changed()

    def _position(self, item_id: int) -> int:
        for pos, record in enumerate(self._records):
            if int(record["id"]) == item_id:
                return pos
        raise RecordNotFound(f"{self.label} not found")

    def _validated(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        title = payload.get("title")
        if not isinstance(title, str) or not title.strip():
            raise InvalidRecord("Title is required")
        record = {k: v for k, v in payload.items() if k != "id"}
        record["title"] = title.strip()
        return record

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)


def _catalog_path(resource: str, data_dir: Path) -> Path:
    return data_dir / "catalog" / f"{resource}.json"


def persist_table(table: CatalogTable, *, data_dir: Path) -> Path:
    path = _catalog_path(table.resource, data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(table.all(), indent=2, sort_keys=True) + "\n")
    return path


class Catalog:
    def __init__(self, tables: Mapping[str, CatalogTable]) -> None:
        self._tables = dict(tables)

    @property
    def resources(self) -> list[str]:
        return list(self._tables)

    def table(self, resource: str) -> CatalogTable:
        table = self._tables.get(resource)
        if table is None:
            raise UnknownResource(f"Unknown resource: {resource}")
        return table


def load_catalog(
    *,
    data_dir: Path | None = None,
    seed: Mapping[str, Iterable[Mapping[str, Any]]] | None = None,
) -> Catalog:
    """Build the catalog from persisted JSON files, falling back to seed data.

    With a data_dir every write is persisted to ``<data_dir>/catalog/<resource>.json``.
    """

    seed = SEED_RECORDS if seed is None else seed

    def _persist(table: CatalogTable) -> None:
        if data_dir is not None:
            persist_table(table, data_dir=data_dir)

    tables: dict[str, CatalogTable] = {}
    for resource in RESOURCES:
        records: Iterable[Mapping[str, Any]] = seed.get(resource, ())
        if data_dir is not None:
            path = _catalog_path(resource, data_dir)
            if path.exists():
                records = json.loads(path.read_text())

        tables[resource] = CatalogTable(resource, records, on_change=_persist)
    return Catalog(tables)
